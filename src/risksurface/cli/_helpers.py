"""Shared CLI helpers."""

from __future__ import annotations

import argparse
import json
from typing import Any

from risksurface.config import ClientConfig


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def _config(args: argparse.Namespace) -> ClientConfig:
    overrides: dict[str, Any] = {}
    if args.api_base:
        overrides["api_base"] = args.api_base.rstrip("/")
    return ClientConfig(**overrides)
