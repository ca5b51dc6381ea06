"""risksurface: derived repository risk metrics with project-switch consistency."""

__version__ = "0.1.0"
