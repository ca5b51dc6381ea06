"""Dependency-graph metrics: fragility score, vulnerability insight, graph summary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import networkx as nx

from risksurface.metrics._constants import _MALFORMED
from risksurface.metrics._util import _clamp_score, _coerce, _round_half_up
from risksurface.models import DependencyLink, DependencyNode, Unavailable

# --- Fragility weights ---
_FAN_WEIGHT = 5.0
_CENTRALITY_WEIGHT = 50.0
_DEPTH_WEIGHT = 10.0

_NO_DEPENDENCY_DATA = "insufficient dependency data"


@dataclass(frozen=True)
class VulnerabilityInsight:
    node_id: str
    fragility: float
    downstream_count: int
    cascading_probability: int
    total_nodes: int
    target_id: str | None = None
    target_weight: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "fragility": self.fragility,
            "downstreamCount": self.downstream_count,
            "cascadingProbability": self.cascading_probability,
            "totalNodes": self.total_nodes,
            "targetId": self.target_id,
            "targetWeight": self.target_weight,
        }


@dataclass(frozen=True)
class DependencySummary:
    total_nodes: int
    internal_edges: int
    cyclic_nodes: int
    mean_centrality: float
    max_fan_in: int
    components: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "internalEdges": self.internal_edges,
            "cyclicNodes": self.cyclic_nodes,
            "meanCentrality": self.mean_centrality,
            "maxFanIn": self.max_fan_in,
            "components": self.components,
        }


def _as_node(node: DependencyNode | Mapping[str, Any]) -> DependencyNode:
    return node if isinstance(node, DependencyNode) else DependencyNode.from_dict(node)


def _score(node: DependencyNode) -> float:
    raw = (
        (node.fan_in + node.fan_out) * _FAN_WEIGHT
        + node.centrality * _CENTRALITY_WEIGHT
        + node.transitive_depth * _DEPTH_WEIGHT
    )
    return _clamp_score(raw)


def fragility_score(node: DependencyNode | Mapping[str, Any]) -> float | Unavailable:
    """Structural fragility of one node, bounded to [0, 100].

    ``(fanIn + fanOut) * 5 + centrality * 50 + transitiveDepth * 10``,
    capped at 100.
    """
    try:
        return _score(_as_node(node))
    except _MALFORMED as e:
        return Unavailable(f"malformed dependency node: {e}")


def vulnerability_insight(
    nodes: Iterable[DependencyNode | Mapping[str, Any]],
    links: Iterable[DependencyLink | Mapping[str, Any]],
) -> VulnerabilityInsight | Unavailable | None:
    """Locate the most fragile node and estimate its one-hop cascade.

    Returns ``None`` for an empty graph.  Ties on fragility go to the node
    seen first; ties on link weight go to the link seen first.
    """
    try:
        node_list = _coerce(nodes, DependencyNode, DependencyNode.from_dict)
        link_list = _coerce(links, DependencyLink, DependencyLink.from_dict)
    except _MALFORMED as e:
        return Unavailable(f"malformed dependency graph: {e}")
    if not node_list:
        return None

    top = node_list[0]
    top_score = _score(top)
    for node in node_list[1:]:
        score = _score(node)
        if score > top_score:
            top, top_score = node, score

    downstream = [link for link in link_list if link.source == top.id]
    total = len(node_list)
    probability = _round_half_up(len(downstream) / (total - 1) * 100) if total > 1 else 0

    target = sorted(downstream, key=lambda link: link.weight, reverse=True)[0] if downstream else None
    return VulnerabilityInsight(
        node_id=top.id,
        fragility=top_score,
        downstream_count=len(downstream),
        cascading_probability=probability,
        total_nodes=total,
        target_id=target.target if target else None,
        target_weight=target.weight if target else None,
    )


def build_graph(nodes: list[DependencyNode], links: list[DependencyLink]) -> nx.DiGraph:
    """Directed graph over the declared nodes; links to undeclared ids are dropped."""
    G = nx.DiGraph()
    for node in nodes:
        G.add_node(node.id, fan_in=node.fan_in, fan_out=node.fan_out, centrality=node.centrality)
    for link in links:
        if link.source in G and link.target in G:
            G.add_edge(link.source, link.target, weight=link.weight, category=link.risk_category)
    return G


def dependency_summary(
    nodes: Iterable[DependencyNode | Mapping[str, Any]],
    links: Iterable[DependencyLink | Mapping[str, Any]],
) -> DependencySummary | Unavailable:
    """Whole-graph indicators computed from the received nodes and links."""
    try:
        node_list = _coerce(nodes, DependencyNode, DependencyNode.from_dict)
        link_list = _coerce(links, DependencyLink, DependencyLink.from_dict)
    except _MALFORMED as e:
        return Unavailable(f"malformed dependency graph: {e}")
    if not node_list:
        return Unavailable(_NO_DEPENDENCY_DATA)

    G = build_graph(node_list, link_list)

    # Nodes on a cycle: members of a non-trivial SCC, plus self-loops
    cyclic: set[str] = set(nx.nodes_with_selfloops(G))
    for component in nx.strongly_connected_components(G):
        if len(component) > 1:
            cyclic |= component

    centralities = [n.centrality for n in node_list]
    return DependencySummary(
        total_nodes=G.number_of_nodes(),
        internal_edges=G.number_of_edges(),
        cyclic_nodes=len(cyclic),
        mean_centrality=round(sum(centralities) / len(centralities), 4),
        max_fan_in=max(n.fan_in for n in node_list),
        components=nx.number_weakly_connected_components(G),
    )
