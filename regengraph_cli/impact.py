"""Impact analysis for a pending edit: how much of the course goes stale."""

from __future__ import annotations

import logging
from collections import Counter

from .dependency_graph import DependencyGraph, block_path_to_node_id
from .models import ImpactReport

logger = logging.getLogger(__name__)

IMPACT_LOW = "low"
IMPACT_MEDIUM = "medium"
IMPACT_HIGH = "high"
IMPACT_CRITICAL = "critical"

# Upper bounds (inclusive) on the number of stale nodes per level.
IMPACT_THRESHOLDS = (
    (5, IMPACT_LOW),
    (10, IMPACT_MEDIUM),
    (20, IMPACT_HIGH),
)


def impact_level(count: int) -> str:
    for limit, level in IMPACT_THRESHOLDS:
        if count <= limit:
            return level
    return IMPACT_CRITICAL


def analyze_impact(graph: DependencyGraph, target: str, hops: int = 2) -> ImpactReport:
    """Summarise what editing *target* (a node id or block path) invalidates.

    ``affected_count`` counts direct dependents only; ``downstream`` and the
    impact level cover the full transitive blast radius. *hops* bounds the
    ASCII sketch, not the analysis.
    """
    node_id = block_path_to_node_id(target)
    root = graph.get_node(node_id)
    if root is None:
        message = f"Node '{target}' not found in dependency graph."
        return ImpactReport(
            root=node_id,
            label=target,
            affected_count=0,
            downstream=[],
            breakdown={},
            impact_level=IMPACT_LOW,
            ascii_graph=message,
        )

    downstream = graph.get_downstream(node_id)
    breakdown = dict(Counter(node.node_type for node in downstream))
    level = impact_level(len(downstream))
    logger.debug("Impact of %s: %d downstream nodes (%s)", node_id, len(downstream), level)

    return ImpactReport(
        root=node_id,
        label=root.label,
        affected_count=graph.get_affected_count(node_id),
        downstream=[node.node_id for node in downstream],
        breakdown=breakdown,
        impact_level=level,
        ascii_graph=graph.ascii(node_id, depth=hops),
    )
