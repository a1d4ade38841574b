"""Core data models shared by the graph, context, and diff layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

# Node types
NODE_COURSE = "course"
NODE_SECTION = "section"
NODE_LESSON = "lesson"
NODE_FIELD = "field"

# Edge kinds
PARENT_OF = "PARENT_OF"
PREREQUISITE_FOR = "PREREQUISITE_FOR"

# Context tiers, smallest to largest
TIER_ATOMIC = "atomic"
TIER_LOCAL = "local"
TIER_STRUCTURAL = "structural"
TIER_GLOBAL = "global"
TIERS = (TIER_ATOMIC, TIER_LOCAL, TIER_STRUCTURAL, TIER_GLOBAL)

# Semantic change types
CHANGE_SIMPLIFIED = "simplified"
CHANGE_EXPANDED = "expanded"
CHANGE_REFINED = "refined"
CHANGE_RESTRUCTURED = "restructured"
CHANGE_TYPES = (CHANGE_SIMPLIFIED, CHANGE_EXPANDED, CHANGE_REFINED, CHANGE_RESTRUCTURED)


@dataclass
class DependencyNode:
    node_id: str
    node_type: str
    label: str
    owner: Optional[str] = None
    # Ordered, duplicate-free id lists; kept symmetric by DependencyGraph.
    depends_on: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DependencyEdge:
    src: str
    dst: str
    edge_type: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.src, "to": self.dst, "kind": self.edge_type}


@dataclass
class ContextMetadata:
    tier: str
    blocks_included: List[str]
    token_budget: int


@dataclass
class ContextAssemblyResult:
    target_content: Any
    surrounding_context: str
    token_estimate: int
    metadata: ContextMetadata

    @property
    def within_budget(self) -> bool:
        return self.token_estimate < self.metadata.token_budget

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StaticContext:
    """Cacheable course-level context (metadata, overview, strategy)."""

    content: str
    token_estimate: int


@dataclass
class DynamicContext:
    """Per-request context (target field, neighbours) that must not be cached."""

    content: str
    token_estimate: int


@dataclass
class SemanticDiffResult:
    change_type: str
    concepts_added: List[str]
    concepts_removed: List[str]
    alignment_score: int
    change_description: str
    bloom_level_preserved: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImpactReport:
    root: str
    label: str
    affected_count: int
    downstream: List[str]
    breakdown: Dict[str, int]
    impact_level: str
    ascii_graph: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
