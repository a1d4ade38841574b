"""RegenGraph: dependency tracking, context assembly, and semantic diffs for targeted course regeneration."""

from __future__ import annotations

__version__ = "0.1.0"

from .context_assembler import assemble_context, assemble_dynamic_context, assemble_static_context
from .dependency_graph import DependencyGraph, build_dependency_graph
from .errors import MissingSourceDataError, RegenerationError, UnknownTierError
from .impact import analyze_impact
from .semantic_diff import generate_semantic_diff

__all__ = [
    "__version__",
    "DependencyGraph",
    "MissingSourceDataError",
    "RegenerationError",
    "UnknownTierError",
    "analyze_impact",
    "assemble_context",
    "assemble_dynamic_context",
    "assemble_static_context",
    "build_dependency_graph",
    "generate_semantic_diff",
]
