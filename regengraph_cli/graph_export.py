"""Graph export helpers for DOT and JSON outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

from .dependency_graph import DependencyGraph, block_path_to_node_id
from .models import DependencyEdge

# Graphviz shapes per node type
_SHAPES = {
    "course": "doubleoctagon",
    "section": "box",
    "lesson": "ellipse",
    "field": "note",
}


def export_dot(graph: DependencyGraph, output_file: Path, focus: str = "") -> None:
    selected = _focused_subgraph(graph, focus)

    lines = ["digraph RegenGraph {"]
    lines.append("  rankdir=LR;")

    for node_id in selected["nodes"]:
        node = graph.get_node(node_id)
        label = f"{node.node_type}\\n{_esc(node.label)}"
        shape = _SHAPES.get(node.node_type, "box")
        lines.append(f'  "{_esc(node_id)}" [label="{label}", shape={shape}];')

    for edge in selected["edges"]:
        style = ", style=dashed" if edge.edge_type == "PARENT_OF" else ""
        lines.append(f'  "{_esc(edge.src)}" -> "{_esc(edge.dst)}" [label="{edge.edge_type}"{style}];')

    lines.append("}")
    output_file.write_text("\n".join(lines), encoding="utf-8")


def export_json(graph: DependencyGraph, output_file: Path, focus: str = "") -> None:
    selected = _focused_subgraph(graph, focus)
    payload = {
        "nodes": [graph.get_node(node_id).to_dict() for node_id in selected["nodes"]],
        "edges": [edge.to_dict() for edge in selected["edges"]],
    }
    output_file.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _focused_subgraph(graph: DependencyGraph, focus: str) -> Dict[str, List]:
    """Focus node plus its full downstream, or the whole graph without a focus."""
    if not focus:
        return {"nodes": [node.node_id for node in graph.nodes], "edges": list(graph.edges)}

    focus_id = block_path_to_node_id(focus)
    if focus_id not in graph:
        return {"nodes": [node.node_id for node in graph.nodes], "edges": list(graph.edges)}

    keep = {focus_id} | {node.node_id for node in graph.get_downstream(focus_id)}
    node_subset = [node.node_id for node in graph.nodes if node.node_id in keep]
    edge_subset: List[DependencyEdge] = [e for e in graph.edges if e.src in keep and e.dst in keep]
    return {"nodes": node_subset, "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
