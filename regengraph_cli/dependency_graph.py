"""Dependency graph over a generated course (course -> sections -> lessons).

The graph answers one question for the editor: *if this field changes, what
else becomes stale?* It is built once per (analysis, structure) pair into a
flat id-keyed mapping; queries are dictionary lookups plus a bounded BFS.

Node ids::

    course                              root
    course.learning_objectives          course-level fields (from analysis)
    course.key_concepts
    course.pedagogical_strategy
    section.{i}                         section
    section.{i}.title                   section fields
    section.{i}.learning_objectives
    section.{i}.lesson.{j}              lesson
    lesson.{i}.{j}.learning_objectives  lesson field

Edges run from the source of a value to the values derived from it:
``PARENT_OF`` for containment, ``PREREQUISITE_FOR`` for content dependencies.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Any, Dict, List, Mapping, Optional

from .models import (
    NODE_COURSE,
    NODE_FIELD,
    NODE_LESSON,
    NODE_SECTION,
    PARENT_OF,
    PREREQUISITE_FOR,
    DependencyEdge,
    DependencyNode,
)
from .paths import parse_path

logger = logging.getLogger(__name__)

COURSE_ID = "course"
COURSE_LEARNING_OBJECTIVES = "course.learning_objectives"
COURSE_KEY_CONCEPTS = "course.key_concepts"
COURSE_PEDAGOGICAL_STRATEGY = "course.pedagogical_strategy"

# Analysis / structure field paths backing the course-level nodes.
_COURSE_FIELD_PATHS = {
    COURSE_LEARNING_OBJECTIVES: "learning_outcomes",
    COURSE_KEY_CONCEPTS: "topic_analysis.key_concepts",
    COURSE_PEDAGOGICAL_STRATEGY: "pedagogical_strategy",
}

_DOTTED_ID_RE = re.compile(
    r"^(?:section\.(?P<s>\d+)(?:\.lesson\.(?P<l>\d+))?|lesson\.(?P<ls>\d+)\.(?P<ll>\d+))(?:\.(?P<field>.+))?$"
)


def section_id(section_idx: int) -> str:
    return f"section.{section_idx}"


def lesson_id(section_idx: int, lesson_idx: int) -> str:
    return f"section.{section_idx}.lesson.{lesson_idx}"


def lesson_objectives_id(section_idx: int, lesson_idx: int) -> str:
    return f"lesson.{section_idx}.{lesson_idx}.learning_objectives"


class DependencyGraph:
    """Read-only dependency graph with upstream/downstream traversal.

    Instances are produced by :func:`build_dependency_graph`; the private
    ``_add_*`` methods are construction-time only. Queries for ids that are
    not in the graph return empty results instead of raising, because callers
    routinely probe ids for content that has not been generated yet.
    """

    def __init__(self) -> None:
        self.nodes_map: Dict[str, DependencyNode] = {}
        self.edges: List[DependencyEdge] = []
        self._edge_keys: set = set()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _add_node(self, node_id: str, node_type: str, label: str, owner: Optional[str] = None) -> DependencyNode:
        node = DependencyNode(node_id=node_id, node_type=node_type, label=label, owner=owner)
        self.nodes_map[node_id] = node
        return node

    def _add_edge(self, src: str, dst: str, edge_type: str) -> None:
        src_node = self.nodes_map.get(src)
        dst_node = self.nodes_map.get(dst)
        if src_node is None or dst_node is None:
            logger.warning("Cannot add edge %s -> %s: node not found", src, dst)
            return
        if src == dst:
            logger.warning("Refusing self-edge on %s", src)
            return
        key = (src, dst, edge_type)
        if key in self._edge_keys:
            return
        self._edge_keys.add(key)
        self.edges.append(DependencyEdge(src=src, dst=dst, edge_type=edge_type))
        if dst not in src_node.dependents:
            src_node.dependents.append(dst)
        if src not in dst_node.depends_on:
            dst_node.depends_on.append(src)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[DependencyNode]:
        return list(self.nodes_map.values())

    def get_node(self, node_id: str) -> Optional[DependencyNode]:
        return self.nodes_map.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes_map

    def __len__(self) -> int:
        return len(self.nodes_map)

    def edges_of_type(self, edge_type: str) -> List[DependencyEdge]:
        return [edge for edge in self.edges if edge.edge_type == edge_type]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _walk(self, start: str, attr: str) -> List[DependencyNode]:
        if start not in self.nodes_map:
            return []
        seen = {start}
        queue = deque([start])
        result: List[DependencyNode] = []
        while queue:
            current = self.nodes_map[queue.popleft()]
            for nxt in getattr(current, attr):
                if nxt in seen:
                    continue
                seen.add(nxt)
                node = self.nodes_map.get(nxt)
                if node is None:
                    continue
                result.append(node)
                queue.append(nxt)
        return result

    def get_upstream(self, node_id: str) -> List[DependencyNode]:
        """Everything *node_id* was derived from, in BFS order."""
        return self._walk(node_id, "depends_on")

    def get_downstream(self, node_id: str) -> List[DependencyNode]:
        """Everything that becomes stale if *node_id* changes, in BFS order."""
        return self._walk(node_id, "dependents")

    def get_affected_count(self, node_id: str) -> int:
        """Number of *direct* dependents of *node_id*."""
        node = self.nodes_map.get(node_id)
        return len(node.dependents) if node else 0

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def ascii(self, node_id: str, depth: int = 2) -> str:
        """Indented sketch of the dependents reachable within *depth* hops."""
        root = self.nodes_map.get(node_id)
        if root is None:
            return f"Node '{node_id}' not found in dependency graph."

        kinds = {(e.src, e.dst): e.edge_type for e in self.edges}
        lines = [f"{root.label} ({root.node_id})"]
        queue = deque([(node_id, 0)])
        seen = {node_id}
        while queue:
            current, level = queue.popleft()
            if level >= depth:
                continue
            for dst in self.nodes_map[current].dependents:
                dst_node = self.nodes_map[dst]
                lines.append(f"{'  ' * (level + 1)}|-{kinds.get((current, dst), '?')}-> {dst_node.label} ({dst})")
                if dst not in seen:
                    seen.add(dst)
                    queue.append((dst, level + 1))
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


# ===================================================================
# Builder
# ===================================================================


def _course_field_labels(analysis: Mapping[str, Any]) -> Dict[str, str]:
    topic = analysis.get("topic_analysis") or {}
    strategy = analysis.get("pedagogical_strategy") or {}

    determined_topic = topic.get("determined_topic")
    key_concepts = [c for c in topic.get("key_concepts") or [] if isinstance(c, str)]
    teaching_style = strategy.get("teaching_style") if isinstance(strategy, dict) else None

    return {
        COURSE_LEARNING_OBJECTIVES: (
            f"Course Learning Objectives: {determined_topic}" if determined_topic else "Course Learning Objectives"
        ),
        COURSE_KEY_CONCEPTS: (
            f"Key Concepts: {', '.join(key_concepts)}" if key_concepts else "Course Key Concepts"
        ),
        COURSE_PEDAGOGICAL_STRATEGY: (
            f"Pedagogical Strategy: {teaching_style}" if teaching_style else "Course Pedagogical Strategy"
        ),
    }


def _lessons(section: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return list(section.get("lessons") or [])


def build_dependency_graph(analysis: Mapping[str, Any], structure: Mapping[str, Any]) -> DependencyGraph:
    """Build the dependency graph for one analysis/structure pair.

    Rules:

    1. ``course -PARENT_OF-> section.i -PARENT_OF-> section.i.lesson.j``
    2. course learning objectives -> every section's learning objectives
    3. section learning objectives -> every lesson objectives node in that section
    4. key concepts and pedagogical strategy -> every lesson in the course
    5. section title -> every lesson in that section only
    6. lesson j -> lesson j+1 within the same section (narrative continuity)
    """
    graph = DependencyGraph()
    sections: List[Mapping[str, Any]] = list(structure.get("sections") or [])

    graph._add_node(COURSE_ID, NODE_COURSE, structure.get("course_title") or "Course")
    for field_id, label in _course_field_labels(analysis or {}).items():
        graph._add_node(field_id, NODE_FIELD, label, owner=COURSE_ID)

    for s_idx, section in enumerate(sections):
        sid = section_id(s_idx)
        graph._add_node(sid, NODE_SECTION, section.get("section_title") or f"Section {s_idx + 1}", owner=COURSE_ID)
        graph._add_node(f"{sid}.title", NODE_FIELD, f"Section {s_idx + 1}: Title", owner=sid)
        graph._add_node(f"{sid}.learning_objectives", NODE_FIELD, f"Section {s_idx + 1}: Learning Objectives", owner=sid)
        graph._add_edge(COURSE_ID, sid, PARENT_OF)

        for l_idx, lesson in enumerate(_lessons(section)):
            lid = lesson_id(s_idx, l_idx)
            graph._add_node(
                lid, NODE_LESSON, lesson.get("lesson_title") or f"Lesson {s_idx + 1}.{l_idx + 1}", owner=sid
            )
            graph._add_node(
                lesson_objectives_id(s_idx, l_idx),
                NODE_FIELD,
                f"Section {s_idx + 1}, Lesson {l_idx + 1}: Learning Objectives",
                owner=lid,
            )
            graph._add_edge(sid, lid, PARENT_OF)

    for s_idx, section in enumerate(sections):
        sid = section_id(s_idx)
        graph._add_edge(COURSE_LEARNING_OBJECTIVES, f"{sid}.learning_objectives", PREREQUISITE_FOR)

        lesson_count = len(_lessons(section))
        for l_idx in range(lesson_count):
            lid = lesson_id(s_idx, l_idx)
            graph._add_edge(f"{sid}.learning_objectives", lesson_objectives_id(s_idx, l_idx), PREREQUISITE_FOR)
            graph._add_edge(COURSE_KEY_CONCEPTS, lid, PREREQUISITE_FOR)
            graph._add_edge(COURSE_PEDAGOGICAL_STRATEGY, lid, PREREQUISITE_FOR)
            graph._add_edge(f"{sid}.title", lid, PREREQUISITE_FOR)
            if l_idx + 1 < lesson_count:
                graph._add_edge(lid, lesson_id(s_idx, l_idx + 1), PREREQUISITE_FOR)

    logger.debug(
        "Built dependency graph: %d nodes, %d edges (%d sections)",
        len(graph.nodes_map), len(graph.edges), len(sections),
    )
    return graph


# ===================================================================
# Path <-> node id mapping
# ===================================================================


def block_path_to_node_id(block_path: str) -> str:
    """Map a block path (or dotted node id) to the graph node it edits.

    ``sections[0].lessons[1].lesson_title`` -> ``section.0.lesson.1``,
    ``sections[0].section_title`` -> ``section.0.title``,
    ``topic_analysis.key_concepts`` -> ``course.key_concepts``.
    Paths with no graph counterpart are returned unchanged so graph queries
    on them simply come back empty.
    """
    if block_path in _COURSE_FIELD_PATHS or block_path == COURSE_ID:
        return block_path

    dotted = _DOTTED_ID_RE.match(block_path)
    if dotted:
        if dotted.group("ls") is not None:
            s_idx, l_idx = int(dotted.group("ls")), int(dotted.group("ll"))
            if dotted.group("field") == "learning_objectives":
                return lesson_objectives_id(s_idx, l_idx)
            return lesson_id(s_idx, l_idx)
        s_idx = int(dotted.group("s"))
        field = dotted.group("field")
        if dotted.group("l") is not None:
            l_idx = int(dotted.group("l"))
            if field in ("learning_objectives", "lesson_objectives"):
                return lesson_objectives_id(s_idx, l_idx)
            return lesson_id(s_idx, l_idx)
        if field in ("title", "section_title"):
            return f"{section_id(s_idx)}.title"
        if field == "learning_objectives":
            return f"{section_id(s_idx)}.learning_objectives"
        return section_id(s_idx)

    segments = parse_path(block_path)
    if not segments:
        return block_path

    head = segments[0]
    if head == "sections" and len(segments) >= 2 and isinstance(segments[1], int):
        s_idx = segments[1]
        rest = segments[2:]
        if rest[:1] == ["lessons"] and len(rest) >= 2 and isinstance(rest[1], int):
            l_idx = rest[1]
            if rest[2:3] == ["lesson_objectives"]:
                return lesson_objectives_id(s_idx, l_idx)
            return lesson_id(s_idx, l_idx)
        if rest[:1] == ["section_title"]:
            return f"{section_id(s_idx)}.title"
        if rest[:1] == ["learning_objectives"]:
            return f"{section_id(s_idx)}.learning_objectives"
        return section_id(s_idx)

    if head in ("learning_outcomes", "course_learning_objectives"):
        return COURSE_LEARNING_OBJECTIVES
    if head == "pedagogical_strategy" or head == "pedagogical_patterns":
        return COURSE_PEDAGOGICAL_STRATEGY
    if head == "topic_analysis" and segments[1:2] == ["key_concepts"]:
        return COURSE_KEY_CONCEPTS
    if head == "course_title":
        return COURSE_ID
    return block_path


def node_id_to_block_path(node_id: str) -> Optional[str]:
    """Inverse of :func:`block_path_to_node_id` for ids the builder creates."""
    if node_id in _COURSE_FIELD_PATHS:
        return _COURSE_FIELD_PATHS[node_id]
    if node_id == COURSE_ID:
        return ""
    dotted = _DOTTED_ID_RE.match(node_id)
    if not dotted:
        return None
    if dotted.group("ls") is not None:
        return f"sections[{dotted.group('ls')}].lessons[{dotted.group('ll')}].lesson_objectives"
    base = f"sections[{dotted.group('s')}]"
    if dotted.group("l") is not None:
        return f"{base}.lessons[{dotted.group('l')}]"
    field = dotted.group("field")
    if field == "title":
        return f"{base}.section_title"
    if field == "learning_objectives":
        return f"{base}.learning_objectives"
    return base


def get_node_label(graph: DependencyGraph, block_path: str) -> str:
    """Human-readable label for *block_path*, e.g. ``Basic Types > lesson_title``."""
    node_id = block_path_to_node_id(block_path)
    node = graph.get_node(node_id)
    if node is None:
        return block_path
    if node.node_type == NODE_FIELD:
        return node.label
    segments = parse_path(block_path)
    tail = segments[-1] if segments else None
    if isinstance(tail, str) and tail not in ("sections", "lessons") and block_path != node_id:
        return f"{node.label} > {tail}"
    return node.label

