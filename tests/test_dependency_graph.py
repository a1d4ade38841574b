"""Tests for dependency graph construction and traversal."""

from collections import Counter

import pytest

from regengraph_cli.dependency_graph import (
    block_path_to_node_id,
    build_dependency_graph,
    get_node_label,
    node_id_to_block_path,
)
from regengraph_cli.models import NODE_FIELD, NODE_LESSON, PARENT_OF, PREREQUISITE_FOR


def _ids(nodes):
    return [node.node_id for node in nodes]


class TestBuildDependencyGraph:
    """Tests for build_dependency_graph."""

    def test_node_and_edge_counts(self, dependency_graph):
        """Two sections, three lessons: 16 nodes and 20 edges."""
        assert len(dependency_graph) == 16
        assert len(dependency_graph.edges) == 20
        assert len(dependency_graph.edges_of_type(PARENT_OF)) == 5
        assert len(dependency_graph.edges_of_type(PREREQUISITE_FOR)) == 15

    def test_nodes_keep_creation_order(self, dependency_graph):
        """Course root and its fields come first."""
        assert _ids(dependency_graph.nodes)[:4] == [
            "course",
            "course.learning_objectives",
            "course.key_concepts",
            "course.pedagogical_strategy",
        ]

    def test_labels(self, dependency_graph):
        """Labels come from titles and the analysis record."""
        assert dependency_graph.get_node("course").label == "Introduction to TypeScript"
        assert dependency_graph.get_node("section.0").label == "TypeScript Basics"
        assert dependency_graph.get_node("section.0.lesson.1").label == "Basic Types"
        assert dependency_graph.get_node("course.key_concepts").label == "Key Concepts: Types, Interfaces, Generics"
        assert dependency_graph.get_node("course.pedagogical_strategy").label == "Pedagogical Strategy: hands-on"

    def test_label_fallbacks(self):
        """Missing titles and analysis fields fall back to positional names."""
        graph = build_dependency_graph({}, {"sections": [{"lessons": [{}]}]})

        assert graph.get_node("course").label == "Course"
        assert graph.get_node("section.0").label == "Section 1"
        assert graph.get_node("section.0.lesson.0").label == "Lesson 1.1"
        assert graph.get_node("course.key_concepts").label == "Course Key Concepts"

    def test_field_nodes_record_owner(self, dependency_graph):
        """Field nodes name their structural owner."""
        assert dependency_graph.get_node("section.0.title").owner == "section.0"
        assert dependency_graph.get_node("lesson.0.1.learning_objectives").owner == "section.0.lesson.1"
        assert dependency_graph.get_node("course.key_concepts").node_type == NODE_FIELD

    def test_every_lesson_has_one_parent(self, make_structure):
        """Each lesson has exactly one PARENT_OF predecessor: its section."""
        structure = make_structure(3, 1, 4)
        graph = build_dependency_graph({}, structure)

        parents = Counter(edge.dst for edge in graph.edges_of_type(PARENT_OF))
        lessons = [node for node in graph.nodes if node.node_type == NODE_LESSON]
        assert len(lessons) == 8
        for lesson in lessons:
            assert parents[lesson.node_id] == 1
            section = lesson.node_id.rsplit(".lesson.", 1)[0]
            assert section in lesson.depends_on

    def test_no_dangling_edges(self, make_structure):
        """Every edge endpoint is a node in the graph."""
        graph = build_dependency_graph({}, make_structure(2, 0, 3))

        for edge in graph.edges:
            assert edge.src in graph
            assert edge.dst in graph

    def test_depends_on_and_dependents_are_symmetric(self, dependency_graph):
        """A -> B appears as B in A.dependents and A in B.depends_on."""
        for edge in dependency_graph.edges:
            assert edge.dst in dependency_graph.get_node(edge.src).dependents
            assert edge.src in dependency_graph.get_node(edge.dst).depends_on

    def test_lessons_chain_within_section_only(self, dependency_graph):
        """Lesson j feeds lesson j+1 in the same section, never across sections."""
        assert "section.0.lesson.1" in dependency_graph.get_node("section.0.lesson.0").dependents
        assert "section.1.lesson.0" not in dependency_graph.get_node("section.0.lesson.1").dependents

    def test_empty_structure(self):
        """No sections still yields the course root and its field nodes."""
        graph = build_dependency_graph({}, {})

        assert len(graph) == 4
        assert graph.edges == []

    def test_duplicate_and_self_edges_ignored(self, dependency_graph):
        """Re-adding an edge or adding a self-edge changes nothing."""
        before = len(dependency_graph.edges)

        dependency_graph._add_edge("course", "section.0", PARENT_OF)
        dependency_graph._add_edge("section.0", "section.0", PREREQUISITE_FOR)

        assert len(dependency_graph.edges) == before
        assert dependency_graph.get_node("course").dependents.count("section.0") == 1

    def test_edge_to_unknown_node_is_skipped(self, dependency_graph, caplog):
        """Unknown endpoints are logged and skipped, never raised."""
        with caplog.at_level("WARNING", logger="regengraph_cli.dependency_graph"):
            dependency_graph._add_edge("course", "section.99", PARENT_OF)

        assert "section.99" not in dependency_graph
        assert "node not found" in caplog.text


class TestTraversal:
    """Tests for upstream/downstream queries."""

    def test_key_concepts_reach_every_lesson(self, make_structure):
        """Key concepts feed every lesson regardless of section count."""
        for shape in [(1,), (2, 3), (1, 1, 1, 1)]:
            graph = build_dependency_graph({}, make_structure(*shape))
            lessons = {node.node_id for node in graph.nodes if node.node_type == NODE_LESSON}

            downstream = set(_ids(graph.get_downstream("course.key_concepts")))
            assert lessons <= downstream

    def test_section_title_stays_in_its_section(self, dependency_graph):
        """section.0.title affects only section 0 lessons."""
        assert dependency_graph.get_affected_count("section.0.title") == 2
        downstream = _ids(dependency_graph.get_downstream("section.0.title"))
        assert sorted(downstream) == ["section.0.lesson.0", "section.0.lesson.1"]
        assert not any(node_id.startswith("section.1") for node_id in downstream)

    def test_course_objectives_cascade_to_lesson_objectives(self, dependency_graph):
        """Course objectives -> section objectives -> lesson objectives."""
        downstream = set(_ids(dependency_graph.get_downstream("course.learning_objectives")))

        assert downstream == {
            "section.0.learning_objectives",
            "section.1.learning_objectives",
            "lesson.0.0.learning_objectives",
            "lesson.0.1.learning_objectives",
            "lesson.1.0.learning_objectives",
        }
        assert dependency_graph.get_affected_count("course.learning_objectives") == 2

    def test_upstream_of_lesson(self, dependency_graph):
        """A lesson depends on its section, course fields, title and previous lesson."""
        upstream = set(_ids(dependency_graph.get_upstream("section.0.lesson.1")))

        assert upstream == {
            "course",
            "section.0",
            "section.0.title",
            "section.0.lesson.0",
            "course.key_concepts",
            "course.pedagogical_strategy",
        }

    def test_downstream_is_breadth_first(self, dependency_graph):
        """Direct dependents come before grandchildren."""
        downstream = _ids(dependency_graph.get_downstream("course"))

        assert downstream[:2] == ["section.0", "section.1"]
        assert set(downstream[2:]) == {"section.0.lesson.0", "section.0.lesson.1", "section.1.lesson.0"}

    def test_unknown_ids_return_empty(self, dependency_graph):
        """Queries on missing ids return empty results instead of raising."""
        assert dependency_graph.get_upstream("section.42") == []
        assert dependency_graph.get_downstream("section.42") == []
        assert dependency_graph.get_affected_count("section.42") == 0
        assert dependency_graph.get_node("section.42") is None

    def test_ascii_sketch(self, dependency_graph):
        """ASCII sketch lists the root and its dependents."""
        sketch = dependency_graph.ascii("section.0.title", depth=1)

        assert sketch.splitlines()[0] == "Section 1: Title (section.0.title)"
        assert "|-PREREQUISITE_FOR-> What is TypeScript? (section.0.lesson.0)" in sketch
        assert "not found" in dependency_graph.ascii("nope")


class TestPathMapping:
    """Tests for block path <-> node id mapping and labels."""

    @pytest.mark.parametrize(
        "block_path, node_id",
        [
            ("sections[0].lessons[1].lesson_title", "section.0.lesson.1"),
            ("sections[0].lessons[1].lesson_objectives", "lesson.0.1.learning_objectives"),
            ("sections[1].section_title", "section.1.title"),
            ("sections[1].learning_objectives[0]", "section.1.learning_objectives"),
            ("sections[1].section_description", "section.1"),
            ("sections.0.lessons.1.key_topics", "section.0.lesson.1"),
            ("topic_analysis.key_concepts", "course.key_concepts"),
            ("pedagogical_strategy.teaching_style", "course.pedagogical_strategy"),
            ("learning_outcomes", "course.learning_objectives"),
            ("course_title", "course"),
            ("section.0.lesson.1.title", "section.0.lesson.1"),
            ("section.0.title", "section.0.title"),
            ("lesson.1.0.learning_objectives", "lesson.1.0.learning_objectives"),
            ("course_description", "course_description"),
        ],
    )
    def test_block_path_to_node_id(self, block_path, node_id):
        assert block_path_to_node_id(block_path) == node_id

    def test_node_id_to_block_path(self):
        """Builder ids map back to structure paths."""
        assert node_id_to_block_path("section.0.title") == "sections[0].section_title"
        assert node_id_to_block_path("section.0.lesson.1") == "sections[0].lessons[1]"
        assert node_id_to_block_path("lesson.0.1.learning_objectives") == "sections[0].lessons[1].lesson_objectives"
        assert node_id_to_block_path("course.key_concepts") == "topic_analysis.key_concepts"
        assert node_id_to_block_path("not-an-id") is None

    def test_get_node_label(self, dependency_graph):
        """Labels combine the node label with the edited field."""
        assert get_node_label(dependency_graph, "sections[0].lessons[1].lesson_title") == "Basic Types > lesson_title"
        assert get_node_label(dependency_graph, "sections[0].section_title") == "Section 1: Title"
        assert get_node_label(dependency_graph, "sections[9].section_title") == "sections[9].section_title"
