"""Tests for graph export helpers."""

import json
from pathlib import Path

from regengraph_cli.graph_export import export_dot, export_json


class TestExportDot:
    def test_full_graph(self, dependency_graph, temp_dir: Path):
        output = temp_dir / "graph.dot"
        export_dot(dependency_graph, output)

        text = output.read_text(encoding="utf-8")
        assert text.startswith("digraph RegenGraph {")
        assert '"course" -> "section.0" [label="PARENT_OF", style=dashed];' in text
        assert '"section.0.title" -> "section.0.lesson.0" [label="PREREQUISITE_FOR"];' in text
        assert "shape=note" in text

    def test_quotes_in_labels_are_escaped(self, analysis_record, course_structure, temp_dir: Path):
        from regengraph_cli.dependency_graph import build_dependency_graph

        course_structure["course_title"] = 'The "Typed" Web'
        graph = build_dependency_graph(analysis_record, course_structure)
        output = temp_dir / "graph.dot"
        export_dot(graph, output)

        assert 'course\\nThe \\"Typed\\" Web' in output.read_text(encoding="utf-8")


class TestExportJson:
    def test_full_graph(self, dependency_graph, temp_dir: Path):
        output = temp_dir / "graph.json"
        export_json(dependency_graph, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data["nodes"]) == 16
        assert len(data["edges"]) == 20
        assert data["edges"][0] == {"from": "course", "to": "section.0", "kind": "PARENT_OF"}

    def test_focus_keeps_downstream_only(self, dependency_graph, temp_dir: Path):
        output = temp_dir / "focus.json"
        export_json(dependency_graph, output, focus="sections[0].section_title")

        data = json.loads(output.read_text(encoding="utf-8"))
        ids = [node["node_id"] for node in data["nodes"]]
        assert ids == ["section.0.title", "section.0.lesson.0", "section.0.lesson.1"]
        assert all(edge["from"] in ids and edge["to"] in ids for edge in data["edges"])

    def test_unknown_focus_exports_everything(self, dependency_graph, temp_dir: Path):
        output = temp_dir / "all.json"
        export_json(dependency_graph, output, focus="nothing.here")

        assert len(json.loads(output.read_text(encoding="utf-8"))["nodes"]) == 16
