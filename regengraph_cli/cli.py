"""Typer-based CLI for inspecting regeneration graphs, contexts, and diffs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .config_manager import load_config, load_log_level, save_config
from .context_assembler import STAGE_STRUCTURE, TIER_TOKEN_BUDGETS, assemble_context
from .dependency_graph import DependencyGraph, block_path_to_node_id, build_dependency_graph
from .errors import RegenerationError
from .graph_export import export_dot, export_json
from .impact import analyze_impact
from .models import TIERS
from .semantic_diff import generate_semantic_diff

app = typer.Typer(
    help="RegenGraph CLI: dependency graphs, regeneration context, and semantic diffs for generated courses.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Show or change CLI defaults.")
app.add_typer(config_app, name="config")

console = Console()

_LEVEL_COLORS = {"low": "green", "medium": "yellow", "high": "red", "critical": "bold red"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"RegenGraph CLI v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, load_log_level())
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """RegenGraph CLI: see what an edit to a generated course touches before regenerating it."""
    _configure_logging(verbose)


# ------------------------------------------------------------------
# Input helpers
# ------------------------------------------------------------------


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Cannot read JSON from '{path}': {exc}")
    if not isinstance(data, dict):
        raise typer.BadParameter(f"'{path}' must contain a JSON object.")
    return data


def _load_content(path: Path) -> Any:
    """Diff input: JSON string/list when the file parses as such, otherwise raw text."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read '{path}': {exc}")
    if path.suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid JSON in '{path}': {exc}")
    return text.strip()


def _load_graph(analysis: Path, structure: Path) -> DependencyGraph:
    return build_dependency_graph(_load_json(analysis), _load_json(structure))


def _use_json(flag: bool) -> bool:
    return flag or load_config()["output"] == "json"


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------

_ANALYSIS_ARG = typer.Argument(..., exists=True, dir_okay=False, help="Analysis record (JSON).")
_STRUCTURE_ARG = typer.Argument(..., exists=True, dir_okay=False, help="Course structure record (JSON).")


@app.command("graph")
def graph_command(
    analysis: Path = _ANALYSIS_ARG,
    structure: Path = _STRUCTURE_ARG,
    node: Optional[str] = typer.Argument(None, help="Node id or block path to sketch."),
    depth: int = typer.Option(2, "--depth", "-d", min=1, help="Hops to draw below NODE."),
):
    """Summarise the dependency graph, or sketch what depends on NODE."""
    graph = _load_graph(analysis, structure)

    if node:
        node_id = block_path_to_node_id(node)
        if node_id not in graph:
            typer.echo(f"❌ Node '{node}' not found in dependency graph.", err=True)
            raise typer.Exit(code=1)
        typer.echo(graph.ascii(node_id, depth=depth))
        return

    counts: Dict[str, int] = {}
    for item in graph.nodes:
        counts[item.node_type] = counts.get(item.node_type, 0) + 1
    typer.echo(f"Nodes: {len(graph)} | Edges: {len(graph.edges)}")
    for node_type, count in counts.items():
        typer.echo(f"  {node_type}: {count}")


@app.command("impact")
def impact_command(
    analysis: Path = _ANALYSIS_ARG,
    structure: Path = _STRUCTURE_ARG,
    target: str = typer.Argument(..., help="Node id or block path being edited."),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON."),
):
    """Show what goes stale if TARGET is edited."""
    graph = _load_graph(analysis, structure)
    report = analyze_impact(graph, target)

    if _use_json(json_output):
        typer.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return

    if report.root not in graph:
        typer.echo(f"❌ {report.ascii_graph}", err=True)
        raise typer.Exit(code=1)

    color = _LEVEL_COLORS.get(report.impact_level, "white")
    table = Table(title=f"Impact of {report.label}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Node", report.root)
    table.add_row("Direct dependents", str(report.affected_count))
    table.add_row("Downstream nodes", str(len(report.downstream)))
    for node_type, count in report.breakdown.items():
        table.add_row(f"  {node_type}", str(count))
    table.add_row("Impact level", f"[{color}]{report.impact_level}[/{color}]")
    console.print(table)
    typer.echo(report.ascii_graph)


@app.command("context")
def context_command(
    analysis: Path = _ANALYSIS_ARG,
    structure: Path = _STRUCTURE_ARG,
    block_path: str = typer.Argument(..., help="Path of the field to regenerate."),
    stage: str = typer.Option(STAGE_STRUCTURE, "--stage", "-s", help="Generation stage (stage_4 = analysis)."),
    tier: Optional[str] = typer.Option(None, "--tier", "-t", help="atomic, local, structural or global."),
    course_id: str = typer.Option("local", "--course-id", help="Course id recorded in logs."),
    json_output: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
):
    """Assemble the regeneration context for BLOCK_PATH."""
    chosen_tier = tier or load_config()["default_tier"]
    try:
        result = assemble_context(
            course_id, stage, block_path, chosen_tier,
            analysis=_load_json(analysis), structure=_load_json(structure),
        )
    except RegenerationError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1)

    if _use_json(json_output):
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    typer.echo(result.surrounding_context)
    typer.echo("")
    typer.echo(
        f"Tier: {result.metadata.tier} | Tokens: {result.token_estimate}/{result.metadata.token_budget}"
    )
    typer.echo(f"Blocks: {', '.join(result.metadata.blocks_included)}")


@app.command("diff")
def diff_command(
    original: Path = typer.Argument(..., exists=True, dir_okay=False, help="Original content (text or JSON)."),
    regenerated: Path = typer.Argument(..., exists=True, dir_okay=False, help="Regenerated content (text or JSON)."),
    field_path: str = typer.Option(..., "--field-path", "-p", help="Path of the edited field."),
    block_type: str = typer.Option("text", "--block-type", "-b", help="Block type, e.g. learning_objectives."),
    change_log: Optional[str] = typer.Option(None, "--change-log", help="Use this description verbatim."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON."),
):
    """Classify how REGENERATED differs from ORIGINAL."""
    diff = generate_semantic_diff(
        _load_content(original), _load_content(regenerated), field_path, block_type, change_log,
    )

    if _use_json(json_output):
        typer.echo(json.dumps(diff.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Semantic diff: {field_path}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Change", diff.change_type)
    table.add_row("Alignment", f"{diff.alignment_score}/5")
    table.add_row("Bloom level preserved", "yes" if diff.bloom_level_preserved else "[red]no[/red]")
    table.add_row("Added", ", ".join(diff.concepts_added) or "-")
    table.add_row("Removed", ", ".join(diff.concepts_removed) or "-")
    console.print(table)
    typer.echo(diff.change_description)


@app.command("export-graph")
def export_graph(
    analysis: Path = _ANALYSIS_ARG,
    structure: Path = _STRUCTURE_ARG,
    fmt: str = typer.Option("dot", "--format", "-f", help="Export format: dot or json."),
    output: Path = typer.Option(..., "--output", "-o", help="Output file path."),
    focus: str = typer.Option("", help="Only export this node and its downstream."),
):
    """Export the dependency graph as Graphviz DOT or JSON."""
    graph = _load_graph(analysis, structure)
    output.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "dot":
        export_dot(graph, output, focus=focus)
    elif fmt == "json":
        export_json(graph, output, focus=focus)
    else:
        raise typer.BadParameter("Format must be 'dot' or 'json'.")

    typer.echo(f"Exported graph to {output}")


# ------------------------------------------------------------------
# Config
# ------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Show the effective CLI configuration."""
    settings = load_config()
    table = Table(title="RegenGraph configuration", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Config file", str(config.CONFIG_FILE))
    table.add_row("Default tier", settings["default_tier"])
    table.add_row("Output", settings["output"])
    table.add_row("Log level", load_log_level())
    for tier in TIERS:
        table.add_row(f"Budget ({tier})", str(TIER_TOKEN_BUDGETS[tier]["total"]))
    console.print(table)


@config_app.command("set-tier")
def config_set_tier(tier: str = typer.Argument(..., help="atomic, local, structural or global.")):
    """Set the tier used when --tier is omitted."""
    if tier not in TIERS:
        raise typer.BadParameter(f"Unknown tier '{tier}'. Choose from: {', '.join(TIERS)}.")
    if not save_config(default_tier=tier):
        typer.echo(f"❌ Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Default tier set to '{tier}'.")


@config_app.command("set-output")
def config_set_output(output: str = typer.Argument(..., help="text or json.")):
    """Set the default output format."""
    if output not in config.OUTPUT_FORMATS:
        raise typer.BadParameter(f"Output must be one of: {', '.join(config.OUTPUT_FORMATS)}.")
    if not save_config(output=output):
        typer.echo(f"❌ Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Default output set to '{output}'.")
