"""Graph visualization: AST -> ReactFlow-style node/edge model, and Mermaid."""

from __future__ import annotations

import logging
from typing import Any

from .ast_nodes import (
    ConditionalStatement,
    Program,
    Step,
    Workflow,
    format_expression,
)
from .depgraph import StepGraph
from .errors import GenerationError

logger = logging.getLogger(__name__)


# Command -> node background
_COMMAND_COLORS = {
    "fetch":      "#e3f2fd",  # light blue
    "summarize":  "#f3e5f5",  # light purple
    "send_email": "#e8f5e8",  # light green
    "analyze":    "#fff3e0",  # light orange
    "filter":     "#fce4ec",  # light pink
    "transform":  "#f1f8e9",  # light lime
    "store":      "#e0f2f1",  # light teal
    "notify":     "#fafafa",  # light gray
}

_DEFAULT_COLOR = "#ffffff"

DEFAULT_START = (50, 50)
DEFAULT_SPACING = (200, 100)

DATA_FLOW_LABEL = "data flow"


def generate_graph(
    program: Program,
    start: tuple[int, int] = DEFAULT_START,
    spacing: tuple[int, int] = DEFAULT_SPACING,
) -> dict[str, Any]:
    """Generate the node/edge model for the first workflow of a Program.

    Only ``workflows[0]`` is rendered. Raises GenerationError when the
    program holds no workflow.
    """
    workflow = _first_workflow(program)
    steps = _sorted_steps(workflow)

    nodes = [_make_node(step, index, start, spacing) for index, step in enumerate(steps)]
    edges = _sequential_edges(steps) + _reference_edges(steps)

    logger.debug(
        "Generated graph for %r: %d nodes, %d edges", workflow.name, len(nodes), len(edges)
    )
    return {
        "nodes": nodes,
        "edges": edges,
        "workflowName": workflow.name,
    }


def node_color(command_name: str) -> str:
    return _COMMAND_COLORS.get(command_name, _DEFAULT_COLOR)


def format_arguments(step: Step) -> list[str]:
    """Format each argument of a step's command as DSL text."""
    if step.command is None:
        return []
    return [format_expression(arg) for arg in step.command.arguments]


def describe_step(step: Step) -> str:
    """Canonical re-serialization of a step's command: ``name(arg, ...)``."""
    if step.command is None:
        return "unknown()"
    return f"{step.command.name}({', '.join(format_arguments(step))})"


# ---------------------------------------------------------------------------
# Nodes and edges
# ---------------------------------------------------------------------------

def _first_workflow(program: Program) -> Workflow:
    if not isinstance(program, Program) or not program.workflows:
        raise GenerationError("No valid workflows found in AST")
    return program.workflows[0]


def _sorted_steps(workflow: Workflow) -> list[Step]:
    return sorted(workflow.all_steps(include_branches=True), key=lambda s: s.number)


def _make_node(
    step: Step,
    index: int,
    start: tuple[int, int],
    spacing: tuple[int, int],
) -> dict[str, Any]:
    command = step.command.name if step.command else "unknown"
    return {
        "id": f"step-{step.number}",
        "type": "default",
        "position": {
            "x": start[0] + index * spacing[0],
            "y": start[1] + index * spacing[1],
        },
        "data": {
            "label": f"Step {step.number}",
            "stepNumber": step.number,
            "command": command,
            "arguments": format_arguments(step),
            "description": describe_step(step),
        },
        "style": {
            "background": node_color(command),
            "border": "1px solid #ccc",
            "borderRadius": "8px",
            "padding": "10px",
            "minWidth": "150px",
        },
    }


def _sequential_edges(steps: list[Step]) -> list[dict[str, Any]]:
    edges = []
    for current, nxt in zip(steps, steps[1:]):
        edges.append({
            "id": f"edge-{current.number}-{nxt.number}",
            "source": f"step-{current.number}",
            "target": f"step-{nxt.number}",
            "type": "smoothstep",
            "animated": False,
            "style": {"stroke": "#333", "strokeWidth": 2},
        })
    return edges


def _reference_edges(steps: list[Step]) -> list[dict[str, Any]]:
    """One dashed edge per step reference, from the referenced step to the reader."""
    edges = []
    for reader, referenced in StepGraph.from_steps(steps).references():
        edges.append({
            "id": f"ref-edge-{reader}-{referenced}",
            "source": f"step-{referenced}",
            "target": f"step-{reader}",
            "type": "smoothstep",
            "animated": True,
            "style": {
                "stroke": "#ff6b6b",
                "strokeWidth": 2,
                "strokeDasharray": "5,5",
            },
            "label": DATA_FLOW_LABEL,
        })
    return edges


# ---------------------------------------------------------------------------
# Mermaid
# ---------------------------------------------------------------------------

def generate_mermaid(program: Program) -> str:
    """Generate a Mermaid flowchart for the first workflow of a Program."""
    workflow = _first_workflow(program)
    steps = _sorted_steps(workflow)
    lines: list[str] = ["graph TD"]

    for step in steps:
        command = step.command.name if step.command else "unknown"
        lines.append(f"    step_{step.number}[Step {step.number}\\n{command}]")

    conditionals = [item for item in workflow.steps if isinstance(item, ConditionalStatement)]
    for index, cond in enumerate(conditionals, start=1):
        label = format_expression(cond.condition).replace('"', "'")
        lines.append(f'    cond_{index}{{"if {label}"}}')

    lines.append("")

    for current, nxt in zip(steps, steps[1:]):
        lines.append(f"    step_{current.number} --> step_{nxt.number}")

    for reader, referenced in StepGraph.from_steps(steps).references():
        lines.append(f"    step_{referenced} -.->|{DATA_FLOW_LABEL}| step_{reader}")

    for index, cond in enumerate(conditionals, start=1):
        for step in cond.if_steps:
            lines.append(f"    cond_{index} -->|then| step_{step.number}")
        for step in cond.else_steps:
            lines.append(f"    cond_{index} -->|else| step_{step.number}")

    lines.append("")

    for step in steps:
        command = step.command.name if step.command else "unknown"
        lines.append(f"    style step_{step.number} fill:{node_color(command)},stroke:#ccc")

    return "\n".join(lines)
