"""Converter: graph model -> stepflow DSL source.

This is a best-effort inverse of :func:`stepflow.graph.generate_graph`. It
rebuilds one flat ``workflow { step N: cmd(args) }`` block from node
descriptions and data-flow edges. Variable declarations and conditional
structure are not part of the graph model and are not reconstructed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from .ast_nodes import (
    Command,
    Expression,
    StepReference,
    StringLiteral,
    format_expression,
)
from .errors import ConversionError, StepflowError
from .graph import DATA_FLOW_LABEL
from .lexer import tokenize
from .parser import Parser

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_NAME = "MyWorkflow"

_DESCRIPTION_RE = re.compile(r"^\s*(\w+)\((.*)\)\s*$", re.DOTALL)


class Converter:
    """Converts a graph model back to DSL text."""

    def __init__(self, indent_size: int = 2):
        self.indent_size = indent_size

    def convert(self, graph: Mapping[str, Any]) -> str:
        """Convert a ``{nodes, edges}`` mapping to a DSL string.

        Raises ConversionError when the graph lacks a nodes or edges list.
        """
        if not isinstance(graph, Mapping):
            raise ConversionError("Invalid graph data structure")
        nodes = graph.get("nodes")
        edges = graph.get("edges")
        if not isinstance(nodes, list) or not isinstance(edges, list):
            raise ConversionError("Invalid graph data structure: expected 'nodes' and 'edges' lists")

        name = self._workflow_name(graph, nodes)
        steps = self._extract_steps(nodes, edges)
        logger.debug("Converting graph %r with %d step(s)", name, len(steps))
        return self._render(name, steps)

    # --- Extraction ---

    def _workflow_name(self, graph: Mapping[str, Any], nodes: list) -> str:
        if graph.get("workflowName"):
            return str(graph["workflowName"])
        for node in nodes:
            data = _node_data(node)
            if data.get("workflowName"):
                return str(data["workflowName"])
        return DEFAULT_WORKFLOW_NAME

    def _extract_steps(self, nodes: list, edges: list) -> list[tuple[int, Command]]:
        by_number: dict[int, Mapping[str, Any]] = {}
        for node in nodes:
            data = _node_data(node)
            number = data.get("stepNumber")
            if isinstance(number, int) and not isinstance(number, bool) and number:
                by_number[number] = data

        steps = []
        for number in sorted(by_number):
            command = parse_description(by_number[number].get("description"))
            references = _incoming_references(number, edges)
            if references:
                command = Command(
                    name=command.name,
                    arguments=tuple(_retag(arg, references) for arg in command.arguments),
                )
            steps.append((number, command))
        return steps

    # --- Rendering ---

    def _render(self, name: str, steps: list[tuple[int, Command]]) -> str:
        indent = " " * self.indent_size
        escaped = name.replace("\\", "\\\\").replace('"', '\\"')
        lines = [f'workflow "{escaped}" {{']
        for number, command in steps:
            args = ", ".join(format_expression(arg) for arg in command.arguments)
            lines.append(f"{indent}step {number}: {command.name}({args})")
        lines.append("}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse_description(description: Any) -> Command:
    """Parse a node description like ``fetch("url", step 1)`` into a Command."""
    if not isinstance(description, str):
        return Command(name="unknown")
    match = _DESCRIPTION_RE.match(description)
    if not match:
        return Command(name="unknown")
    try:
        arguments = Parser(tokenize(match.group(2))).parse_arguments()
    except StepflowError as exc:
        logger.debug("Unreadable arguments in %r: %s", description, exc)
        return Command(name="unknown")
    return Command(name=match.group(1), arguments=arguments)


def _node_data(node: Any) -> Mapping[str, Any]:
    if isinstance(node, Mapping) and isinstance(node.get("data"), Mapping):
        return node["data"]
    return {}


def _incoming_references(step_number: int, edges: list) -> list[int]:
    """Step numbers that feed ``step_number`` through a data-flow edge."""
    target = f"step-{step_number}"
    references = []
    for edge in edges:
        if not isinstance(edge, Mapping):
            continue
        if edge.get("target") != target or edge.get("label") != DATA_FLOW_LABEL:
            continue
        source = str(edge.get("source", ""))
        if source.startswith("step-") and source[5:].isdigit():
            references.append(int(source[5:]))
    return references


def _retag(arg: Expression, references: list[int]) -> Expression:
    if isinstance(arg, StringLiteral) and arg.value.isdigit() and int(arg.value) in references:
        return StepReference(step_number=int(arg.value))
    return arg


def convert_to_dsl(graph: Mapping[str, Any]) -> str:
    """Convert a graph model to DSL text with a default Converter."""
    return Converter().convert(graph)
