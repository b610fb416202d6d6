"""Orchestration: source text -> AST -> validation -> graph, in one call."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .ast_nodes import ConditionalStatement, Program, Step, program_to_dict
from .converter import Converter
from .errors import ConversionError, GenerationError, StepflowError
from .graph import generate_graph
from .lexer import BUILTIN_COMMANDS
from .parser import parse
from .validator import ValidationResult, Validator

logger = logging.getLogger(__name__)


SYNTAX_EXAMPLES = {
    "basic": '''workflow "MyFlow" {
  step 1: fetch("https://api.com")
  step 2: summarize(step 1)
  step 3: send_email("user@example.com", step 2)
}''',
    "withComments": '''// This is a comment
workflow "DataPipeline" {
  /* Multi-line comment
     describing the workflow */
  step 1: fetch("https://data.com/api")
  step 2: filter(step 1, "active")
  step 3: transform(step 2, "format")
  step 4: store(step 3, "database")
}''',
    "complex": '''workflow "AnalyticsPipeline" {
  step 1: fetch("https://api.analytics.com/data")
  step 2: analyze(step 1, "trends")
  step 3: filter(step 2, "significant")
  step 4: summarize(step 3)
  step 5: notify("admin@company.com", step 4)
  step 6: store(step 5, "reports")
}''',
    "variables": '''let greeting = "Hello, "
let user = "team"
const retries = 3
workflow "Greeting" {
  step 1: print(greeting + user)
  step 2: log("retries: " + retries)
}''',
    "conditional": '''workflow "Alerting" {
  step 1: fetch("https://api.com/metrics")
  if (step 1.status == "success") {
    step 2: notify("ops@example.com", "metrics fetched")
  } else {
    step 3: log("fetch failed")
  }
}''',
}

# Human-readable phrasing for describe_steps
_STEP_PHRASES = {
    "fetch": "Fetch data from URL",
    "summarize": "Summarize data",
    "send_email": "Send an email",
    "analyze": "Analyze data",
    "filter": "Filter data",
    "transform": "Transform data",
    "store": "Store data",
    "notify": "Send a notification",
    "print": "Print a message",
    "log": "Log a message",
}


@dataclass
class ParseOutcome:
    """Combined result of parse + validate + generate."""
    success: bool
    validation: ValidationResult
    graph: dict[str, Any] | None = None
    ast: Program | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "reactFlowData": self.graph,
            "validation": self.validation.to_dict(),
            "ast": program_to_dict(self.ast) if self.ast is not None else None,
            "error": self.error,
        }


def parse_dsl(source: str, known_commands: Iterable[str] | None = None) -> ParseOutcome:
    """Parse, validate and (when valid) generate the graph for source text.

    Parse failures never propagate: they come back as ``success=False``
    with the error message as the only validation error.
    """
    try:
        ast = parse(source)
    except StepflowError as e:
        logger.debug("Parse failed: %s", e)
        return ParseOutcome(
            success=False,
            validation=ValidationResult(errors=[str(e)]),
            error=str(e),
        )

    validation = Validator(known_commands=known_commands).validate(ast)
    if not validation.is_valid:
        return ParseOutcome(success=False, validation=validation, ast=ast)

    try:
        graph = generate_graph(ast)
    except GenerationError as e:
        return ParseOutcome(success=False, validation=validation, ast=ast, error=str(e))

    return ParseOutcome(success=True, validation=validation, graph=graph, ast=ast)


def convert_to_dsl(graph: Mapping[str, Any]) -> str:
    """Convert a graph model back to DSL text.

    Raises ConversionError prefixed with "Failed to convert to DSL".
    """
    try:
        return Converter().convert(graph)
    except ConversionError as e:
        raise ConversionError(f"Failed to convert to DSL: {e.message}") from e


def supported_commands() -> list[str]:
    return list(BUILTIN_COMMANDS)


def describe_steps(program: Program) -> list[str]:
    """One human-readable line per step of every workflow."""
    lines: list[str] = []
    for workflow in program.workflows:
        for item in workflow.steps:
            if isinstance(item, ConditionalStatement):
                lines.append("Conditional logic")
                for step in item.if_steps:
                    lines.append(f"  if: {_describe(step)}")
                for step in item.else_steps:
                    lines.append(f"  else: {_describe(step)}")
            else:
                lines.append(_describe(item))
    return lines


def _describe(step: Step) -> str:
    name = step.command.name if step.command else "unknown"
    phrase = _STEP_PHRASES.get(name, f"Execute {name}")
    return f"Step {step.number}: {phrase}"
