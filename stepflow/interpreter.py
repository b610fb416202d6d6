"""Tree-walking interpreter for stepflow programs.

Commands have no real effects: each built-in command maps to a handler that
returns a simulated result record, and unknown commands fall back to a
generic "completed" record. Nothing here raises for a well-formed AST.

Value semantics
---------------
``+``
    Numeric sum when both operands are numbers; otherwise the text forms of
    both operands are concatenated (``"x" + 1 == "x1"``).
``==`` / ``!=``
    Loose equality. Numbers compare numerically, also against numeric text
    (``1 == "1"``). ``None`` equals only ``None``. Any other pair of
    different types compares by text form.
``>`` ``<`` ``>=`` ``<=``
    Text against text compares lexicographically; otherwise both sides must
    be numbers or numeric text and compare numerically. Any other pair is
    False.
``step N.prop``
    ``status`` or any other key of step N's result record; ``None`` when the
    step has not run or the key is absent.
"""

from __future__ import annotations

import json
import logging
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from .ast_nodes import (
    BinaryExpression,
    ComparisonExpression,
    ConditionalStatement,
    Expression,
    Identifier,
    NumberLiteral,
    Program,
    PropertyAccess,
    Step,
    StepReference,
    StringLiteral,
    Workflow,
    WorkflowItem,
    format_expression,
)
from .logging import ExecutionLogger, PipelineLog

logger = logging.getLogger(__name__)

# Plain decimal text only: no "_" separators, exponents, "nan" or "inf".
_NUMERIC_TEXT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


# ---------------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------------

@dataclass
class ExecutionState:
    """Variable environment and step-result table for one run."""
    variables: dict[str, Any] = field(default_factory=dict)
    step_results: dict[int, dict[str, Any]] = field(default_factory=dict)


@dataclass
class ExecutionContext:
    """Runtime context available to command handlers."""
    state: ExecutionState
    output: list[str] = field(default_factory=list)

    def write(self, message: Any) -> None:
        """Record a line of simulated output."""
        self.output.append(to_text(message))


# ---------------------------------------------------------------------------
# Command handler registry
# ---------------------------------------------------------------------------

# Handler signature: (command name, evaluated args, context) -> result record
CommandHandler = Callable[[str, list, ExecutionContext], dict]

_HANDLERS: dict[str, CommandHandler] = {}


def register_command(name: str, handler: CommandHandler) -> None:
    """Register a handler for a command name."""
    _HANDLERS[name] = handler


def get_handler(name: str) -> CommandHandler | None:
    """Get the registered handler for a command name."""
    return _HANDLERS.get(name)


def _arg(args: list, index: int) -> Any:
    return args[index] if index < len(args) else None


def _handle_print(name: str, args: list, ctx: ExecutionContext) -> dict:
    message = _arg(args, 0)
    ctx.write(message)
    return {"type": name, "output": message}


def _handle_fetch(name: str, args: list, ctx: ExecutionContext) -> dict:
    return {
        "type": name,
        "url": _arg(args, 0),
        "status": "success",
        "data": {"message": "Mock data from API"},
    }


def _handle_send_email(name: str, args: list, ctx: ExecutionContext) -> dict:
    return {"type": name, "to": _arg(args, 0), "data": _arg(args, 1), "status": "sent"}


def _handle_notify(name: str, args: list, ctx: ExecutionContext) -> dict:
    return {"type": name, "to": _arg(args, 0), "message": _arg(args, 1), "status": "sent"}


def _handle_generic(name: str, args: list, ctx: ExecutionContext) -> dict:
    return {"type": name, "status": "completed", "data": list(args)}


register_command("print", _handle_print)
register_command("log", _handle_print)
register_command("fetch", _handle_fetch)
register_command("send_email", _handle_send_email)
register_command("notify", _handle_notify)


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------

def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_text(value: Any) -> str:
    """Text form of a runtime value, used by concatenation and loose equality."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if is_number(value):
        return str(value)
    return json.dumps(value, default=str)


def _as_number(value: Any) -> float | None:
    if is_number(value):
        return value
    if isinstance(value, str) and _NUMERIC_TEXT_RE.fullmatch(value.strip()):
        return float(value.strip())
    return None


def add(left: Any, right: Any) -> Any:
    """The dual ``+``: numeric sum or text concatenation."""
    if is_number(left) and is_number(right):
        return left + right
    return to_text(left) + to_text(right)


def loose_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    if is_number(left) or is_number(right):
        a, b = _as_number(left), _as_number(right)
        if a is not None and b is not None:
            return a == b
    if type(left) is type(right):
        return left == right
    return to_text(left) == to_text(right)


_ORDERINGS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def compare(op: str, left: Any, right: Any) -> bool:
    """Evaluate a comparison operator on two runtime values."""
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    ordering = _ORDERINGS.get(op)
    if ordering is None:
        return False
    if isinstance(left, str) and isinstance(right, str):
        return ordering(left, right)
    a, b = _as_number(left), _as_number(right)
    if a is None or b is None:
        return False
    return ordering(a, b)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class WorkflowRun:
    """Outcome of executing one workflow."""
    name: str
    step_results: dict[int, dict[str, Any]]
    log: PipelineLog

    @property
    def branches_taken(self) -> list[str]:
        return self.log.branches


@dataclass
class ExecutionResult:
    """Result of executing a program."""
    variables: dict[str, Any] = field(default_factory=dict)
    runs: list[WorkflowRun] = field(default_factory=list)
    output: list[str] = field(default_factory=list)

    def run(self, name: str) -> WorkflowRun | None:
        for r in self.runs:
            if r.name == name:
                return r
        return None

    def to_dict(self) -> dict:
        return {
            "variables": self.variables,
            "workflows": [
                {
                    "name": r.name,
                    "stepResults": {str(k): v for k, v in r.step_results.items()},
                    "log": r.log.to_dict(),
                }
                for r in self.runs
            ],
            "output": self.output,
        }

    def summary(self) -> str:
        lines = []
        if self.variables:
            lines.append("Variables:")
            for name, value in self.variables.items():
                lines.append(f"  {name} = {json.dumps(value, default=str)}")
        for r in self.runs:
            if lines:
                lines.append("")
            lines.append(r.log.summary())
        if self.output:
            lines.append("")
            lines.append("Output:")
            for line in self.output:
                lines.append(f"  📤 {line}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------

class Interpreter:
    """Executes a Program: variables first, then each workflow in order.

    Each workflow gets a fresh step-result table; variables are shared by
    all workflows of the run.
    """

    def __init__(self, handlers: dict[str, CommandHandler] | None = None):
        self.handlers = dict(handlers or {})

    def execute(self, program: Program) -> ExecutionResult:
        """Execute a program and return its trace."""
        state = ExecutionState()
        result = ExecutionResult(variables=state.variables)

        for decl in program.variables:
            value = self.evaluate(decl.value, state)
            state.variables[decl.name] = value
            logger.debug("Set %s %s = %r", decl.keyword, decl.name, value)

        for workflow in program.workflows:
            result.runs.append(self._execute_workflow(workflow, state, result.output))

        return result

    def evaluate(self, expr: Expression, state: ExecutionState | None = None) -> Any:
        """Evaluate an expression against a state (empty by default)."""
        if state is None:
            state = ExecutionState()
        if isinstance(expr, StringLiteral):
            return expr.value
        if isinstance(expr, NumberLiteral):
            return expr.value
        if isinstance(expr, Identifier):
            return state.variables.get(expr.name)
        if isinstance(expr, BinaryExpression):
            return add(self.evaluate(expr.left, state), self.evaluate(expr.right, state))
        if isinstance(expr, StepReference):
            return state.step_results.get(expr.step_number)
        if isinstance(expr, PropertyAccess):
            record = self.evaluate(expr.object, state)
            if isinstance(record, dict):
                return record.get(expr.property)
            return None
        if isinstance(expr, ComparisonExpression):
            return self.evaluate_condition(expr, state)
        return None

    def evaluate_condition(self, condition: ComparisonExpression, state: ExecutionState) -> bool:
        left = self.evaluate(condition.left, state)
        right = self.evaluate(condition.right, state)
        return compare(condition.operator, left, right)

    # --- Workflows and steps ---

    def _execute_workflow(self, workflow: Workflow, state: ExecutionState,
                          output: list[str]) -> WorkflowRun:
        state.step_results = {}
        ctx = ExecutionContext(state=state, output=output)
        trace = ExecutionLogger(workflow.name)
        logger.debug("Executing workflow %r (%d items)", workflow.name, len(workflow.steps))

        for item in workflow.steps:
            self._execute_item(item, ctx, trace)

        return WorkflowRun(
            name=workflow.name,
            step_results=state.step_results,
            log=trace.finish(),
        )

    def _execute_item(self, item: WorkflowItem, ctx: ExecutionContext,
                      trace: ExecutionLogger) -> None:
        if isinstance(item, ConditionalStatement):
            self._execute_conditional(item, ctx, trace)
        elif isinstance(item, Step):
            self._execute_step(item, ctx, trace)

    def _execute_step(self, step: Step, ctx: ExecutionContext, trace: ExecutionLogger) -> None:
        command = step.command
        if command is None:
            trace.skip_step(step.number, "unknown", reason="No command")
            return

        args = [self.evaluate(arg, ctx.state) for arg in command.arguments]
        trace.start_step(step.number, command.name, arguments=args)

        handler = self.handlers.get(command.name) or get_handler(command.name) or _handle_generic
        record = handler(command.name, args, ctx)
        ctx.state.step_results[step.number] = record

        trace.complete_step(step.number, output=record)
        logger.debug("Step %d %s -> %r", step.number, command.name, record)

    def _execute_conditional(self, cond: ConditionalStatement, ctx: ExecutionContext,
                             trace: ExecutionLogger) -> None:
        met = self.evaluate_condition(cond.condition, ctx.state)
        label = format_expression(cond.condition)
        if met:
            trace.branch(f"if ({label}): then (condition met)")
            taken, skipped, reason = cond.if_steps, cond.else_steps, "else branch not taken"
        else:
            trace.branch(f"if ({label}): else (condition not met)")
            taken, skipped, reason = cond.else_steps, cond.if_steps, "if branch not taken"

        for step in taken:
            self._execute_item(step, ctx, trace)
        for step in skipped:
            name = step.command.name if step.command else "unknown"
            trace.skip_step(step.number, name, reason=reason)


def execute(program: Program) -> ExecutionResult:
    """Execute a Program with a default Interpreter."""
    return Interpreter().execute(program)
