"""AST node definitions for stepflow — all frozen (immutable) dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StringLiteral:
    """A quoted string: "text" or 'text'."""
    value: str
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class NumberLiteral:
    """An unsigned integer literal."""
    value: int
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Identifier:
    """A bare name, looked up in the variable environment."""
    name: str
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class StepReference:
    """The result produced by step N: `step N`."""
    step_number: int
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class PropertyAccess:
    """A property of another expression's value: `step N.status`."""
    object: Expression
    property: str
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class BinaryExpression:
    """`left + right`; `+` is the only binary operator."""
    left: Expression
    right: Expression
    operator: str = "+"
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class ComparisonExpression:
    """`left op right` used as an if-condition."""
    operator: str  # == != > < >= <=
    left: Expression
    right: Expression
    offset: int = field(default=0, compare=False)


Expression = Union[
    StringLiteral,
    NumberLiteral,
    Identifier,
    StepReference,
    PropertyAccess,
    BinaryExpression,
    ComparisonExpression,
]

COMPARISON_OPERATORS = ("==", "!=", ">", "<", ">=", "<=")


# ---------------------------------------------------------------------------
# Structural nodes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Command:
    """A command invocation: name(arg, ...)."""
    name: str
    arguments: tuple[Expression, ...] = ()


@dataclass(frozen=True)
class Step:
    """A numbered unit of work: `step N: command(...)`."""
    number: int
    command: Command | None
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class ConditionalStatement:
    """if (condition) { steps } else { steps }."""
    condition: ComparisonExpression
    if_steps: tuple[Step, ...] = ()
    else_steps: tuple[Step, ...] = ()
    offset: int = field(default=0, compare=False)


WorkflowItem = Union[Step, ConditionalStatement]


@dataclass(frozen=True)
class Workflow:
    """A named, ordered collection of steps and conditional blocks."""
    name: str
    steps: tuple[WorkflowItem, ...] = ()
    offset: int = field(default=0, compare=False)

    def all_steps(self, include_branches: bool = True) -> list[Step]:
        """Return steps in source order, optionally including branch steps."""
        found: list[Step] = []
        for item in self.steps:
            if isinstance(item, Step):
                found.append(item)
            elif include_branches and isinstance(item, ConditionalStatement):
                found.extend(item.if_steps)
                found.extend(item.else_steps)
        return found


@dataclass(frozen=True)
class VariableDeclaration:
    """let|var|const NAME = EXPR."""
    keyword: str
    name: str
    value: Expression
    offset: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Program:
    """Root AST node: variable declarations and workflows in source order."""
    variables: tuple[VariableDeclaration, ...] = ()
    workflows: tuple[Workflow, ...] = ()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def iter_step_references(expr: Expression):
    """Yield every StepReference nested anywhere inside an expression."""
    if isinstance(expr, StepReference):
        yield expr
    elif isinstance(expr, PropertyAccess):
        yield from iter_step_references(expr.object)
    elif isinstance(expr, (BinaryExpression, ComparisonExpression)):
        yield from iter_step_references(expr.left)
        yield from iter_step_references(expr.right)


def iter_identifiers(expr: Expression):
    """Yield every Identifier nested anywhere inside an expression."""
    if isinstance(expr, Identifier):
        yield expr
    elif isinstance(expr, PropertyAccess):
        yield from iter_identifiers(expr.object)
    elif isinstance(expr, (BinaryExpression, ComparisonExpression)):
        yield from iter_identifiers(expr.left)
        yield from iter_identifiers(expr.right)


def format_expression(expr: Expression) -> str:
    """Render an expression back to DSL argument syntax."""
    if isinstance(expr, StringLiteral):
        escaped = str(expr.value).replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(expr, NumberLiteral):
        return str(expr.value)
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, StepReference):
        return f"step {expr.step_number}"
    if isinstance(expr, PropertyAccess):
        return f"{format_expression(expr.object)}.{expr.property}"
    if isinstance(expr, BinaryExpression):
        return f"{format_expression(expr.left)} {expr.operator} {format_expression(expr.right)}"
    if isinstance(expr, ComparisonExpression):
        return f"{format_expression(expr.left)} {expr.operator} {format_expression(expr.right)}"
    return "unknown"


# ---------------------------------------------------------------------------
# JSON projection
# ---------------------------------------------------------------------------

def expression_to_dict(expr: Expression) -> dict[str, Any]:
    if isinstance(expr, StringLiteral):
        return {"type": "StringLiteral", "value": expr.value}
    if isinstance(expr, NumberLiteral):
        return {"type": "NumberLiteral", "value": expr.value}
    if isinstance(expr, Identifier):
        return {"type": "Identifier", "name": expr.name}
    if isinstance(expr, StepReference):
        return {"type": "StepReference", "stepNumber": expr.step_number}
    if isinstance(expr, PropertyAccess):
        return {
            "type": "PropertyAccess",
            "object": expression_to_dict(expr.object),
            "property": expr.property,
        }
    if isinstance(expr, BinaryExpression):
        return {
            "type": "BinaryExpression",
            "operator": expr.operator,
            "left": expression_to_dict(expr.left),
            "right": expression_to_dict(expr.right),
        }
    if isinstance(expr, ComparisonExpression):
        return {
            "type": "ComparisonExpression",
            "operator": expr.operator,
            "left": expression_to_dict(expr.left),
            "right": expression_to_dict(expr.right),
        }
    raise TypeError(f"Not an expression node: {expr!r}")


def _step_to_dict(step: Step) -> dict[str, Any]:
    command = None
    if step.command is not None:
        command = {
            "type": "Command",
            "name": step.command.name,
            "arguments": [expression_to_dict(a) for a in step.command.arguments],
        }
    return {"type": "Step", "number": step.number, "command": command}


def _item_to_dict(item: WorkflowItem) -> dict[str, Any]:
    if isinstance(item, ConditionalStatement):
        return {
            "type": "ConditionalStatement",
            "condition": expression_to_dict(item.condition),
            "ifSteps": [_step_to_dict(s) for s in item.if_steps],
            "elseSteps": [_step_to_dict(s) for s in item.else_steps],
        }
    return _step_to_dict(item)


def program_to_dict(program: Program) -> dict[str, Any]:
    """Project a Program to plain, JSON-serializable dicts."""
    return {
        "type": "Program",
        "variables": [
            {
                "type": "VariableDeclaration",
                "keyword": v.keyword,
                "name": v.name,
                "value": expression_to_dict(v.value),
            }
            for v in program.variables
        ],
        "workflows": [
            {
                "type": "Workflow",
                "name": w.name,
                "steps": [_item_to_dict(item) for item in w.steps],
            }
            for w in program.workflows
        ],
    }
