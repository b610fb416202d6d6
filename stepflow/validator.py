"""Semantic validator for stepflow ASTs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .ast_nodes import (
    BinaryExpression,
    ComparisonExpression,
    ConditionalStatement,
    Expression,
    NumberLiteral,
    Program,
    PropertyAccess,
    Step,
    StepReference,
    StringLiteral,
    Workflow,
    iter_identifiers,
    iter_step_references,
)
from .depgraph import StepGraph
from .errors import ValidationError
from .lexer import BUILTIN_COMMANDS

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Errors break validity; warnings are advisory only."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }

    def raise_for_errors(self) -> None:
        """Raise ValidationError listing every error, if any."""
        if self.errors:
            raise ValidationError("; ".join(self.errors))


class Validator:
    """Validates a stepflow Program for semantic correctness.

    Each call to :meth:`validate` starts from empty accumulators, so one
    instance can be reused across programs.
    """

    def __init__(self, known_commands: Iterable[str] | None = None):
        self.known_commands = frozenset(
            BUILTIN_COMMANDS if known_commands is None else known_commands
        )

    def validate(self, program: Program) -> ValidationResult:
        """Run every check and return a fresh ValidationResult. Never raises."""
        result = ValidationResult()
        if not isinstance(program, Program):
            result.errors.append("Invalid AST structure")
            return result

        declared = self._validate_variables(program, result)
        for workflow in program.workflows:
            self._validate_workflow(workflow, declared, result)

        logger.debug(
            "Validated %d workflow(s): %d error(s), %d warning(s)",
            len(program.workflows), len(result.errors), len(result.warnings),
        )
        return result

    # --- Program level ---

    def _validate_variables(self, program: Program, result: ValidationResult) -> set[str]:
        declared: set[str] = set()
        for decl in program.variables:
            if decl.name in declared:
                result.warnings.append(
                    f'Variable "{decl.name}" is declared more than once; the last declaration wins'
                )
            declared.add(decl.name)
        all_names = {decl.name for decl in program.variables}
        for decl in program.variables:
            for ident in iter_identifiers(decl.value):
                if ident.name not in all_names:
                    result.warnings.append(
                        f'Undefined variable "{ident.name}" in declaration of "{decl.name}"'
                    )
        return all_names

    # --- Workflow level ---

    def _validate_workflow(
        self,
        workflow: Workflow,
        declared: set[str],
        result: ValidationResult,
    ) -> None:
        if not workflow.name:
            result.errors.append("Workflow missing name")
            return

        if not workflow.steps:
            result.warnings.append(f'Workflow "{workflow.name}" has no steps')
            return

        steps = workflow.all_steps(include_branches=True)
        numbers = self._validate_unique_numbers(workflow, steps, result)

        for step in steps:
            self._validate_step(step, workflow, numbers, declared, result)

        for item in workflow.steps:
            if isinstance(item, ConditionalStatement):
                self._validate_condition(item, workflow, numbers, declared, result)

        self._validate_no_cycles(workflow, result)

    def _validate_unique_numbers(
        self,
        workflow: Workflow,
        steps: list[Step],
        result: ValidationResult,
    ) -> set:
        seen: set = set()
        for step in steps:
            if step.number in seen:
                result.errors.append(
                    f'Duplicate step number {step.number} in workflow "{workflow.name}"'
                )
            else:
                seen.add(step.number)
        return seen

    def _validate_step(
        self,
        step: Step,
        workflow: Workflow,
        numbers: set,
        declared: set[str],
        result: ValidationResult,
    ) -> None:
        if not _is_step_number(step.number):
            result.errors.append(f'Invalid step number in workflow "{workflow.name}"')
            return

        command = step.command
        if command is None:
            result.errors.append(
                f'Step {step.number} in workflow "{workflow.name}" has no command'
            )
            return
        if not command.name:
            result.errors.append(
                f'Step {step.number} in workflow "{workflow.name}" has no command name'
            )
            return

        if command.name not in self.known_commands:
            result.warnings.append(
                f'Unknown command "{command.name}" in step {step.number} '
                f'of workflow "{workflow.name}"'
            )

        for index, arg in enumerate(command.arguments):
            self._validate_literals(arg, index, step, workflow, result)
            for ref in iter_step_references(arg):
                self._validate_reference(ref, index, step, workflow, numbers, result)
            for ident in iter_identifiers(arg):
                if ident.name not in declared:
                    result.warnings.append(
                        f'Undefined variable "{ident.name}" in step {step.number} '
                        f'of workflow "{workflow.name}"'
                    )

    def _validate_literals(
        self,
        arg: Expression,
        index: int,
        step: Step,
        workflow: Workflow,
        result: ValidationResult,
    ) -> None:
        where = f'at position {index} in step {step.number} of workflow "{workflow.name}"'
        if isinstance(arg, StringLiteral):
            if not isinstance(arg.value, str):
                result.errors.append(f"Invalid string argument {where}")
        elif isinstance(arg, NumberLiteral):
            if isinstance(arg.value, bool) or not isinstance(arg.value, (int, float)):
                result.errors.append(f"Invalid number argument {where}")
        elif isinstance(arg, BinaryExpression):
            self._validate_literals(arg.left, index, step, workflow, result)
            self._validate_literals(arg.right, index, step, workflow, result)
        elif isinstance(arg, PropertyAccess):
            self._validate_literals(arg.object, index, step, workflow, result)

    def _validate_reference(
        self,
        ref: StepReference,
        index: int,
        step: Step,
        workflow: Workflow,
        numbers: set,
        result: ValidationResult,
    ) -> None:
        prefix = f'Step {step.number} in workflow "{workflow.name}"'
        if not _is_step_number(ref.step_number):
            result.errors.append(
                f'Invalid step reference at position {index} in step {step.number} '
                f'of workflow "{workflow.name}"'
            )
            return
        if ref.step_number not in numbers:
            result.errors.append(f"{prefix} references non-existent step {ref.step_number}")
            return
        if ref.step_number == step.number:
            result.errors.append(f"{prefix} references itself")
            return
        if ref.step_number > step.number:
            result.warnings.append(f"{prefix} references future step {ref.step_number}")

    def _validate_condition(
        self,
        conditional: ConditionalStatement,
        workflow: Workflow,
        numbers: set,
        declared: set[str],
        result: ValidationResult,
    ) -> None:
        condition = conditional.condition
        if not isinstance(condition, ComparisonExpression):
            result.errors.append(f'Invalid condition in workflow "{workflow.name}"')
            return
        for ref in iter_step_references(condition):
            if ref.step_number not in numbers:
                result.errors.append(
                    f'Condition in workflow "{workflow.name}" references '
                    f"non-existent step {ref.step_number}"
                )
        for ident in iter_identifiers(condition):
            if ident.name not in declared:
                result.warnings.append(
                    f'Undefined variable "{ident.name}" in condition '
                    f'of workflow "{workflow.name}"'
                )

    def _validate_no_cycles(self, workflow: Workflow, result: ValidationResult) -> None:
        """Cycle detection over top-level steps only; branches are not descended into."""
        cycle = StepGraph.from_workflow(workflow, include_branches=False).find_cycle()
        if cycle:
            logger.debug("Cycle in %r: %s", workflow.name, " -> ".join(map(str, cycle)))
            result.errors.append(f'Circular reference detected in workflow "{workflow.name}"')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_step_number(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def validate(program: Program, known_commands: Iterable[str] | None = None) -> ValidationResult:
    """Validate a Program with a fresh Validator."""
    return Validator(known_commands=known_commands).validate(program)
