"""Recursive-descent parser for stepflow — transforms tokens into an AST."""

from __future__ import annotations

import logging
from typing import NoReturn

from .ast_nodes import (
    COMPARISON_OPERATORS,
    BinaryExpression,
    Command,
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
    VariableDeclaration,
    Workflow,
    WorkflowItem,
)
from .errors import DSLSyntaxError
from .lexer import STRUCTURAL_KEYWORDS, Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

DECLARATION_KEYWORDS = ("let", "var", "const")


class Parser:
    """Consumes a token list with one token of lookahead.

    There is no error recovery inside a workflow: the first grammar
    violation raises DSLSyntaxError. Tokens that start neither a workflow
    nor a declaration at top level are skipped unless ``strict`` is set.
    """

    def __init__(self, tokens: list[Token], strict: bool = False):
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            raise ValueError("Token list must end with an EOF token")
        self.tokens = tokens
        self.strict = strict
        self.current = 0

    # --- Top-level ---

    def parse(self) -> Program:
        self.current = 0
        variables: list[VariableDeclaration] = []
        workflows: list[Workflow] = []

        while not self._at_end():
            token = self._peek()
            if token.is_keyword("workflow"):
                workflows.append(self._parse_workflow())
            elif token.kind is TokenKind.KEYWORD and token.value in DECLARATION_KEYWORDS:
                variables.append(self._parse_declaration())
            elif self.strict:
                self._fail("Expected workflow or variable declaration")
            else:
                logger.debug("Skipping top-level token %s at %d", token.describe(), token.offset)
                self._advance()

        return Program(variables=tuple(variables), workflows=tuple(workflows))

    def _parse_declaration(self) -> VariableDeclaration:
        keyword = self._advance()
        name = self._consume(TokenKind.IDENTIFIER, None, "Expected variable name")
        self._consume(TokenKind.PUNCT, "=", "Expected '=' after variable name")
        value = self._parse_argument()
        return VariableDeclaration(
            keyword=str(keyword.value),
            name=str(name.value),
            value=value,
            offset=keyword.offset,
        )

    def _parse_workflow(self) -> Workflow:
        start = self._consume(TokenKind.KEYWORD, "workflow", "Expected 'workflow'")
        name = self._consume(TokenKind.STRING, None, "Expected workflow name")
        self._consume(TokenKind.PUNCT, "{", "Expected '{' after workflow name")

        steps: list[WorkflowItem] = []
        while not self._check(TokenKind.PUNCT, "}") and not self._at_end():
            if self._check(TokenKind.KEYWORD, "if"):
                steps.append(self._parse_conditional())
            else:
                steps.append(self._parse_step())

        self._consume(TokenKind.PUNCT, "}", "Expected '}' to close workflow")
        return Workflow(name=str(name.value), steps=tuple(steps), offset=start.offset)

    # --- Workflow body ---

    def _parse_step(self) -> Step:
        start = self._consume(TokenKind.KEYWORD, "step", "Expected 'step'")
        number = self._consume(TokenKind.NUMBER, None, "Expected step number")
        self._consume(TokenKind.PUNCT, ":", "Expected ':' after step number")
        command = self._parse_command()
        return Step(number=int(number.value), command=command, offset=start.offset)

    def _parse_conditional(self) -> ConditionalStatement:
        start = self._consume(TokenKind.KEYWORD, "if", "Expected 'if'")
        self._consume(TokenKind.PUNCT, "(", "Expected '(' after 'if'")
        condition = self._parse_comparison()
        self._consume(TokenKind.PUNCT, ")", "Expected ')' after condition")

        if_steps = self._parse_block("if")
        else_steps: tuple[Step, ...] = ()
        if self._match(TokenKind.KEYWORD, "else"):
            else_steps = self._parse_block("else")

        return ConditionalStatement(
            condition=condition,
            if_steps=if_steps,
            else_steps=else_steps,
            offset=start.offset,
        )

    def _parse_block(self, label: str) -> tuple[Step, ...]:
        self._consume(TokenKind.PUNCT, "{", f"Expected '{{' to open {label} block")
        steps: list[Step] = []
        while not self._check(TokenKind.PUNCT, "}") and not self._at_end():
            steps.append(self._parse_step())
        self._consume(TokenKind.PUNCT, "}", f"Expected '}}' to close {label} block")
        return tuple(steps)

    def _parse_command(self) -> Command:
        token = self._peek()
        is_name = token.kind is TokenKind.IDENTIFIER or (
            token.kind is TokenKind.KEYWORD and token.value not in STRUCTURAL_KEYWORDS
        )
        if not is_name:
            self._fail("Expected command name")
        self._advance()
        self._consume(TokenKind.PUNCT, "(", "Expected '(' after command name")

        args: list[Expression] = []
        if not self._check(TokenKind.PUNCT, ")"):
            while True:
                if self._at_end():
                    self._fail("Unexpected end of input")
                args.append(self._parse_argument())
                if not self._match(TokenKind.PUNCT, ","):
                    break
            if not self._check(TokenKind.PUNCT, ")"):
                self._fail("Expected ',' or ')' in command arguments")

        self._consume(TokenKind.PUNCT, ")", "Expected ')' to close command arguments")
        return Command(name=str(token.value), arguments=tuple(args))

    def parse_arguments(self) -> tuple[Expression, ...]:
        """Parse a bare comma-separated argument list spanning the whole input."""
        self.current = 0
        args: list[Expression] = []
        if self._at_end():
            return ()
        while True:
            args.append(self._parse_argument())
            if not self._match(TokenKind.PUNCT, ","):
                break
        if not self._at_end():
            self._fail("Expected ',' or end of arguments")
        return tuple(args)

    # --- Expressions ---

    def _parse_comparison(self) -> ComparisonExpression:
        left = self._parse_argument()
        token = self._peek()
        if token.kind is not TokenKind.PUNCT or token.value not in COMPARISON_OPERATORS:
            self._fail("Expected comparison operator")
        self._advance()
        right = self._parse_argument()
        return ComparisonExpression(
            operator=str(token.value),
            left=left,
            right=right,
            offset=token.offset,
        )

    def _parse_argument(self) -> Expression:
        left = self._parse_primary()
        while self._check(TokenKind.PUNCT, "+"):
            op = self._advance()
            right = self._parse_primary()
            left = BinaryExpression(left=left, right=right, operator="+", offset=op.offset)
        return left

    def _parse_primary(self) -> Expression:
        token = self._peek()
        if token.kind is TokenKind.STRING:
            self._advance()
            return StringLiteral(value=str(token.value), offset=token.offset)
        if token.kind is TokenKind.NUMBER:
            self._advance()
            return NumberLiteral(value=int(token.value), offset=token.offset)
        if token.kind is TokenKind.IDENTIFIER:
            self._advance()
            return Identifier(name=str(token.value), offset=token.offset)
        if token.is_keyword("step"):
            self._advance()
            number = self._consume(TokenKind.NUMBER, None, "Expected step number after 'step'")
            ref: Expression = StepReference(step_number=int(number.value), offset=token.offset)
            if self._match(TokenKind.PUNCT, "."):
                prop = self._peek()
                if prop.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
                    self._fail("Expected property name after '.'")
                self._advance()
                ref = PropertyAccess(object=ref, property=str(prop.value), offset=token.offset)
            return ref
        if token.kind is TokenKind.EOF:
            self._fail("Unexpected end of input")
        self._fail("Expected argument")

    # --- Token helpers ---

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        token = self._peek()
        if not self._at_end():
            self.current += 1
        return token

    def _check(self, kind: TokenKind, value=None) -> bool:
        token = self._peek()
        return token.kind is kind and (value is None or token.value == value)

    def _match(self, kind: TokenKind, value=None) -> bool:
        if self._check(kind, value):
            self._advance()
            return True
        return False

    def _consume(self, kind: TokenKind, value, message: str) -> Token:
        if self._check(kind, value):
            return self._advance()
        self._fail(message)

    def _fail(self, message: str) -> NoReturn:
        token = self._peek()
        if token.kind is TokenKind.EOF and "end of input" not in message:
            message = f"{message}, got end of input"
        raise DSLSyntaxError(
            message,
            token=token,
            offset=token.offset,
            line=token.line,
            column=token.column,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(source: str, strict: bool = False) -> Program:
    """Parse stepflow source code and return a Program AST.

    Raises LexicalError or DSLSyntaxError on the first violation.
    """
    return Parser(tokenize(source), strict=strict).parse()
