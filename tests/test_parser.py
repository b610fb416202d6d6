"""Tests for stepflow.parser."""

import pytest

from stepflow.ast_nodes import (
    BinaryExpression,
    ComparisonExpression,
    ConditionalStatement,
    Identifier,
    NumberLiteral,
    PropertyAccess,
    Step,
    StepReference,
    StringLiteral,
    program_to_dict,
)
from stepflow.errors import DSLSyntaxError, LexicalError, ParseError
from stepflow.lexer import tokenize
from stepflow.parser import Parser, parse


# ---------------------------------------------------------------------------
# Workflows and steps
# ---------------------------------------------------------------------------

class TestWorkflows:

    def test_basic_workflow(self, basic_ast):
        assert len(basic_ast.workflows) == 1
        wf = basic_ast.workflows[0]
        assert wf.name == "MyFlow"
        assert [s.number for s in wf.steps] == [1, 2, 3]
        assert [s.command.name for s in wf.steps] == ["fetch", "summarize", "send_email"]

    def test_step_arguments(self, basic_ast):
        step1, step2, step3 = basic_ast.workflows[0].steps
        assert step1.command.arguments == (StringLiteral("https://api.com"),)
        assert step2.command.arguments == (StepReference(1),)
        assert step3.command.arguments == (StringLiteral("user@example.com"), StepReference(2))

    def test_comments_ignored(self, commented_ast):
        wf = commented_ast.workflows[0]
        assert wf.name == "DataPipeline"
        assert len(wf.steps) == 3

    def test_empty_workflow(self):
        program = parse('workflow "Empty" {}')
        assert program.workflows[0].steps == ()

    def test_multiple_workflows(self):
        program = parse('workflow "A" { step 1: fetch("x") } workflow "B" { step 1: log("y") }')
        assert [w.name for w in program.workflows] == ["A", "B"]

    def test_no_arguments(self):
        program = parse('workflow "T" { step 1: notify() }')
        assert program.workflows[0].steps[0].command.arguments == ()

    def test_number_argument(self):
        program = parse('workflow "T" { step 1: store(42) }')
        assert program.workflows[0].steps[0].command.arguments == (NumberLiteral(42),)

    def test_user_defined_command(self):
        program = parse('workflow "T" { step 1: custom_thing("x") }')
        assert program.workflows[0].steps[0].command.name == "custom_thing"

    def test_single_quoted_workflow_name(self):
        assert parse("workflow 'Q' { }").workflows[0].name == "Q"

    def test_offsets_recorded(self):
        program = parse('workflow "T" {\n  step 1: fetch("x")\n}')
        wf = program.workflows[0]
        assert wf.offset == 0
        assert wf.steps[0].offset == 17


# ---------------------------------------------------------------------------
# Variables and expressions
# ---------------------------------------------------------------------------

class TestVariables:

    def test_declarations(self, variables_ast):
        decls = variables_ast.variables
        assert [(d.keyword, d.name) for d in decls] == [
            ("let", "greeting"),
            ("let", "user"),
            ("const", "retries"),
        ]
        assert decls[0].value == StringLiteral("Hello, ")
        assert decls[2].value == NumberLiteral(3)

    def test_var_keyword(self):
        program = parse("var x = 1")
        assert program.variables[0].keyword == "var"

    def test_concatenation_argument(self, variables_ast):
        arg = variables_ast.workflows[0].steps[0].command.arguments[0]
        assert arg == BinaryExpression(Identifier("greeting"), Identifier("user"))

    def test_plus_is_left_associative(self):
        program = parse('let x = "a" + "b" + "c"')
        value = program.variables[0].value
        assert isinstance(value, BinaryExpression)
        assert value.right == StringLiteral("c")
        assert value.left == BinaryExpression(StringLiteral("a"), StringLiteral("b"))

    def test_declaration_with_step_reference(self):
        program = parse("let x = step 1")
        assert program.variables[0].value == StepReference(1)


# ---------------------------------------------------------------------------
# Conditionals
# ---------------------------------------------------------------------------

class TestConditionals:

    def test_if_else(self, conditional_ast):
        items = conditional_ast.workflows[0].steps
        assert isinstance(items[0], Step)
        cond = items[1]
        assert isinstance(cond, ConditionalStatement)
        assert cond.condition == ComparisonExpression(
            "==", PropertyAccess(StepReference(1), "status"), StringLiteral("success"),
        )
        assert [s.number for s in cond.if_steps] == [2]
        assert [s.number for s in cond.else_steps] == [3]
        assert isinstance(items[2], Step)

    def test_else_is_optional(self):
        program = parse('workflow "T" { step 1: fetch("x") if (step 1.status == "ok") { step 2: log("y") } }')
        cond = program.workflows[0].steps[1]
        assert cond.else_steps == ()

    @pytest.mark.parametrize("op", ["==", "!=", ">", "<", ">=", "<="])
    def test_comparison_operators(self, op):
        program = parse(f'workflow "T" {{ if (count {op} 3) {{ step 1: log("x") }} }}')
        assert program.workflows[0].steps[0].condition.operator == op

    def test_any_property_name(self):
        program = parse('workflow "T" { if (step 1.data != "") { step 2: log("x") } }')
        cond = program.workflows[0].steps[0].condition
        assert cond.left == PropertyAccess(StepReference(1), "data")
        assert cond.right == StringLiteral("")

    def test_missing_operator(self):
        with pytest.raises(DSLSyntaxError, match="Expected comparison operator"):
            parse('workflow "T" { if (step 1) { step 2: log("x") } }')

    def test_nested_if_rejected(self):
        with pytest.raises(DSLSyntaxError, match="Expected 'step'"):
            parse('workflow "T" { if (a == 1) { if (b == 2) { step 1: log("x") } } }')


# ---------------------------------------------------------------------------
# Top-level tolerance
# ---------------------------------------------------------------------------

class TestTopLevel:

    def test_stray_tokens_skipped(self):
        program = parse('hello 42 workflow "T" { step 1: fetch("x") }')
        assert len(program.workflows) == 1

    def test_strict_rejects_stray_tokens(self):
        with pytest.raises(DSLSyntaxError, match="Expected workflow or variable declaration"):
            parse('hello workflow "T" { }', strict=True)

    def test_empty_source(self):
        program = parse("")
        assert program.workflows == ()
        assert program.variables == ()

    def test_parser_requires_eof(self):
        with pytest.raises(ValueError):
            Parser(tokenize("x")[:-1])


# ---------------------------------------------------------------------------
# Syntax errors
# ---------------------------------------------------------------------------

class TestSyntaxErrors:

    def test_missing_workflow_name(self):
        with pytest.raises(DSLSyntaxError, match="Expected workflow name"):
            parse("workflow { }")

    def test_missing_colon(self):
        with pytest.raises(DSLSyntaxError, match="Expected ':' after step number"):
            parse('workflow "T" { step 1 fetch("x") }')

    def test_missing_step_number(self):
        with pytest.raises(DSLSyntaxError, match="Expected step number"):
            parse('workflow "T" { step fetch("x") }')

    def test_missing_close_paren(self):
        with pytest.raises(DSLSyntaxError, match="Expected ',' or '\\)'"):
            parse('workflow "T" { step 1: fetch("x" "y") }')

    def test_unclosed_workflow(self):
        with pytest.raises(DSLSyntaxError, match="end of input"):
            parse('workflow "T" { step 1: fetch("x")')

    def test_truncated_arguments(self):
        with pytest.raises(DSLSyntaxError, match="Unexpected end of input"):
            parse('workflow "T" { step 1: fetch("x",')

    def test_structural_keyword_not_a_command(self):
        with pytest.raises(DSLSyntaxError, match="Expected command name"):
            parse('workflow "T" { step 1: workflow("x") }')

    def test_error_location(self):
        with pytest.raises(DSLSyntaxError) as exc_info:
            parse('workflow "T" {\n  step 1 fetch("x")\n}')
        err = exc_info.value
        assert err.line == 2
        assert err.column == 10
        assert err.token.value == "fetch"
        assert "(line 2, col 10)" in str(err)

    def test_lexical_error_propagates(self):
        with pytest.raises(LexicalError):
            parse('workflow "T" { step 1: fetch(#) }')

    def test_all_parse_errors_share_base(self):
        for source in ('workflow "T" {', "workflow $"):
            with pytest.raises(ParseError):
                parse(source)


class TestArgumentList:

    def test_bare_arguments(self):
        args = Parser(tokenize('"a" + step 1, 2, name')).parse_arguments()
        assert args == (
            BinaryExpression(StringLiteral("a"), StepReference(1)),
            NumberLiteral(2),
            Identifier("name"),
        )

    def test_empty(self):
        assert Parser(tokenize("")).parse_arguments() == ()

    def test_trailing_tokens(self):
        with pytest.raises(DSLSyntaxError, match="Expected ',' or end of arguments"):
            Parser(tokenize("1 2")).parse_arguments()


# ---------------------------------------------------------------------------
# JSON projection
# ---------------------------------------------------------------------------

class TestProgramToDict:

    def test_shape(self, basic_ast):
        d = program_to_dict(basic_ast)
        assert d["type"] == "Program"
        step = d["workflows"][0]["steps"][1]
        assert step == {
            "type": "Step",
            "number": 2,
            "command": {
                "type": "Command",
                "name": "summarize",
                "arguments": [{"type": "StepReference", "stepNumber": 1}],
            },
        }

    def test_conditional_keys(self, conditional_ast):
        cond = program_to_dict(conditional_ast)["workflows"][0]["steps"][1]
        assert cond["type"] == "ConditionalStatement"
        assert cond["condition"]["left"]["type"] == "PropertyAccess"
        assert len(cond["ifSteps"]) == 1
        assert len(cond["elseSteps"]) == 1
