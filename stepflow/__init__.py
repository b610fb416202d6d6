"""stepflow — a small workflow DSL: parse, validate, visualize and run."""

from .ast_nodes import (
    BinaryExpression,
    Command,
    ComparisonExpression,
    ConditionalStatement,
    Identifier,
    NumberLiteral,
    Program,
    PropertyAccess,
    Step,
    StepReference,
    StringLiteral,
    VariableDeclaration,
    Workflow,
    program_to_dict,
)
from .converter import Converter
from .depgraph import StepGraph
from .errors import (
    ConversionError,
    DSLSyntaxError,
    GenerationError,
    LexicalError,
    ParseError,
    StepflowError,
    ValidationError,
)
from .graph import generate_graph, generate_mermaid
from .interpreter import ExecutionResult, Interpreter, execute, register_command
from .lexer import BUILTIN_COMMANDS, Token, TokenKind, tokenize
from .logging import ExecutionLogger, PipelineLog
from .parser import Parser, parse
from .pipeline import (
    SYNTAX_EXAMPLES,
    ParseOutcome,
    convert_to_dsl,
    describe_steps,
    parse_dsl,
    supported_commands,
)
from .validator import ValidationResult, Validator, validate

__all__ = [
    "tokenize",
    "parse",
    "validate",
    "execute",
    "parse_dsl",
    "convert_to_dsl",
    "generate_graph",
    "generate_mermaid",
    "describe_steps",
    "supported_commands",
    "register_command",
    "Parser",
    "Validator",
    "ValidationResult",
    "StepGraph",
    "Converter",
    "Interpreter",
    "ExecutionResult",
    "ExecutionLogger",
    "PipelineLog",
    "ParseOutcome",
    "Token",
    "TokenKind",
    "BUILTIN_COMMANDS",
    "SYNTAX_EXAMPLES",
    "Program",
    "Workflow",
    "Step",
    "Command",
    "ConditionalStatement",
    "VariableDeclaration",
    "StringLiteral",
    "NumberLiteral",
    "Identifier",
    "StepReference",
    "PropertyAccess",
    "BinaryExpression",
    "ComparisonExpression",
    "program_to_dict",
    "StepflowError",
    "ParseError",
    "LexicalError",
    "DSLSyntaxError",
    "ValidationError",
    "GenerationError",
    "ConversionError",
]
