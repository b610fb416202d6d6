"""Tokenizer for stepflow — turns source text into a flat token list.

Scanning is delegated to a Lark basic lexer built from ``grammar.lark``;
this module classifies its output into stepflow tokens and translates
Lark's scan failures into :class:`LexicalError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path as FilePath

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from .errors import LexicalError


class TokenKind(Enum):
    """Token categories."""
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    STRING = "string"
    NUMBER = "number"
    PUNCT = "punct"
    EOF = "eof"


# Built-in command names, recognized as keywords by the tokenizer.
BUILTIN_COMMANDS = (
    "fetch", "summarize", "send_email", "analyze",
    "filter", "transform", "store", "notify",
    "print", "log",
)

STRUCTURAL_KEYWORDS = frozenset({
    "workflow", "step", "let", "var", "const", "if", "else",
})

KEYWORDS = STRUCTURAL_KEYWORDS | frozenset(BUILTIN_COMMANDS)

_PUNCT_TYPES = frozenset({
    "EQEQ", "NOTEQ", "GTE", "LTE", "GT", "LT",
    "EQUALS", "COLON", "COMMA", "LPAREN", "RPAREN",
    "LBRACE", "RBRACE", "PLUS", "DOT",
})

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


@dataclass(frozen=True)
class Token:
    """A single token with its source position (offset is 0-based)."""
    kind: TokenKind
    value: str | int | None
    offset: int
    line: int = 1
    column: int = 1

    def is_keyword(self, word: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.value == word

    def describe(self) -> str:
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.STRING:
            return f'string "{self.value}"'
        return f"'{self.value}'"


# ---------------------------------------------------------------------------
# Lexer loading (cached)
# ---------------------------------------------------------------------------

_GRAMMAR_PATH = FilePath(__file__).parent / "grammar.lark"
_lark_lexer: Lark | None = None


def _get_lexer() -> Lark:
    global _lark_lexer
    if _lark_lexer is None:
        grammar_text = _GRAMMAR_PATH.read_text(encoding="utf-8")
        _lark_lexer = Lark(
            grammar_text,
            parser="lalr",
            lexer="basic",
        )
    return _lark_lexer


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def tokenize(source: str) -> list[Token]:
    """Scan source text into tokens, ending with an EOF token.

    Raises LexicalError on an unrecognized character, an unterminated
    string or a malformed comment opener.
    """
    tokens: list[Token] = []
    try:
        for tok in _get_lexer().lex(source):
            tokens.append(_convert(tok))
    except UnexpectedCharacters as e:
        raise _lexical_error(source, e) from e

    line, column = _end_position(source)
    tokens.append(Token(TokenKind.EOF, None, len(source), line, column))
    return tokens


def unescape(raw: str) -> str:
    """Strip the quotes from a string token and resolve backslash escapes."""
    return _ESCAPE_RE.sub(r"\1", raw[1:-1])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _convert(tok) -> Token:
    text = str(tok)
    location = dict(offset=tok.start_pos, line=tok.line, column=tok.column)
    if tok.type == "NAME":
        kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENTIFIER
        return Token(kind, text, **location)
    if tok.type == "STRING":
        return Token(TokenKind.STRING, unescape(text), **location)
    if tok.type == "NUMBER":
        return Token(TokenKind.NUMBER, int(text), **location)
    if tok.type in _PUNCT_TYPES:
        return Token(TokenKind.PUNCT, text, **location)
    raise LexicalError(f"Unexpected token type {tok.type}", char=text[:1], **location)


def _lexical_error(source: str, e: UnexpectedCharacters) -> LexicalError:
    offset = e.pos_in_stream
    char = source[offset] if 0 <= offset < len(source) else ""
    if char in ("'", '"'):
        message = "Unterminated string"
    elif char == "/":
        message = "Invalid comment syntax"
    else:
        message = f"Unexpected character: {char}"
    return LexicalError(
        message,
        char=char,
        offset=offset,
        line=e.line,
        column=e.column,
    )


def _end_position(source: str) -> tuple[int, int]:
    line = source.count("\n") + 1
    column = len(source) - (source.rfind("\n") + 1) + 1
    return line, column
