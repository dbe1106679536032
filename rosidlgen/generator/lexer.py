"""Tokenizer for interface files, driven by the terminals in idl.lark."""

import logging
import os
from collections.abc import Mapping

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from .errors import LexError
from .types import BUILTIN_TYPES, BuiltinType, Position, Token, TokenKind

logger = logging.getLogger(__name__)

_g_lexer: Lark | None = None

_TERMINALS = {
    "INTEGER": TokenKind.INTEGER,
    "FLOAT": TokenKind.FLOAT,
    "STRING": TokenKind.STRING,
    "SEPARATOR": TokenKind.SEPARATOR,
    "BOUND": TokenKind.BOUND,
    "EQUALS": TokenKind.EQUALS,
    "SLASH": TokenKind.SLASH,
    "LSQB": TokenKind.LBRACKET,
    "RSQB": TokenKind.RBRACKET,
    "NEWLINE": TokenKind.NEWLINE,
}

_BOOLEANS = frozenset(["true", "false"])


def _lexer() -> Lark:
    global _g_lexer

    if not _g_lexer:
        with open(f"{os.path.dirname(__file__)}/idl.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_lexer = Lark(grammar, parser="lalr", lexer="basic")
    return _g_lexer


def tokenize(
    text: str, builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES
) -> list[Token]:
    """Split text into tokens, ending with a single EOF token.

    Comments and blank space are dropped, line breaks are kept as NEWLINE
    tokens. Raises LexError at the first character no terminal accepts.
    """
    tokens: list[Token] = []
    try:
        for t in _lexer().lex(text):
            position = Position(t.line, t.column)
            if t.type == "NAME":
                if t.value.lower() in _BOOLEANS:
                    kind = TokenKind.BOOLEAN
                elif t.value in builtin_table:
                    kind = TokenKind.TYPE_KEYWORD
                else:
                    kind = TokenKind.IDENTIFIER
            else:
                kind = _TERMINALS[t.type]
            tokens.append(Token(kind, str(t.value), position))
    except UnexpectedCharacters as e:
        raise LexError(
            Position(e.line, e.column), f"unexpected character {e.char!r}"
        ) from None

    lines = text.split("\n")
    tokens.append(Token(TokenKind.EOF, "", Position(len(lines), len(lines[-1]) + 1)))
    logger.debug("lexed %d tokens", len(tokens))
    return tokens
