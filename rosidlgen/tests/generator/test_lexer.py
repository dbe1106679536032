"""Tests for the interface file tokenizer."""

import pytest

from rosidlgen.generator import LexError, tokenize
from rosidlgen.generator.types import Position, TokenKind


def kinds(text):
    return [t.kind for t in tokenize(text)]


def texts(text):
    return [t.text for t in tokenize(text) if t.kind not in (TokenKind.NEWLINE, TokenKind.EOF)]


def describe_tokenize():
    def lexes_field_line(expect):
        expect(kinds("float64 x 2.5\n")) == [
            TokenKind.TYPE_KEYWORD,
            TokenKind.IDENTIFIER,
            TokenKind.FLOAT,
            TokenKind.NEWLINE,
            TokenKind.EOF,
        ]

    def lexes_constant_line(expect):
        expect(kinds("int8 X=-5")) == [
            TokenKind.TYPE_KEYWORD,
            TokenKind.IDENTIFIER,
            TokenKind.EQUALS,
            TokenKind.INTEGER,
            TokenKind.EOF,
        ]

    def keeps_minus_sign_in_literal(expect):
        expect(texts("int8 X = -5")) == ["int8", "X", "=", "-5"]
        expect(texts("float32 y -0.5e3")) == ["float32", "y", "-0.5e3"]

    def lexes_integer_bases(expect):
        tokens = tokenize("0x1F 0o17 0b101 42 +7")
        expect([t.kind for t in tokens[:-1]]) == [TokenKind.INTEGER] * 5
        expect([t.text for t in tokens[:-1]]) == ["0x1F", "0o17", "0b101", "42", "+7"]

    def lexes_float_forms(expect):
        tokens = tokenize("1.0 1. .5 1e5 2.5E-3")
        expect([t.kind for t in tokens[:-1]]) == [TokenKind.FLOAT] * 5

    def lexes_bounds_and_brackets(expect):
        expect(kinds("string<=10[<=3] names")) == [
            TokenKind.TYPE_KEYWORD,
            TokenKind.BOUND,
            TokenKind.INTEGER,
            TokenKind.LBRACKET,
            TokenKind.BOUND,
            TokenKind.INTEGER,
            TokenKind.RBRACKET,
            TokenKind.IDENTIFIER,
            TokenKind.EOF,
        ]

    def lexes_package_qualified_type(expect):
        expect(kinds("geometry_msgs/Point p")) == [
            TokenKind.IDENTIFIER,
            TokenKind.SLASH,
            TokenKind.IDENTIFIER,
            TokenKind.IDENTIFIER,
            TokenKind.EOF,
        ]

    def lexes_string_literals(expect):
        expect(texts("string s \"a # b\"")) == ["string", "s", '"a # b"']
        expect(texts("string s 'it\\'s'")) == ["string", "s", "'it\\'s'"]

    def lexes_booleans_in_any_case(expect):
        expect(kinds("true False TRUE")[:-1]) == [TokenKind.BOOLEAN] * 3

    def distinguishes_type_keywords_from_identifiers(expect):
        expect(kinds("wstring Point")[:-1]) == [TokenKind.TYPE_KEYWORD, TokenKind.IDENTIFIER]

    def drops_comments(expect):
        expect(texts("# header\nint32 x # trailing")) == ["int32", "x"]

    def lexes_separator(expect):
        expect(kinds("---\n")) == [TokenKind.SEPARATOR, TokenKind.NEWLINE, TokenKind.EOF]

    def records_positions(expect):
        tokens = tokenize("int32 a\n  bool b\n")
        expect(tokens[0].position) == Position(1, 1)
        expect(tokens[1].position) == Position(1, 7)
        expect(tokens[3].position) == Position(2, 3)
        expect(tokens[-1].kind) == TokenKind.EOF
        expect(tokens[-1].position) == Position(3, 1)

    def ends_empty_input_with_eof(expect):
        tokens = tokenize("")
        expect(len(tokens)) == 1
        expect(tokens[0].kind) == TokenKind.EOF

    def fails_on_unknown_character(expect):
        with pytest.raises(LexError) as e:
            tokenize("int32 x\nint32 y @")
        expect(e.value.position) == Position(2, 9)
        expect(e.value.reason).contains("'@'")
