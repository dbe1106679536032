"""Interface definition parser.

Works line by line over the token stream from the lexer. Each line is a
field (`type name [default]`) or a constant (`type NAME = value`); `---`
lines split services and actions into their messages. A broken line is
reported and skipped so one pass collects every problem in the file.
"""

import logging
import math
import re
from collections.abc import Mapping

from .errors import (
    CompileError,
    Diagnostic,
    DuplicateName,
    InvalidArrayBound,
    InvalidDefaultValue,
    LexError,
    ParseError,
    TypeMismatch,
)
from .lexer import tokenize
from .types import (
    ACTION_SUFFIXES,
    BUILTIN_TYPES,
    LITERAL_TOKENS,
    SERVICE_SUFFIXES,
    Action,
    BoolValue,
    BoundedSequence,
    BoundedString,
    BuiltinType,
    Constant,
    ConstantValue,
    ContainerType,
    Field,
    FixedArray,
    FloatValue,
    IntegerValue,
    InterfaceDefinition,
    InterfaceKind,
    Location,
    Message,
    Named,
    Primitive,
    Service,
    StringValue,
    Token,
    TokenKind,
    TypeRef,
    UnboundedSequence,
    UnboundedString,
    ValueShape,
    type_keyword,
)

logger = logging.getLogger(__name__)

SEPARATOR_COUNTS = {
    InterfaceKind.MESSAGE: 0,
    InterfaceKind.SERVICE: 1,
    InterfaceKind.ACTION: 2,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}
_ESCAPE_RE = re.compile(r"\\(.)")
_LINE_END = (TokenKind.NEWLINE, TokenKind.EOF)


def parse_int(text: str) -> int:
    """Integer literal value; 0x, 0o and 0b prefixes select the base."""
    digits = text.lstrip("+-")
    if len(digits) > 1 and digits[0] == "0" and digits[1] in "xXoObB":
        return int(text, 0)
    return int(text, 10)


def _as_float(value: int) -> float:
    # Integers past the double range become infinities, rejected on resolution
    try:
        return float(value)
    except OverflowError:
        return math.copysign(math.inf, value)


def unquote(text: str) -> str:
    """Value of a quoted string literal."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text[1:-1])


def literal_value(builtin: BuiltinType, token: Token) -> ConstantValue | None:
    """Convert a literal token for a field or constant of type builtin.

    Returns None when the literal has the wrong shape for the type. Range
    is not checked here.
    """
    match builtin.shape, token.kind:
        case ValueShape.INTEGER, TokenKind.INTEGER:
            return IntegerValue(parse_int(token.text), builtin.bits, builtin.signed)
        case ValueShape.FLOAT, TokenKind.FLOAT:
            return FloatValue(float(token.text), builtin.bits)
        case ValueShape.FLOAT, TokenKind.INTEGER:
            return FloatValue(_as_float(parse_int(token.text)), builtin.bits)
        case ValueShape.BOOL, TokenKind.BOOLEAN:
            return BoolValue(token.text.lower() == "true")
        case ValueShape.BOOL, TokenKind.INTEGER if parse_int(token.text) in (0, 1):
            return BoolValue(parse_int(token.text) == 1)
        case ValueShape.STRING, TokenKind.STRING:
            return StringValue(unquote(token.text))
    return None


class _Line:
    """Cursor over the tokens of one line, ending in NEWLINE or EOF."""

    def __init__(self, tokens: list[Token], definition: str):
        self.tokens = tokens
        self.definition = definition
        self.index = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def next(self) -> Token:
        token = self.tokens[self.index]
        if token.kind not in _LINE_END:
            self.index += 1
        return token

    def accept(self, kind: TokenKind) -> Token | None:
        if self.peek().kind == kind:
            return self.next()
        return None

    def expect(self, expected: str, *kinds: TokenKind) -> Token:
        token = self.peek()
        if token.kind not in kinds:
            raise ParseError(token.position, expected, token.describe())
        return self.next()

    def expect_end(self, expected: str = "end of line") -> None:
        self.expect(expected, *_LINE_END)

    def location(self, token: Token, member: str | None = None) -> Location:
        return Location(self.definition, member, token.position)


class _MessageParser:
    """Builds one message from the lines of one section."""

    def __init__(
        self,
        name: str,
        namespace: InterfaceKind,
        builtin_table: Mapping[str, BuiltinType],
    ):
        self.name = name
        self.namespace = namespace
        self.builtin_table = builtin_table
        self.fields: list[Field] = []
        self.constants: list[Constant] = []
        self.names: set[str] = set()
        self.diagnostics: list[Diagnostic] = []

    def feed(self, tokens: list[Token]) -> None:
        try:
            self._line(_Line(tokens, self.name))
        except Diagnostic as e:
            self.diagnostics.append(e)

    def message(self) -> Message:
        return Message(
            name=self.name,
            namespace=self.namespace,
            fields=tuple(self.fields),
            constants=tuple(self.constants),
        )

    def _line(self, line: _Line) -> None:
        type_token = line.peek()
        t = self._type(line)
        # true and false are booleans only in literal position
        name_token = line.expect(
            "member name", TokenKind.IDENTIFIER, TokenKind.TYPE_KEYWORD, TokenKind.BOOLEAN
        )
        name = name_token.text

        if line.accept(TokenKind.EQUALS):
            builtin = self._builtin(t)
            if builtin is None:
                raise ParseError(
                    type_token.position, "primitive or string type for constant", repr(str(t))
                )
            value_token = line.expect("constant value", *LITERAL_TOKENS)
            line.expect_end()
            value = literal_value(builtin, value_token)
            if value is None:
                raise TypeMismatch(
                    f"{builtin.shape} literal",
                    value_token.describe(),
                    line.location(value_token, name),
                )
            self._declare(name)
            self.constants.append(Constant(name, t, value, name_token.position))
            return

        default: ConstantValue | None = None
        token = line.peek()
        if token.kind in LITERAL_TOKENS:
            builtin = self._builtin(t)
            if builtin is None:
                raise InvalidDefaultValue(
                    line.location(token, name),
                    f"{t} takes no default value",
                )
            default = literal_value(builtin, token)
            if default is None:
                raise InvalidDefaultValue(
                    line.location(token, name),
                    f"expected {builtin.shape} literal, found {token.describe()}",
                )
            line.next()
        line.expect_end("default value or end of line")
        self._declare(name)
        self.fields.append(Field(name, t, default, name_token.position))

    def _declare(self, name: str) -> None:
        if name in self.names:
            raise DuplicateName(self.name, name)
        self.names.add(name)

    def _builtin(self, t: TypeRef) -> BuiltinType | None:
        if isinstance(t, ContainerType) or isinstance(t, Named):
            return None
        return self.builtin_table[type_keyword(t)]

    def _bound(self, line: _Line) -> int:
        token = line.expect("bound", TokenKind.INTEGER)
        value = parse_int(token.text)
        if value <= 0:
            raise InvalidArrayBound(
                line.location(token), f"bound must be greater than zero, found {token.text}"
            )
        return value

    def _type(self, line: _Line) -> TypeRef:
        token = line.expect("type", TokenKind.TYPE_KEYWORD, TokenKind.IDENTIFIER)
        t: TypeRef
        if token.kind == TokenKind.TYPE_KEYWORD and token.text in ("string", "wstring"):
            wide = token.text == "wstring"
            if line.accept(TokenKind.BOUND):
                t = BoundedString(self._bound(line), wide)
            else:
                t = UnboundedString(wide)
        elif token.kind == TokenKind.TYPE_KEYWORD:
            t = Primitive(token.text)
        elif line.accept(TokenKind.SLASH):
            name = line.expect("type name", TokenKind.IDENTIFIER)
            t = Named(token.text, name.text)
        else:
            t = Named(None, token.text)

        if not line.accept(TokenKind.LBRACKET):
            return t
        if line.accept(TokenKind.RBRACKET):
            return UnboundedSequence(t)
        if line.accept(TokenKind.BOUND):
            bound = self._bound(line)
            line.expect("']'", TokenKind.RBRACKET)
            return BoundedSequence(t, bound)
        size = self._bound(line)
        line.expect("']'", TokenKind.RBRACKET)
        return FixedArray(t, size)


def _split_lines(tokens: list[Token]) -> list[list[Token]]:
    """Group tokens into non-empty lines, each ending in its NEWLINE or EOF token."""
    lines: list[list[Token]] = []
    current: list[Token] = []
    for token in tokens:
        current.append(token)
        if token.kind in _LINE_END:
            if len(current) > 1:
                lines.append(current)
            current = []
            if token.kind == TokenKind.EOF:
                break
    return lines


def _section_names(kind: InterfaceKind, name: str) -> list[str]:
    if kind == InterfaceKind.SERVICE:
        return [name + suffix for suffix in SERVICE_SUFFIXES]
    if kind == InterfaceKind.ACTION:
        return [name + suffix for suffix in ACTION_SUFFIXES]
    return [name]


def parse(
    tokens: list[Token],
    kind: InterfaceKind,
    name: str,
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
) -> InterfaceDefinition:
    """Build the definition named name from the tokens of one file.

    Raises CompileError with every diagnostic found.
    """
    names = _section_names(kind, name)
    sections = [_MessageParser(n, kind, builtin_table) for n in names]
    diagnostics: list[Diagnostic] = []
    separators = 0

    for line in _split_lines(tokens):
        if line[0].kind == TokenKind.SEPARATOR:
            separators += 1
            if line[1].kind not in _LINE_END:
                diagnostics.append(ParseError(line[1].position, "end of line", line[1].describe()))
            if separators > SEPARATOR_COUNTS[kind]:
                diagnostics.append(
                    ParseError(
                        line[0].position,
                        f"at most {SEPARATOR_COUNTS[kind]} '---' separator(s) in a {kind} file",
                        "'---'",
                    )
                )
            continue
        sections[min(separators, len(sections) - 1)].feed(line)

    if separators < SEPARATOR_COUNTS[kind]:
        eof = tokens[-1]
        diagnostics.append(
            ParseError(
                eof.position,
                f"{SEPARATOR_COUNTS[kind]} '---' separator(s) in a {kind} file",
                f"{separators}",
            )
        )

    for section in sections:
        diagnostics.extend(section.diagnostics)
    if diagnostics:
        raise CompileError(diagnostics)

    messages = [section.message() for section in sections]
    logger.debug("parsed %s %s with %d message(s)", kind, name, len(messages))
    if kind == InterfaceKind.SERVICE:
        return Service(name, *messages)
    if kind == InterfaceKind.ACTION:
        return Action(name, *messages)
    return messages[0]


def parse_text(
    text: str,
    kind: InterfaceKind,
    name: str,
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
) -> InterfaceDefinition:
    """Tokenize and parse the text of one interface file."""
    try:
        tokens = tokenize(text, builtin_table)
    except LexError as e:
        raise CompileError([e]) from None
    return parse(tokens, kind, name, builtin_table)
