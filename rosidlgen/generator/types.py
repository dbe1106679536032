"""Type definitions for interface parsing, resolution and code generation."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePath
from typing import Union

from dataclasses_json import DataClassJsonMixin


class InterfaceKind(StrEnum):
    """Kind of interface file, named after its suffix."""

    MESSAGE = "msg"
    SERVICE = "srv"
    ACTION = "action"

    @classmethod
    def from_suffix(cls, suffix: str) -> "InterfaceKind":
        return cls(suffix.lstrip("."))


@dataclass(frozen=True)
class SourceFile(DataClassJsonMixin):
    """One interface file of a package.

    When text is None the compiler reads it from path.
    """

    path: str
    kind: InterfaceKind
    text: str | None = None

    @property
    def name(self) -> str:
        return PurePath(self.path).stem

    @classmethod
    def from_path(cls, path: str) -> "SourceFile":
        return cls(path=path, kind=InterfaceKind.from_suffix(PurePath(path).suffix))


@dataclass(frozen=True)
class PackageDescriptor(DataClassJsonMixin):
    """A package to compile: its name and its interface files, in order."""

    name: str
    files: tuple[SourceFile, ...]


@dataclass(frozen=True)
class Position(DataClassJsonMixin):
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Location(DataClassJsonMixin):
    """Where a diagnostic applies: a definition, optionally one of its members."""

    definition: str
    member: str | None = None
    position: Position | None = None

    def __str__(self) -> str:
        text = self.definition if self.member is None else f"{self.definition}.{self.member}"
        if self.position is not None:
            text += f" ({self.position})"
        return text


class TokenKind(StrEnum):
    IDENTIFIER = "identifier"
    TYPE_KEYWORD = "type keyword"
    INTEGER = "integer literal"
    FLOAT = "float literal"
    STRING = "string literal"
    BOOLEAN = "boolean literal"
    EQUALS = "'='"
    BOUND = "'<='"
    SLASH = "'/'"
    LBRACKET = "'['"
    RBRACKET = "']'"
    SEPARATOR = "'---'"
    NEWLINE = "end of line"
    EOF = "end of file"


LITERAL_TOKENS = frozenset(
    [TokenKind.INTEGER, TokenKind.FLOAT, TokenKind.STRING, TokenKind.BOOLEAN]
)


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: Position

    def describe(self) -> str:
        """Render the token for diagnostics."""
        if self.kind in (TokenKind.NEWLINE, TokenKind.EOF):
            return str(self.kind)
        return repr(self.text)


class ValueShape(StrEnum):
    """Literal shape a primitive type accepts."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"


@dataclass(frozen=True)
class BuiltinType:
    """A primitive IDL keyword and its representation on both layers.

    wire is a Python expression naming the ctypes type in generated code,
    idiomatic the annotation used in the idiomatic layer.
    """

    keyword: str
    wire: str
    idiomatic: str
    shape: ValueShape
    bits: int = 0
    signed: bool = False


BUILTIN_TYPES: Mapping[str, BuiltinType] = {
    t.keyword: t
    for t in [
        BuiltinType("bool", "ctypes.c_bool", "bool", ValueShape.BOOL, 8),
        BuiltinType("byte", "ctypes.c_uint8", "int", ValueShape.INTEGER, 8, False),
        BuiltinType("char", "ctypes.c_uint8", "int", ValueShape.INTEGER, 8, False),
        BuiltinType("int8", "ctypes.c_int8", "int", ValueShape.INTEGER, 8, True),
        BuiltinType("uint8", "ctypes.c_uint8", "int", ValueShape.INTEGER, 8, False),
        BuiltinType("int16", "ctypes.c_int16", "int", ValueShape.INTEGER, 16, True),
        BuiltinType("uint16", "ctypes.c_uint16", "int", ValueShape.INTEGER, 16, False),
        BuiltinType("int32", "ctypes.c_int32", "int", ValueShape.INTEGER, 32, True),
        BuiltinType("uint32", "ctypes.c_uint32", "int", ValueShape.INTEGER, 32, False),
        BuiltinType("int64", "ctypes.c_int64", "int", ValueShape.INTEGER, 64, True),
        BuiltinType("uint64", "ctypes.c_uint64", "int", ValueShape.INTEGER, 64, False),
        BuiltinType("float32", "ctypes.c_float", "float", ValueShape.FLOAT, 32),
        BuiltinType("float64", "ctypes.c_double", "float", ValueShape.FLOAT, 64),
        BuiltinType("string", "_rt.String", "str", ValueShape.STRING),
        BuiltinType("wstring", "_rt.WString", "str", ValueShape.STRING),
    ]
}

STRING_KEYWORDS = frozenset(["string", "wstring"])


# Type references


@dataclass(frozen=True)
class Primitive(DataClassJsonMixin):
    """A numeric or bool keyword from the builtin table."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnboundedString(DataClassJsonMixin):
    wide: bool = False

    def __str__(self) -> str:
        return "wstring" if self.wide else "string"


@dataclass(frozen=True)
class BoundedString(DataClassJsonMixin):
    bound: int
    wide: bool = False

    def __str__(self) -> str:
        return f"{'wstring' if self.wide else 'string'}<={self.bound}"


@dataclass(frozen=True)
class Named(DataClassJsonMixin):
    """A message type, qualified by package once resolved."""

    package: str | None
    name: str

    def __str__(self) -> str:
        return self.name if self.package is None else f"{self.package}/{self.name}"


@dataclass(frozen=True)
class FixedArray(DataClassJsonMixin):
    element: "ElementType"
    size: int

    def __str__(self) -> str:
        return f"{self.element}[{self.size}]"


@dataclass(frozen=True)
class UnboundedSequence(DataClassJsonMixin):
    element: "ElementType"

    def __str__(self) -> str:
        return f"{self.element}[]"


@dataclass(frozen=True)
class BoundedSequence(DataClassJsonMixin):
    element: "ElementType"
    bound: int

    def __str__(self) -> str:
        return f"{self.element}[<={self.bound}]"


ElementType = Union[Primitive, UnboundedString, BoundedString, Named]
TypeRef = Union[ElementType, FixedArray, UnboundedSequence, BoundedSequence]
ContainerType = (FixedArray, UnboundedSequence, BoundedSequence)
StringType = (UnboundedString, BoundedString)


def element_type(t: TypeRef) -> ElementType:
    """Strip one level of array or sequence."""
    if isinstance(t, ContainerType):
        return t.element
    return t


def type_keyword(t: ElementType) -> str | None:
    """Builtin-table keyword of a primitive or string type."""
    if isinstance(t, Primitive):
        return t.name
    if isinstance(t, StringType):
        return "wstring" if t.wide else "string"
    return None


# Constant values


@dataclass(frozen=True)
class IntegerValue(DataClassJsonMixin):
    value: int
    bits: int
    signed: bool

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FloatValue(DataClassJsonMixin):
    value: float
    bits: int

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class BoolValue(DataClassJsonMixin):
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class StringValue(DataClassJsonMixin):
    value: str

    def __str__(self) -> str:
        return repr(self.value)


ConstantValue = Union[IntegerValue, FloatValue, BoolValue, StringValue]


# Definitions


@dataclass(frozen=True)
class Field(DataClassJsonMixin):
    """A message member. default is None until the resolver fills it in."""

    name: str
    type: TypeRef
    default: ConstantValue | None = None
    position: Position | None = None


@dataclass(frozen=True)
class Constant(DataClassJsonMixin):
    name: str
    type: TypeRef
    value: ConstantValue
    position: Position | None = None


@dataclass(frozen=True)
class Message(DataClassJsonMixin):
    """A message, standalone or part of a service or action.

    namespace is the interface kind the message was declared in, which
    determines its C symbol prefix and module.
    """

    name: str
    namespace: InterfaceKind = InterfaceKind.MESSAGE
    fields: tuple[Field, ...] = ()
    constants: tuple[Constant, ...] = ()


@dataclass(frozen=True)
class Service(DataClassJsonMixin):
    name: str
    request: Message
    response: Message

    @property
    def messages(self) -> tuple[Message, ...]:
        return (self.request, self.response)


@dataclass(frozen=True)
class Action(DataClassJsonMixin):
    name: str
    goal: Message
    result: Message
    feedback: Message

    @property
    def messages(self) -> tuple[Message, ...]:
        return (self.goal, self.result, self.feedback)


InterfaceDefinition = Union[Message, Service, Action]

SERVICE_SUFFIXES = ("_Request", "_Response")
ACTION_SUFFIXES = ("_Goal", "_Result", "_Feedback")


def messages_of(definition: InterfaceDefinition) -> tuple[Message, ...]:
    """All messages a definition declares, in declaration order."""
    if isinstance(definition, Message):
        return (definition,)
    return definition.messages


def kind_of(definition: InterfaceDefinition) -> InterfaceKind:
    if isinstance(definition, Service):
        return InterfaceKind.SERVICE
    if isinstance(definition, Action):
        return InterfaceKind.ACTION
    return InterfaceKind.MESSAGE


@dataclass(frozen=True)
class ParsedPackage(DataClassJsonMixin):
    name: str
    definitions: tuple[InterfaceDefinition, ...]


# Cross-package context


@dataclass(frozen=True, order=True)
class TypeKey(DataClassJsonMixin):
    package: str
    name: str

    def __str__(self) -> str:
        return f"{self.package}/{self.name}"


@dataclass(frozen=True)
class ExternalType(DataClassJsonMixin):
    """A message another package exports, with the messages it references."""

    name: str
    references: tuple[TypeKey, ...] = ()


@dataclass(frozen=True)
class TypeTable(DataClassJsonMixin):
    """Public type table of one package, as seen by downstream compiles."""

    package: str
    types: Mapping[str, ExternalType] = field(default_factory=dict)

    @classmethod
    def from_resolved(cls, package: "ResolvedPackage") -> "TypeTable":
        types = {}
        for definition in package.definitions:
            for message in messages_of(definition):
                if message.namespace != InterfaceKind.MESSAGE:
                    continue
                refs = sorted(
                    {
                        TypeKey(t.package, t.name)
                        for f in message.fields
                        if isinstance(t := element_type(f.type), Named) and t.package
                    }
                )
                types[message.name] = ExternalType(name=message.name, references=tuple(refs))
        return cls(package=package.name, types=types)


ExternalTypeContext = Mapping[str, TypeTable]


@dataclass(frozen=True, order=True)
class DependencyEdge(DataClassJsonMixin):
    """A definition of the compiled package referencing another package."""

    definition: str
    package: str


@dataclass(frozen=True)
class ResolvedPackage(DataClassJsonMixin):
    """Resolved AST: every Named carries its package, every scalar field a default."""

    name: str
    definitions: tuple[InterfaceDefinition, ...]
    dependencies: tuple[DependencyEdge, ...] = ()

    @property
    def external_packages(self) -> list[str]:
        return sorted({edge.package for edge in self.dependencies})


# Output


class Layer(StrEnum):
    WIRE = "wire"
    IDIOMATIC = "idiomatic"
    SHARED = "shared"


@dataclass(frozen=True)
class GeneratedUnit(DataClassJsonMixin):
    path: str
    source: str
    layer: Layer


@dataclass(frozen=True)
class GeneratorOptions(DataClassJsonMixin):
    """Generation settings.

    runtime_import is the module generated code imports its runtime from.
    """

    runtime_import: str = "rosidlgen.runtime"
