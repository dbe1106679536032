"""Type and dependency resolution for one package."""

import dataclasses
import logging
import math
from collections.abc import Mapping

from .errors import (
    CompileError,
    CyclicDependency,
    Diagnostic,
    DuplicateName,
    TypeMismatch,
    UnresolvedType,
)
from .types import (
    BUILTIN_TYPES,
    Action,
    BoolValue,
    BoundedString,
    BuiltinType,
    ConstantValue,
    ContainerType,
    DependencyEdge,
    ElementType,
    ExternalTypeContext,
    FloatValue,
    IntegerValue,
    InterfaceDefinition,
    InterfaceKind,
    Location,
    Message,
    Named,
    ParsedPackage,
    Primitive,
    ResolvedPackage,
    Service,
    StringValue,
    TypeKey,
    TypeRef,
    ValueShape,
    element_type,
    messages_of,
    type_keyword,
)
from .util import escape_identifier

logger = logging.getLogger(__name__)

FLOAT32_MAX = 3.4028234663852886e38

HEADER = TypeKey("std_msgs", "Header")


def integer_range(bits: int, signed: bool) -> tuple[int, int]:
    if signed:
        return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    return 0, 2**bits - 1


def zero_value(builtin: BuiltinType) -> ConstantValue:
    """Implicit default of a field of type builtin."""
    match builtin.shape:
        case ValueShape.INTEGER:
            return IntegerValue(0, builtin.bits, builtin.signed)
        case ValueShape.FLOAT:
            return FloatValue(0.0, builtin.bits)
        case ValueShape.BOOL:
            return BoolValue(False)
    return StringValue("")


class TypeGraph:
    """Reference graph over message types, stored as an arena of integer handles."""

    def __init__(self) -> None:
        self.keys: list[TypeKey] = []
        self.edges: list[list[int]] = []
        self._handles: dict[TypeKey, int] = {}

    def node(self, key: TypeKey) -> int:
        handle = self._handles.get(key)
        if handle is None:
            handle = len(self.keys)
            self._handles[key] = handle
            self.keys.append(key)
            self.edges.append([])
        return handle

    def connect(self, source: TypeKey, target: TypeKey) -> None:
        a, b = self.node(source), self.node(target)
        if b not in self.edges[a]:
            self.edges[a].append(b)

    def cycles(self, roots: list[TypeKey]) -> list[list[TypeKey]]:
        """Cycles reachable from roots that pass through at least one root.

        Each cycle is returned once, as the path from its first visited node
        back to that node.
        """
        root_handles = {self.node(key) for key in roots}
        visited: set[int] = set()
        stack: list[int] = []
        on_stack: set[int] = set()
        found: list[list[TypeKey]] = []
        seen: set[frozenset[int]] = set()

        def visit(handle: int) -> None:
            visited.add(handle)
            stack.append(handle)
            on_stack.add(handle)
            for target in self.edges[handle]:
                if target in on_stack:
                    path = stack[stack.index(target) :]
                    members = frozenset(path)
                    if members & root_handles and members not in seen:
                        seen.add(members)
                        found.append([self.keys[h] for h in path + [target]])
                elif target not in visited:
                    visit(target)
            stack.pop()
            on_stack.discard(handle)

        for handle in sorted(root_handles):
            if handle not in visited:
                visit(handle)
        return found


class _Resolver:
    def __init__(
        self,
        package: ParsedPackage,
        builtin_table: Mapping[str, BuiltinType],
        context: ExternalTypeContext,
    ):
        self.package = package
        self.builtin_table = builtin_table
        self.context = context
        self.local: dict[str, Message] = {}
        self.diagnostics: list[Diagnostic] = []
        self.dependencies: list[DependencyEdge] = []
        self.graph = TypeGraph()

    def run(self) -> ResolvedPackage:
        self._index()
        definitions = tuple(self._definition(d) for d in self.package.definitions)
        self._external_graph()
        roots = [TypeKey(self.package.name, name) for name in self.local]
        for cycle in self.graph.cycles(roots):
            self.diagnostics.append(CyclicDependency([str(key) for key in cycle]))

        if self.diagnostics:
            raise CompileError(self.diagnostics)
        return ResolvedPackage(
            name=self.package.name,
            definitions=definitions,
            dependencies=tuple(self.dependencies),
        )

    def _index(self) -> None:
        seen: set[str] = set()
        for definition in self.package.definitions:
            if definition.name in seen:
                self.diagnostics.append(DuplicateName(self.package.name, definition.name))
            seen.add(definition.name)
            for message in messages_of(definition):
                if message.namespace == InterfaceKind.MESSAGE:
                    self.local[message.name] = message

    def _external_graph(self) -> None:
        for name, table in self.context.items():
            if name == self.package.name:
                continue
            for t in table.types.values():
                source = TypeKey(table.package, t.name)
                self.graph.node(source)
                for reference in t.references:
                    self.graph.connect(source, reference)

    def _definition(self, definition: InterfaceDefinition) -> InterfaceDefinition:
        if isinstance(definition, Message):
            return self._message(definition, definition.name)
        if isinstance(definition, Service):
            return Service(
                definition.name,
                self._message(definition.request, definition.name),
                self._message(definition.response, definition.name),
            )
        if isinstance(definition, Action):
            return Action(
                definition.name,
                self._message(definition.goal, definition.name),
                self._message(definition.result, definition.name),
                self._message(definition.feedback, definition.name),
            )
        raise TypeError(f"not an interface definition: {definition!r}")

    def _message(self, message: Message, owner: str) -> Message:
        key = TypeKey(self.package.name, message.name)
        escaped: dict[str, str] = {}
        for name in [f.name for f in message.fields] + [c.name for c in message.constants]:
            other = escaped.setdefault(escape_identifier(name), name)
            if other != name:
                self.diagnostics.append(DuplicateName(message.name, escape_identifier(name)))

        fields = []
        for f in message.fields:
            t = self._type(f.type, f.name, owner)
            if t is None:
                continue
            element = element_type(t)
            if isinstance(element, Named) and message.namespace == InterfaceKind.MESSAGE:
                self.graph.connect(key, TypeKey(element.package, element.name))
            location = Location(message.name, f.name, f.position)
            default = f.default
            if not isinstance(t, ContainerType) and not isinstance(t, Named):
                builtin = self.builtin_table[type_keyword(t)]
                if default is None:
                    default = zero_value(builtin)
                self._check_value(t, builtin, default, location)
            fields.append(dataclasses.replace(f, type=t, default=default))

        constants = []
        for c in message.constants:
            builtin = self.builtin_table[type_keyword(c.type)]
            self._check_value(c.type, builtin, c.value, Location(message.name, c.name, c.position))
            constants.append(c)

        return dataclasses.replace(message, fields=tuple(fields), constants=tuple(constants))

    def _type(self, t: TypeRef, field: str, owner: str) -> TypeRef | None:
        if isinstance(t, ContainerType):
            element = self._element(t.element, field, owner)
            return None if element is None else dataclasses.replace(t, element=element)
        return self._element(t, field, owner)

    def _element(self, t: ElementType, field: str, owner: str) -> ElementType | None:
        if isinstance(t, Primitive):
            if t.name not in self.builtin_table:
                self.diagnostics.append(UnresolvedType(self.package.name, t.name, field))
                return None
            return t
        if not isinstance(t, Named):
            return t

        if t.package in (None, self.package.name) and t.name in self.local:
            return Named(self.package.name, t.name)
        if t.package is None and t.name == HEADER.name:
            t = Named(HEADER.package, HEADER.name)
        if t.package in (None, self.package.name):
            self.diagnostics.append(UnresolvedType(self.package.name, t.name, field))
            return None

        table = self.context.get(t.package)
        if table is None or t.name not in table.types:
            self.diagnostics.append(UnresolvedType(t.package, t.name, field))
            return None
        edge = DependencyEdge(owner, t.package)
        if edge not in self.dependencies:
            self.dependencies.append(edge)
        return t

    def _check_value(
        self,
        t: TypeRef,
        builtin: BuiltinType,
        value: ConstantValue,
        location: Location,
    ) -> None:
        if isinstance(value, IntegerValue):
            low, high = integer_range(builtin.bits, builtin.signed)
            if not low <= value.value <= high:
                self.diagnostics.append(
                    TypeMismatch(f"{builtin.keyword} in [{low}, {high}]", str(value.value), location)
                )
        elif isinstance(value, FloatValue):
            if not math.isfinite(value.value):
                self.diagnostics.append(
                    TypeMismatch(f"finite {builtin.keyword}", repr(value.value), location)
                )
            elif builtin.bits == 32 and abs(value.value) > FLOAT32_MAX:
                self.diagnostics.append(
                    TypeMismatch("float32 in range", repr(value.value), location)
                )
        elif isinstance(value, StringValue) and isinstance(t, BoundedString):
            if len(value.value) > t.bound:
                self.diagnostics.append(
                    TypeMismatch(
                        f"{t} of at most {t.bound} characters",
                        f"{len(value.value)} characters",
                        location,
                    )
                )


def resolve(
    package: ParsedPackage,
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
    context: ExternalTypeContext | None = None,
) -> ResolvedPackage:
    """Resolve every type reference of a parsed package.

    Local and bare names resolve to messages of this package, bare `Header`
    falls back to std_msgs/Header, anything else must be in context.
    Raises CompileError with every diagnostic found.
    """
    resolved = _Resolver(package, builtin_table, context or {}).run()
    logger.debug(
        "resolved %s: %d definition(s), depends on %s",
        package.name,
        len(resolved.definitions),
        resolved.external_packages,
    )
    return resolved
