"""Python code generator for resolved interface packages.

Every definition becomes two modules: a wire module of ctypes structs
bound to the package's rosidl C libraries, and an idiomatic module of
dataclasses converting to and from them.
"""

import logging
from collections.abc import Mapping

from jinja2 import Environment, PackageLoader

from .errors import GeneratorBug
from .ffi import action_type_support, message_bindings, service_type_support
from .resolver import integer_range
from .types import (
    BUILTIN_TYPES,
    Action,
    BoolValue,
    BoundedSequence,
    BoundedString,
    BuiltinType,
    Constant,
    ConstantValue,
    ElementType,
    Field,
    FixedArray,
    FloatValue,
    GeneratedUnit,
    GeneratorOptions,
    IntegerValue,
    InterfaceDefinition,
    InterfaceKind,
    Layer,
    Message,
    Named,
    Primitive,
    ResolvedPackage,
    Service,
    StringValue,
    TypeRef,
    UnboundedSequence,
    UnboundedString,
    ValueShape,
    element_type,
    kind_of,
    messages_of,
    type_keyword,
)
from .util import escape_identifier, module_name

logger = logging.getLogger(__name__)

env = Environment(
    loader=PackageLoader("rosidlgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

wire_template = env.get_template("wire.py.j2")
idiomatic_template = env.get_template("idiomatic.py.j2")
package_template = env.get_template("package_init.py.j2")
namespace_template = env.get_template("namespace_init.py.j2")

MARKER_MEMBERS = {
    InterfaceKind.SERVICE: ("Request", "Response"),
    InterfaceKind.ACTION: ("Goal", "Result", "Feedback"),
}


class _Generator:
    """Code fragments for one package, handed to the templates as helpers."""

    def __init__(
        self,
        package: ResolvedPackage,
        options: GeneratorOptions,
        builtin_table: Mapping[str, BuiltinType],
    ):
        self.package = package
        self.options = options
        self.builtin_table = builtin_table
        self.root = escape_identifier(package.name)

    def _builtin(self, t: ElementType) -> BuiltinType:
        keyword = type_keyword(t)
        if keyword is None or keyword not in self.builtin_table:
            raise GeneratorBug(f"{t} is not a builtin type")
        return self.builtin_table[keyword]

    def _named(self, t: ElementType) -> Named:
        if not isinstance(t, Named) or t.package is None:
            raise GeneratorBug(f"unresolved type reference {t}")
        return t

    # Module paths

    def wire_module(self, package: str, namespace: InterfaceKind, name: str) -> str:
        return f"{escape_identifier(package)}.ffi.{namespace}.{module_name(name)}"

    def idiomatic_module(self, package: str, namespace: InterfaceKind, name: str) -> str:
        return f"{escape_identifier(package)}.{namespace}.{module_name(name)}"

    def wire_class(self, message: Message) -> str:
        return (
            self.wire_module(self.package.name, message.namespace, self._owner(message))
            + "."
            + escape_identifier(message.name)
        )

    def _owner(self, message: Message) -> str:
        """Definition whose module holds message."""
        for definition in self.package.definitions:
            if any(m is message for m in messages_of(definition)):
                return definition.name
        raise GeneratorBug(f"{message.name} is not part of {self.package.name}")

    def type_name(self, message: Message) -> str:
        return f"{self.package.name}/{message.namespace}/{message.name}"

    # Types

    def wire_element(self, t: ElementType) -> str:
        if isinstance(t, Primitive | UnboundedString):
            return self._builtin(t).wire
        if isinstance(t, BoundedString):
            factory = "bounded_wstring" if t.wide else "bounded_string"
            return f"_rt.{factory}({t.bound})"
        named = self._named(t)
        return (
            self.wire_module(named.package, InterfaceKind.MESSAGE, named.name)
            + "."
            + escape_identifier(named.name)
        )

    def wire_type(self, t: TypeRef) -> str:
        if isinstance(t, FixedArray):
            return f"({self.wire_element(t.element)} * {t.size})"
        if isinstance(t, UnboundedSequence):
            return f"_rt.sequence({self.wire_element(t.element)})"
        if isinstance(t, BoundedSequence):
            return f"_rt.sequence({self.wire_element(t.element)}, {t.bound})"
        return self.wire_element(t)

    def idiomatic_element(self, t: ElementType) -> str:
        if isinstance(t, Named):
            named = self._named(t)
            return (
                self.idiomatic_module(named.package, InterfaceKind.MESSAGE, named.name)
                + "."
                + escape_identifier(named.name)
            )
        return self._builtin(t).idiomatic

    def idiomatic_type(self, t: TypeRef) -> str:
        if isinstance(t, FixedArray | UnboundedSequence | BoundedSequence):
            return f"list[{self.idiomatic_element(t.element)}]"
        return self.idiomatic_element(t)

    # Constants

    def constant_type(self, constant: Constant) -> str:
        return self._builtin(constant.type).idiomatic

    def constant_annotation(self, constant: Constant) -> str:
        """Wire layer annotation carrying the exact C width of a constant."""
        builtin = self._builtin(constant.type)
        if builtin.shape == ValueShape.STRING:
            return builtin.idiomatic
        return f"Annotated[{builtin.idiomatic}, {builtin.wire}]"

    @staticmethod
    def literal(value: ConstantValue) -> str:
        match value:
            case BoolValue(value=v):
                return "True" if v else "False"
            case IntegerValue(value=v):
                return str(v)
            case FloatValue(value=v):
                return repr(float(v))
            case StringValue(value=v):
                # repr escapes every control character, NUL included
                return repr(v)
        raise GeneratorBug(f"unknown constant value {value!r}")

    # Conversions

    def _is_text(self, t: ElementType) -> bool:
        return isinstance(t, UnboundedString | BoundedString)

    def from_wire(self, field: Field) -> str:
        """Expression converting wire.<field> into its idiomatic value."""
        source = f"wire.{escape_identifier(field.name)}"
        t = field.type
        element = element_type(t)

        if isinstance(t, UnboundedSequence | BoundedSequence):
            if isinstance(element, Named):
                return f"[{self.idiomatic_element(element)}.from_wire(item) for item in {source}]"
            return f"{source}.to_list()"
        if isinstance(t, FixedArray):
            if isinstance(element, Named):
                return f"[{self.idiomatic_element(element)}.from_wire(item) for item in {source}]"
            if self._is_text(element):
                return f"[item.get() for item in {source}]"
            return f"list({source})"
        if isinstance(t, Named):
            return f"{self.idiomatic_element(t)}.from_wire({source})"
        if self._is_text(t):
            return f"{source}.get()"
        return source

    def _range_check(self, name: str, element: ElementType, value: str) -> str | None:
        """Statement rejecting an integer value the C field cannot hold."""
        if not isinstance(element, Primitive):
            return None
        builtin = self._builtin(element)
        if builtin.shape != ValueShape.INTEGER:
            return None
        low, high = integer_range(builtin.bits, builtin.signed)
        return f'_rt.check_range("{name}", {value}, {low}, {high})'

    def write_wire(self, field: Field) -> str:
        """Statements storing self.<field> into an existing wire message."""
        name = escape_identifier(field.name)
        target = f"wire.{name}"
        source = f"self.{name}"
        t = field.type
        element = element_type(t)

        if isinstance(t, UnboundedSequence | BoundedSequence):
            if isinstance(element, Named):
                return "\n".join(
                    [
                        f"{target}.resize(len({source}))",
                        f"for _item, _value in zip({target}, {source}):",
                        "    _value.write_wire(_item)",
                    ]
                )
            return f"{target}.assign({source})"
        if isinstance(t, FixedArray):
            check = f'_rt.check_length("{name}", {source}, {t.size})'
            if isinstance(element, Named):
                store = "_value.write_wire(_item)"
            elif self._is_text(element):
                store = "_item.set(_value)"
            else:
                lines = [check]
                range_check = self._range_check(name, element, "_value")
                if range_check is not None:
                    lines += [f"for _value in {source}:", f"    {range_check}"]
                return "\n".join(lines + [f"{target}[:] = {source}"])
            return "\n".join(
                [check, f"for _item, _value in zip({target}, {source}):", f"    {store}"]
            )
        if isinstance(t, Named):
            return f"{source}.write_wire({target})"
        if self._is_text(t):
            return f"{target}.set({source})"
        range_check = self._range_check(name, t, source)
        if range_check is not None:
            return f"{range_check}\n{target} = {source}"
        return f"{target} = {source}"

    # Imports

    def _referenced(self, definition: InterfaceDefinition) -> list[Named]:
        return [
            self._named(t)
            for message in messages_of(definition)
            for f in message.fields
            if isinstance(t := element_type(f.type), Named)
        ]

    def wire_imports(self, definition: InterfaceDefinition) -> list[str]:
        modules = {
            self.wire_module(t.package, InterfaceKind.MESSAGE, t.name)
            for t in self._referenced(definition)
        }
        return sorted(modules)

    def idiomatic_imports(self, definition: InterfaceDefinition) -> list[str]:
        modules = {
            self.idiomatic_module(t.package, InterfaceKind.MESSAGE, t.name)
            for t in self._referenced(definition)
        }
        modules.add(self.wire_module(self.package.name, kind_of(definition), definition.name))
        return sorted(modules)

    # Units

    def _marker(self, definition: InterfaceDefinition, wire: bool) -> dict | None:
        kind = kind_of(definition)
        if kind == InterfaceKind.MESSAGE:
            return None
        members = list(zip(MARKER_MEMBERS[kind], messages_of(definition)))
        if isinstance(definition, Service):
            support = service_type_support(self.package.name, definition)
            base = "WireService" if wire else "Service"
        elif isinstance(definition, Action):
            support = action_type_support(self.package.name, definition)
            base = "WireAction" if wire else "Action"
        else:
            raise GeneratorBug(f"no marker for {definition!r}")
        return {
            "base": base,
            "members": members,
            "type_support": support,
            "wire": self.wire_module(self.package.name, kind, definition.name)
            + "."
            + escape_identifier(definition.name),
        }

    def _context(self, definition: InterfaceDefinition) -> dict:
        return dict(
            package=self.package.name,
            kind=kind_of(definition),
            definition=definition,
            messages=messages_of(definition),
            runtime_import=self.options.runtime_import,
            class_name=escape_identifier,
            escape=escape_identifier,
            type_name=self.type_name,
        )

    def wire_unit(self, definition: InterfaceDefinition) -> GeneratedUnit:
        source = wire_template.render(
            imports=self.wire_imports(definition),
            bindings={
                m.name: message_bindings(self.package.name, m) for m in messages_of(definition)
            },
            marker=self._marker(definition, wire=True),
            wire_type=self.wire_type,
            constant_annotation=self.constant_annotation,
            literal=self.literal,
            **self._context(definition),
        )
        path = f"{self.root}/ffi/{kind_of(definition)}/{module_name(definition.name)}.py"
        return GeneratedUnit(path=path, source=source, layer=Layer.WIRE)

    def idiomatic_unit(self, definition: InterfaceDefinition) -> GeneratedUnit:
        source = idiomatic_template.render(
            imports=self.idiomatic_imports(definition),
            marker=self._marker(definition, wire=False),
            wire_class=self.wire_class,
            idiomatic_type=self.idiomatic_type,
            constant_type=self.constant_type,
            literal=self.literal,
            from_wire=self.from_wire,
            write_wire=self.write_wire,
            **self._context(definition),
        )
        path = f"{self.root}/{kind_of(definition)}/{module_name(definition.name)}.py"
        return GeneratedUnit(path=path, source=source, layer=Layer.IDIOMATIC)

    @staticmethod
    def _exported_names(definition: InterfaceDefinition) -> list[str]:
        names = [m.name for m in messages_of(definition)]
        if not isinstance(definition, Message):
            names.append(definition.name)
        return names

    def shared_units(self) -> list[GeneratedUnit]:
        interfaces = [
            f"{self.package.name}/{kind_of(d)}/{d.name}" for d in self.package.definitions
        ]
        units = [
            GeneratedUnit(
                path=f"{self.root}/__init__.py",
                source=package_template.render(
                    package=self.package.name,
                    dependencies=self.package.external_packages,
                    interfaces=interfaces,
                ),
                layer=Layer.SHARED,
            ),
            GeneratedUnit(
                path=f"{self.root}/ffi/__init__.py",
                source=namespace_template.render(
                    description=f"Wire layer of the {self.package.name} interfaces.",
                    exports=[],
                ),
                layer=Layer.SHARED,
            ),
        ]
        for kind in InterfaceKind:
            definitions = [d for d in self.package.definitions if kind_of(d) == kind]
            if not definitions:
                continue
            units.append(
                GeneratedUnit(
                    path=f"{self.root}/ffi/{kind}/__init__.py",
                    source=namespace_template.render(
                        description=f"Wire layer of the {self.package.name}/{kind} interfaces.",
                        exports=[],
                    ),
                    layer=Layer.SHARED,
                )
            )
            units.append(
                GeneratedUnit(
                    path=f"{self.root}/{kind}/__init__.py",
                    source=namespace_template.render(
                        description=f"{self.package.name}/{kind} interfaces.",
                        exports=[
                            (module_name(d.name), escape_identifier(name))
                            for d in definitions
                            for name in self._exported_names(d)
                        ],
                    ),
                    layer=Layer.SHARED,
                )
            )
        return units


def generate(
    package: ResolvedPackage,
    options: GeneratorOptions = GeneratorOptions(),
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
) -> list[GeneratedUnit]:
    """Render every unit of a resolved package.

    Shared package glue comes first, then the wire and idiomatic module
    of each definition in declaration order.
    """
    generator = _Generator(package, options, builtin_table)
    units = generator.shared_units()
    for definition in package.definitions:
        units.append(generator.wire_unit(definition))
        units.append(generator.idiomatic_unit(definition))
    logger.debug("generated %d unit(s) for %s", len(units), package.name)
    return units
