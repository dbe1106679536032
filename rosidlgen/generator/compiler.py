"""Compile one package of interface files into Python bindings."""

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import CompileError, Diagnostic
from .parser import parse_text
from .python import generate
from .resolver import HEADER, resolve
from .types import (
    BUILTIN_TYPES,
    BuiltinType,
    DependencyEdge,
    ExternalType,
    ExternalTypeContext,
    GeneratedUnit,
    GeneratorOptions,
    InterfaceDefinition,
    InterfaceKind,
    Named,
    PackageDescriptor,
    ParsedPackage,
    SourceFile,
    TypeKey,
    TypeTable,
    element_type,
    messages_of,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    """Output of one compile: units and dependencies, or the diagnostics."""

    units: tuple[GeneratedUnit, ...] = ()
    dependencies: tuple[DependencyEdge, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def external_packages(self) -> list[str]:
        return sorted({edge.package for edge in self.dependencies})


def _read(source: SourceFile) -> str:
    if source.text is not None:
        return source.text
    with open(source.path, encoding="utf-8") as f:
        return f.read()


def _parse_files(
    descriptor: PackageDescriptor, builtin_table: Mapping[str, BuiltinType]
) -> tuple[list[InterfaceDefinition], list[Diagnostic]]:
    definitions: list[InterfaceDefinition] = []
    diagnostics: list[Diagnostic] = []
    for source in descriptor.files:
        try:
            definitions.append(parse_text(_read(source), source.kind, source.name, builtin_table))
        except CompileError as e:
            diagnostics.extend(dataclasses.replace(d, file=source.path) for d in e.diagnostics)
    return definitions, diagnostics


def compile_package(
    descriptor: PackageDescriptor,
    context: ExternalTypeContext | None = None,
    *,
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
    options: GeneratorOptions = GeneratorOptions(),
) -> CompileResult:
    """Lex, parse, resolve and generate one package.

    Invalid input never raises: the result carries the diagnostics instead.
    Resolution only starts when every file parsed.
    """
    logger.debug("compiling %s (%d file(s))", descriptor.name, len(descriptor.files))
    definitions, diagnostics = _parse_files(descriptor, builtin_table)
    if diagnostics:
        return CompileResult(diagnostics=tuple(diagnostics))

    try:
        resolved = resolve(ParsedPackage(descriptor.name, tuple(definitions)), builtin_table, context)
    except CompileError as e:
        return CompileResult(diagnostics=tuple(e.diagnostics))

    units = generate(resolved, options, builtin_table)
    return CompileResult(units=tuple(units), dependencies=resolved.dependencies)


def index_package(
    descriptor: PackageDescriptor,
    builtin_table: Mapping[str, BuiltinType] = BUILTIN_TYPES,
) -> TypeTable:
    """Public type table of a package, from parsing alone.

    References are qualified the way the resolver would qualify them.
    Raises CompileError when a file does not parse.
    """
    definitions, diagnostics = _parse_files(descriptor, builtin_table)
    if diagnostics:
        raise CompileError(diagnostics)

    messages = [
        m
        for d in definitions
        for m in messages_of(d)
        if m.namespace == InterfaceKind.MESSAGE
    ]
    local = {m.name for m in messages}
    types = {}
    for message in messages:
        references = set()
        for f in message.fields:
            t = element_type(f.type)
            if not isinstance(t, Named):
                continue
            if t.package is None and t.name not in local and t.name == HEADER.name:
                references.add(HEADER)
            else:
                references.add(TypeKey(t.package or descriptor.name, t.name))
        types[message.name] = ExternalType(message.name, tuple(sorted(references)))
    return TypeTable(package=descriptor.name, types=types)
