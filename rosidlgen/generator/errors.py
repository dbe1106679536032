"""Diagnostics raised while compiling interface files.

Every diagnostic is an exception so a stage can raise a single one, and a
dataclass so a stage can collect many of them and hand the list out in a
CompileError. str() of a diagnostic describes the problem without needing
the source file.
"""

from dataclasses import dataclass, field

from .types import Location, Position


@dataclass
class Diagnostic(RuntimeError):
    """Base class of all user-facing compile errors."""

    file: str | None = field(default=None, kw_only=True)

    def describe(self) -> str:
        raise NotImplementedError()

    def __str__(self) -> str:
        if self.file is None:
            return self.describe()
        return f"{self.file}: {self.describe()}"


@dataclass
class LexError(Diagnostic):
    position: Position
    reason: str

    def describe(self) -> str:
        return f"{self.position}: {self.reason}"


@dataclass
class ParseError(Diagnostic):
    position: Position
    expected: str
    found: str

    def describe(self) -> str:
        return f"{self.position}: expected {self.expected}, found {self.found}"


@dataclass
class UnresolvedType(Diagnostic):
    package: str
    type: str
    field: str

    def describe(self) -> str:
        return f"unknown type {self.package}/{self.type} for field {self.field}"


@dataclass
class DuplicateName(Diagnostic):
    definition: str
    name: str

    def describe(self) -> str:
        return f"{self.definition}: name {self.name!r} is declared more than once"


@dataclass
class TypeMismatch(Diagnostic):
    expected: str
    found: str
    location: Location

    def describe(self) -> str:
        return f"{self.location}: expected {self.expected}, found {self.found}"


@dataclass
class InvalidArrayBound(Diagnostic):
    location: Location
    detail: str = "bound must be greater than zero"

    def describe(self) -> str:
        return f"{self.location}: invalid bound, {self.detail}"


@dataclass
class InvalidDefaultValue(Diagnostic):
    location: Location
    detail: str = "default value not allowed here"

    def describe(self) -> str:
        return f"{self.location}: invalid default value, {self.detail}"


@dataclass
class CyclicDependency(Diagnostic):
    path: list[str]

    def describe(self) -> str:
        return "cyclic type dependency: " + " -> ".join(self.path)


class CompileError(RuntimeError):
    """Raised by a pipeline stage with every diagnostic it collected."""

    def __init__(self, diagnostics: list[Diagnostic]):
        super().__init__("\n".join(str(d) for d in diagnostics))
        self.diagnostics = diagnostics


class GeneratorBug(RuntimeError):
    """Generation hit resolved input it cannot handle.

    This is never a user error: resolution rejects invalid input first.
    """
