"""Base classes of generated wire and idiomatic types."""

import ctypes
import dataclasses
from collections.abc import Sized
from dataclasses import dataclass
from typing import Any, ClassVar

from .ffi import SequenceOps
from .string import CapacityError


class WireMessage(ctypes.Structure):
    """Base of generated message structs.

    Subclasses set _fields_ in the C declaration order and bind their
    native init/fini/copy functions.
    """

    TYPE_NAME: ClassVar[str]
    sequence_ops: ClassVar[SequenceOps]

    @classmethod
    def get_type_support(cls) -> int:
        raise NotImplementedError()

    def clone(self) -> "WireMessage":
        raise NotImplementedError()


class WireService:
    """Marker of a service: its type support handle and message types."""

    __slots__ = ()

    TYPE_NAME: ClassVar[str]
    Request: ClassVar[type[WireMessage]]
    Response: ClassVar[type[WireMessage]]

    @classmethod
    def get_type_support(cls) -> int:
        raise NotImplementedError()


class WireAction:
    __slots__ = ()

    TYPE_NAME: ClassVar[str]
    Goal: ClassVar[type[WireMessage]]
    Result: ClassVar[type[WireMessage]]
    Feedback: ClassVar[type[WireMessage]]

    @classmethod
    def get_type_support(cls) -> int:
        raise NotImplementedError()


class _WireDefault:
    def __repr__(self) -> str:
        return "WIRE_DEFAULT"


# Field default of idiomatic messages: take the value from a default
# constructed wire message.
WIRE_DEFAULT: Any = _WireDefault()


@dataclass
class Message:
    """Base of generated idiomatic messages."""

    TYPE_NAME: ClassVar[str]
    wire_type: ClassVar[type[WireMessage]]

    def __post_init__(self) -> None:
        unset = [f.name for f in dataclasses.fields(self) if getattr(self, f.name) is WIRE_DEFAULT]
        if unset:
            default = self.from_wire(self.wire_type())
            for name in unset:
                setattr(self, name, getattr(default, name))

    @classmethod
    def from_wire(cls, wire: Any) -> "Message":
        raise NotImplementedError()

    def write_wire(self, wire: Any) -> None:
        """Store every field into an existing wire message."""
        raise NotImplementedError()

    def to_wire(self) -> WireMessage:
        wire = self.wire_type()
        self.write_wire(wire)
        return wire

    @classmethod
    def get_type_support(cls) -> int:
        return cls.wire_type.get_type_support()


class Service:
    __slots__ = ()

    TYPE_NAME: ClassVar[str]
    wire_type: ClassVar[type[WireService]]
    Request: ClassVar[type[Message]]
    Response: ClassVar[type[Message]]

    @classmethod
    def get_type_support(cls) -> int:
        return cls.wire_type.get_type_support()


class Action:
    __slots__ = ()

    TYPE_NAME: ClassVar[str]
    wire_type: ClassVar[type[WireAction]]
    Goal: ClassVar[type[Message]]
    Result: ClassVar[type[Message]]
    Feedback: ClassVar[type[Message]]

    @classmethod
    def get_type_support(cls) -> int:
        return cls.wire_type.get_type_support()


def check_length(name: str, values: Sized, size: int) -> None:
    """Fixed size arrays take exactly size elements."""
    if len(values) != size:
        raise CapacityError(f"{name} must have {size} elements, got {len(values)}")


def check_range(name: str, value: int, low: int, high: int) -> None:
    """Integers must fit the C field they are stored in."""
    if not low <= value <= high:
        raise CapacityError(f"{name} must be within {low}..{high}, got {value}")
