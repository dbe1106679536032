"""rosidl_runtime_c sequence structs."""

import ctypes
import functools
from collections.abc import Iterable, Iterator
from typing import Any, ClassVar

from .ffi import FatalNativeError, SequenceOps, sequence_ops
from .message import check_range
from .string import RUNTIME_LIBRARY, CapacityError

# Element ctypes -> name used in rosidl_runtime_c__<name>__Sequence__*
PRIMITIVE_SEQUENCE_NAMES = {
    ctypes.c_bool: "boolean",
    ctypes.c_int8: "int8",
    ctypes.c_uint8: "uint8",
    ctypes.c_int16: "int16",
    ctypes.c_uint16: "uint16",
    ctypes.c_int32: "int32",
    ctypes.c_uint32: "uint32",
    ctypes.c_int64: "int64",
    ctypes.c_uint64: "uint64",
    ctypes.c_float: "float",
    ctypes.c_double: "double",
}

PRIMITIVE_SEQUENCE_OPS = {
    ctype: sequence_ops(RUNTIME_LIBRARY, f"rosidl_runtime_c__{name}")
    for ctype, name in PRIMITIVE_SEQUENCE_NAMES.items()
}

# Integer element ctypes -> (low, high)
INTEGER_RANGES = {
    ctypes.c_int8: (-(2**7), 2**7 - 1),
    ctypes.c_uint8: (0, 2**8 - 1),
    ctypes.c_int16: (-(2**15), 2**15 - 1),
    ctypes.c_uint16: (0, 2**16 - 1),
    ctypes.c_int32: (-(2**31), 2**31 - 1),
    ctypes.c_uint32: (0, 2**32 - 1),
    ctypes.c_int64: (-(2**63), 2**63 - 1),
    ctypes.c_uint64: (0, 2**64 - 1),
}


class Sequence(ctypes.Structure):
    """Base of all `<T>__Sequence` structs: data pointer, size and capacity.

    Element storage is owned by the native allocator. resize() replaces the
    contents with default-initialized elements.
    """

    element: ClassVar[Any]
    upper_bound: ClassVar[int | None] = None

    @classmethod
    def ops(cls) -> SequenceOps:
        ops = getattr(cls.element, "sequence_ops", None)
        if ops is None:
            ops = PRIMITIVE_SEQUENCE_OPS[cls.element]
        return ops

    def __len__(self) -> int:
        return self.size

    def _index(self, index: int) -> int:
        if index < 0:
            index += self.size
        if not 0 <= index < self.size:
            raise IndexError("sequence index out of range")
        return index

    def __getitem__(self, index: int) -> Any:
        return self.data[self._index(index)]

    @classmethod
    def _check_element(cls, value: Any) -> None:
        limits = INTEGER_RANGES.get(cls.element)
        if limits is not None:
            check_range(f"{cls.__name__} element", value, *limits)

    def __setitem__(self, index: int, value: Any) -> None:
        index = self._index(index)
        self._check_element(value)
        self.data[index] = value

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.size):
            yield self.data[i]

    def resize(self, size: int) -> None:
        if self.upper_bound is not None and size > self.upper_bound:
            raise CapacityError(f"sequence of {size} elements exceeds bound {self.upper_bound}")
        ops = self.ops()
        ops.fini.call(
            ctypes.pointer(self),
            safety="the sequence is alive and exclusively borrowed for the call; "
            "its previous elements are not referenced after this point",
        )
        if not ops.init.call(
            ctypes.pointer(self),
            size,
            safety="the sequence struct is alive, exclusively borrowed and was just "
            "finalized, so init does not leak or alias its storage",
        ):
            raise FatalNativeError(f"failed to allocate {size} elements of {self.element.__name__}")

    def assign(self, values: Iterable[Any]) -> None:
        """Replace the contents with values (primitives or str)."""
        values = list(values)
        for value in values:
            self._check_element(value)
        self.resize(len(values))
        for i, value in enumerate(values):
            if hasattr(self.element, "set"):
                self.data[i].set(value)
            else:
                self.data[i] = value

    def to_list(self) -> list[Any]:
        if self.size == 0:
            return []
        if hasattr(self.element, "get"):
            return [item.get() for item in self]
        return self.data[: self.size]

    def copy_from(self, other: "Sequence") -> None:
        if type(other) is not type(self):
            raise TypeError(f"cannot copy {type(other).__name__} into {type(self).__name__}")
        if not self.ops().copy.call(
            ctypes.pointer(other),
            ctypes.pointer(self),
            safety="source and destination are distinct live sequences of the same type; "
            "the destination is exclusively borrowed",
        ):
            raise FatalNativeError(f"failed to copy {type(self).__name__}")

    def __del__(self) -> None:
        if self._b_needsfree_ and self.data:
            self.ops().fini.call(
                ctypes.pointer(self),
                safety="the sequence owns its storage and is being collected, so no other "
                "reference to it exists",
            )


@functools.cache
def sequence(element: Any, bound: int | None = None) -> type[Sequence]:
    """The sequence struct type for element, bounded when bound is given."""
    name = f"{element.__name__}Sequence" if bound is None else f"{element.__name__}Sequence{bound}"
    return type(
        name,
        (Sequence,),
        {
            "_fields_": [
                ("data", ctypes.POINTER(element)),
                ("size", ctypes.c_size_t),
                ("capacity", ctypes.c_size_t),
            ],
            "element": element,
            "upper_bound": bound,
        },
    )
