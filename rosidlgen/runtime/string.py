"""rosidl_runtime_c string structs."""

import ctypes
import functools
from typing import ClassVar

from .ffi import FatalNativeError, ForeignFunction, SequenceOps, sequence_ops

RUNTIME_LIBRARY = "rosidl_runtime_c"


class CapacityError(ValueError):
    """A value does not fit the bound of a string, sequence or array."""


class String(ctypes.Structure):
    """rosidl_runtime_c__String: UTF-8 bytes owned by the native allocator."""

    _fields_ = [
        ("data", ctypes.POINTER(ctypes.c_char)),
        ("size", ctypes.c_size_t),
        ("capacity", ctypes.c_size_t),
    ]

    upper_bound: ClassVar[int | None] = None
    sequence_ops: ClassVar[SequenceOps] = sequence_ops(RUNTIME_LIBRARY, "rosidl_runtime_c__String")

    def get(self) -> str:
        if not self.data or self.size == 0:
            return ""
        return ctypes.string_at(self.data, self.size).decode("utf-8")

    def set(self, value: str) -> None:
        if self.upper_bound is not None and len(value) > self.upper_bound:
            raise CapacityError(
                f"string of {len(value)} characters exceeds bound {self.upper_bound}"
            )
        encoded = value.encode("utf-8")
        if not _string_assignn.call(
            ctypes.pointer(self),
            encoded,
            len(encoded),
            safety="the string struct is alive for the call and not shared with another "
            "thread; the source buffer holds len bytes and is not aliased by the struct",
        ):
            raise FatalNativeError("rosidl_runtime_c__String__assignn failed")

    def __del__(self) -> None:
        if self._b_needsfree_ and self.data:
            _string_fini.call(
                ctypes.pointer(self),
                safety="the string owns its buffer and is being collected, so no other "
                "reference to it exists",
            )

    def __str__(self) -> str:
        return self.get()


class WString(ctypes.Structure):
    """rosidl_runtime_c__U16String: UTF-16 code units owned by the native allocator."""

    _fields_ = [
        ("data", ctypes.POINTER(ctypes.c_uint16)),
        ("size", ctypes.c_size_t),
        ("capacity", ctypes.c_size_t),
    ]

    upper_bound: ClassVar[int | None] = None
    sequence_ops: ClassVar[SequenceOps] = sequence_ops(
        RUNTIME_LIBRARY, "rosidl_runtime_c__U16String"
    )

    def get(self) -> str:
        if not self.data or self.size == 0:
            return ""
        return ctypes.string_at(self.data, self.size * 2).decode("utf-16-le")

    def set(self, value: str) -> None:
        encoded = value.encode("utf-16-le")
        units = len(encoded) // 2
        # Bounds count UTF-16 code units; a surrogate pair takes two.
        if self.upper_bound is not None and units > self.upper_bound:
            raise CapacityError(f"string of {units} code units exceeds bound {self.upper_bound}")
        buffer = (ctypes.c_uint16 * units).from_buffer_copy(encoded)
        if not _wstring_assignn.call(
            ctypes.pointer(self),
            buffer,
            units,
            safety="the string struct is alive for the call and not shared with another "
            "thread; the source buffer holds n code units and is not aliased by the struct",
        ):
            raise FatalNativeError("rosidl_runtime_c__U16String__assignn failed")

    def __del__(self) -> None:
        if self._b_needsfree_ and self.data:
            _wstring_fini.call(
                ctypes.pointer(self),
                safety="the string owns its buffer and is being collected, so no other "
                "reference to it exists",
            )

    def __str__(self) -> str:
        return self.get()


_string_assignn = ForeignFunction(
    RUNTIME_LIBRARY,
    "rosidl_runtime_c__String__assignn",
    (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_size_t),
    ctypes.c_bool,
)
_string_fini = ForeignFunction(RUNTIME_LIBRARY, "rosidl_runtime_c__String__fini", (ctypes.c_void_p,))
_wstring_assignn = ForeignFunction(
    RUNTIME_LIBRARY,
    "rosidl_runtime_c__U16String__assignn",
    (ctypes.c_void_p, ctypes.c_void_p, ctypes.c_size_t),
    ctypes.c_bool,
)
_wstring_fini = ForeignFunction(
    RUNTIME_LIBRARY, "rosidl_runtime_c__U16String__fini", (ctypes.c_void_p,)
)


@functools.cache
def bounded_string(bound: int) -> type[String]:
    """String type that rejects values longer than bound characters."""
    return type(f"BoundedString{bound}", (String,), {"upper_bound": bound})


@functools.cache
def bounded_wstring(bound: int) -> type[WString]:
    return type(f"BoundedWString{bound}", (WString,), {"upper_bound": bound})
