"""Runtime support imported by generated bindings."""

from .ffi import (
    FatalNativeError,
    ForeignFunction,
    LibraryNotFoundError,
    NativeLibrary,
    SequenceOps,
    SharedLibrary,
    load_library,
    register_library,
    unregister_library,
)
from .message import (
    WIRE_DEFAULT,
    Action,
    Message,
    Service,
    WireAction,
    WireMessage,
    WireService,
    check_length,
    check_range,
)
from .sequence import Sequence, sequence
from .string import CapacityError, String, WString, bounded_string, bounded_wstring

__all__ = [
    "Action",
    "CapacityError",
    "FatalNativeError",
    "ForeignFunction",
    "LibraryNotFoundError",
    "Message",
    "NativeLibrary",
    "Sequence",
    "SequenceOps",
    "Service",
    "SharedLibrary",
    "String",
    "WIRE_DEFAULT",
    "WString",
    "WireAction",
    "WireMessage",
    "WireService",
    "bounded_string",
    "bounded_wstring",
    "check_length",
    "check_range",
    "load_library",
    "register_library",
    "sequence",
    "unregister_library",
]
