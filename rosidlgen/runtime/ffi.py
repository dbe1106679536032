"""Native library loading and foreign function calls."""

import ctypes
import ctypes.util
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class FatalNativeError(RuntimeError):
    """A native call failed in a way the caller cannot recover from."""


class LibraryNotFoundError(RuntimeError):
    """Raised when a native library cannot be located."""


class NativeLibrary(Protocol):
    def resolve(self, symbol: str, argtypes: tuple[Any, ...], restype: Any) -> Callable[..., Any]:
        ...


class SharedLibrary:
    """A shared object loaded through ctypes."""

    def __init__(self, path: str):
        self.path = path
        self._dll = ctypes.CDLL(path)

    def resolve(self, symbol: str, argtypes: tuple[Any, ...], restype: Any) -> Callable[..., Any]:
        try:
            fn = getattr(self._dll, symbol)
        except AttributeError:
            raise FatalNativeError(f"{self.path} does not export {symbol}") from None
        fn.argtypes = list(argtypes)
        fn.restype = restype
        return fn

    @classmethod
    def find(cls, name: str) -> "SharedLibrary":
        """Locate lib<name>.so in the ament prefixes, then on the system path."""
        for prefix in os.environ.get("AMENT_PREFIX_PATH", "").split(os.pathsep):
            if not prefix:
                continue
            path = os.path.join(prefix, "lib", f"lib{name}.so")
            if os.path.exists(path):
                return cls(path)
        path = ctypes.util.find_library(name)
        if path is None:
            raise LibraryNotFoundError(f"cannot find native library {name}")
        return cls(path)


_g_libraries: dict[str, NativeLibrary] = {}


def register_library(name: str, library: NativeLibrary) -> None:
    """Use library for every call into name, instead of loading it."""
    _g_libraries[name] = library


def unregister_library(name: str) -> None:
    _g_libraries.pop(name, None)


def load_library(name: str) -> NativeLibrary:
    library = _g_libraries.get(name)
    if library is None:
        shared = SharedLibrary.find(name)
        logger.info("loaded %s from %s", name, shared.path)
        library = _g_libraries[name] = shared
    return library


@dataclass(frozen=True)
class ForeignFunction:
    """A C function bound by symbol name.

    Every call must say why it is safe: which pointers it passes, why they
    are valid, and that nothing else accesses that memory meanwhile.
    """

    library: str
    symbol: str
    argtypes: tuple[Any, ...] = ()
    restype: Any = None

    def call(self, *args: Any, safety: str) -> Any:
        if not safety:
            raise ValueError(f"call to {self.symbol} without a safety justification")
        logger.debug("calling %s: %s", self.symbol, safety)
        fn = load_library(self.library).resolve(self.symbol, self.argtypes, self.restype)
        return fn(*args)


@dataclass(frozen=True)
class SequenceOps:
    """Native lifecycle functions of one sequence type."""

    init: ForeignFunction
    fini: ForeignFunction
    copy: ForeignFunction


def sequence_ops(library: str, prefix: str) -> SequenceOps:
    """Sequence functions named <prefix>__Sequence__{init,fini,copy} in library."""
    return SequenceOps(
        init=ForeignFunction(
            library,
            f"{prefix}__Sequence__init",
            (ctypes.c_void_p, ctypes.c_size_t),
            ctypes.c_bool,
        ),
        fini=ForeignFunction(library, f"{prefix}__Sequence__fini", (ctypes.c_void_p,)),
        copy=ForeignFunction(
            library,
            f"{prefix}__Sequence__copy",
            (ctypes.c_void_p, ctypes.c_void_p),
            ctypes.c_bool,
        ),
    )
