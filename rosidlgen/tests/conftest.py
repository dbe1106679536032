"""Unit tests configuration file."""

import ctypes
import importlib
import sys
from pathlib import PurePath

import pytest

from rosidlgen.generator import (
    InterfaceKind,
    PackageDescriptor,
    SourceFile,
    compile_package,
)
from rosidlgen.runtime import register_library, unregister_library


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


class FakeNativeLibrary:
    """Stands in for the rosidl C libraries, working on ctypes memory.

    Message init leaves the zero-filled struct as it is, fini frees nothing
    and every buffer it hands out stays referenced until the test ends.
    """

    def __init__(self):
        self.calls: list[str] = []
        self.handles: dict[str, int] = {}
        self._buffers: list[object] = []

    def resolve(self, symbol, argtypes, restype):
        impl = self._implementation(symbol)

        def call(*args):
            self.calls.append(symbol)
            return impl(*args)

        return call

    def _implementation(self, symbol):
        if "_type_support_handle__" in symbol:
            return lambda: self.handles.setdefault(symbol, len(self.handles) + 1)
        if symbol.endswith("__Sequence__init"):
            return self._sequence_init
        if symbol.endswith("__Sequence__fini"):
            return self._sequence_fini
        if symbol.endswith("__Sequence__copy"):
            return self._sequence_copy
        if symbol.endswith("U16String__assignn"):
            return self._wstring_assignn
        if symbol.endswith("String__assignn"):
            return self._string_assignn
        if symbol.endswith("__init"):
            return lambda ptr: True
        if symbol.endswith("__fini"):
            return lambda ptr: None
        if symbol.endswith("__copy"):
            return self._copy
        raise AssertionError(f"unexpected symbol {symbol}")

    def _keep(self, buffer):
        self._buffers.append(buffer)
        return buffer

    def _sequence_init(self, ptr, size):
        seq = ptr.contents
        pointer_type = type(seq)._fields_[0][1]
        array = self._keep((pointer_type._type_ * size)())
        seq.data = ctypes.cast(array, pointer_type)
        seq.size = size
        seq.capacity = size
        return True

    def _sequence_fini(self, ptr):
        seq = ptr.contents
        seq.data = None
        seq.size = 0
        seq.capacity = 0

    def _sequence_copy(self, source, destination):
        src = source.contents
        self._sequence_init(destination, src.size)
        element = type(src)._fields_[0][1]._type_
        ctypes.memmove(destination.contents.data, src.data, ctypes.sizeof(element) * src.size)
        return True

    def _string_assignn(self, ptr, data, size):
        buffer = self._keep(ctypes.create_string_buffer(data[:size], size + 1))
        s = ptr.contents
        s.data = ctypes.cast(buffer, ctypes.POINTER(ctypes.c_char))
        s.size = size
        s.capacity = size + 1
        return True

    def _wstring_assignn(self, ptr, data, size):
        buffer = self._keep((ctypes.c_uint16 * (size + 1))())
        ctypes.memmove(buffer, data, size * 2)
        s = ptr.contents
        s.data = ctypes.cast(buffer, ctypes.POINTER(ctypes.c_uint16))
        s.size = size
        s.capacity = size + 1
        return True

    def _copy(self, source, destination):
        ctypes.memmove(destination, source, ctypes.sizeof(source.contents))
        return True


class NativeLibraries:
    """Registers one FakeNativeLibrary under every library name a test needs."""

    def __init__(self):
        self.library = FakeNativeLibrary()
        self.names: list[str] = []
        self.register("rosidl_runtime_c")

    @property
    def calls(self) -> list[str]:
        return self.library.calls

    def register(self, name: str) -> None:
        register_library(name, self.library)
        self.names.append(name)

    def install(self, package: str) -> None:
        self.register(f"{package}__rosidl_generator_c")
        self.register(f"{package}__rosidl_typesupport_c")

    def close(self) -> None:
        for name in self.names:
            unregister_library(name)


@pytest.fixture
def native():
    libraries = NativeLibraries()
    yield libraries
    libraries.close()


def make_descriptor(name: str, files: dict[str, str]) -> PackageDescriptor:
    """Package made of literal file texts, keyed by file name."""
    return PackageDescriptor(
        name,
        tuple(
            SourceFile(path=path, kind=InterfaceKind.from_suffix(PurePath(path).suffix), text=text)
            for path, text in files.items()
        ),
    )


@pytest.fixture
def descriptor():
    return make_descriptor


@pytest.fixture
def build(tmp_path, monkeypatch, native):
    """Compile a package, write its units under tmp_path and make it importable."""
    built: list[str] = []
    monkeypatch.syspath_prepend(str(tmp_path))

    def build(name, files, context=None):
        result = compile_package(make_descriptor(name, files), context)
        assert result.ok, [str(d) for d in result.diagnostics]
        for unit in result.units:
            path = tmp_path / unit.path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(unit.source, encoding="utf-8")
        importlib.invalidate_caches()
        native.install(name)
        built.append(name)
        return result

    yield build

    for module in list(sys.modules):
        if any(module == name or module.startswith(name + ".") for name in built):
            del sys.modules[module]
