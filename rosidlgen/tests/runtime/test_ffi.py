"""Tests for native library loading and foreign calls."""

import ctypes
import ctypes.util

import pytest

from rosidlgen.runtime import (
    FatalNativeError,
    ForeignFunction,
    LibraryNotFoundError,
    SharedLibrary,
    load_library,
    register_library,
    unregister_library,
)
from rosidlgen.runtime.ffi import sequence_ops


class RecordingLibrary:
    def __init__(self):
        self.resolved = []

    def resolve(self, symbol, argtypes, restype):
        self.resolved.append((symbol, argtypes, restype))
        return lambda *args: (symbol, args)


@pytest.fixture
def recording():
    library = RecordingLibrary()
    register_library("recording", library)
    yield library
    unregister_library("recording")


def describe_foreign_function():
    def calls_through_registered_library(expect, recording):
        fn = ForeignFunction("recording", "do_it", (ctypes.c_int,), ctypes.c_bool)
        expect(fn.call(1, 2, safety="plain integers")) == ("do_it", (1, 2))
        expect(recording.resolved) == [("do_it", (ctypes.c_int,), ctypes.c_bool)]

    def requires_safety_justification(expect, recording):
        fn = ForeignFunction("recording", "do_it")
        with pytest.raises(ValueError):
            fn.call(safety="")
        expect(recording.resolved) == []

    def calls_system_library():
        if ctypes.util.find_library("c") is None:
            pytest.skip("no C library found")
        register_library("c", SharedLibrary.find("c"))
        try:
            fn = ForeignFunction("c", "strlen", (ctypes.c_char_p,), ctypes.c_size_t)
            assert fn.call(b"rosidl", safety="reads a NUL terminated bytes object") == 6
        finally:
            unregister_library("c")


def describe_load_library():
    def prefers_registered_library(expect, recording):
        expect(load_library("recording")) == recording

    def reports_missing_library(expect, monkeypatch, tmp_path):
        monkeypatch.setenv("AMENT_PREFIX_PATH", str(tmp_path))
        with pytest.raises(LibraryNotFoundError) as e:
            load_library("rosidlgen_missing_library")
        expect(str(e.value)).contains("rosidlgen_missing_library")

    def reports_missing_symbol(expect):
        path = ctypes.util.find_library("c")
        if path is None:
            pytest.skip("no C library found")
        with pytest.raises(FatalNativeError):
            SharedLibrary(path).resolve("rosidlgen_no_such_symbol", (), None)


def describe_sequence_ops():
    def names_sequence_functions(expect):
        ops = sequence_ops("lib", "pkg__msg__Point")
        expect(ops.init.symbol) == "pkg__msg__Point__Sequence__init"
        expect(ops.fini.symbol) == "pkg__msg__Point__Sequence__fini"
        expect(ops.copy.symbol) == "pkg__msg__Point__Sequence__copy"
        expect(ops.init.library) == "lib"
