"""Tests for the runtime sequence structs."""

import ctypes

import pytest

from rosidlgen.runtime import CapacityError, String, bounded_string, sequence


def describe_sequence():
    def starts_empty(expect, native):
        seq = sequence(ctypes.c_int32)()
        expect(len(seq)) == 0
        expect(seq.to_list()) == []
        expect(list(seq)) == []

    def assigns_primitives(expect, native):
        seq = sequence(ctypes.c_int32)()
        seq.assign([3, 1, 2])
        expect(len(seq)) == 3
        expect(seq.to_list()) == [3, 1, 2]
        expect(seq[0]) == 3
        expect(seq[-1]) == 2
        expect(native.calls) == [
            "rosidl_runtime_c__int32__Sequence__fini",
            "rosidl_runtime_c__int32__Sequence__init",
        ]

    def sets_items_in_place(expect, native):
        seq = sequence(ctypes.c_double)()
        seq.resize(2)
        seq[1] = 2.5
        expect(seq.to_list()) == [0.0, 2.5]

    def rejects_index_out_of_range(expect, native):
        seq = sequence(ctypes.c_uint8)()
        seq.assign([1])
        with pytest.raises(IndexError):
            seq[1]
        with pytest.raises(IndexError):
            seq[-2] = 0

    def assigns_strings(expect, native):
        seq = sequence(String)()
        seq.assign(["a", "bc"])
        expect(seq.to_list()) == ["a", "bc"]
        expect(native.calls[0]) == "rosidl_runtime_c__String__Sequence__fini"

    def copies_from_same_type(expect, native):
        source = sequence(ctypes.c_int64)()
        source.assign([1, 2])
        copy = sequence(ctypes.c_int64)()
        copy.copy_from(source)
        expect(copy.to_list()) == [1, 2]
        expect(native.calls[-1]) == "rosidl_runtime_c__int64__Sequence__copy"

    def refuses_copy_between_types(expect, native):
        with pytest.raises(TypeError):
            sequence(ctypes.c_int64)().copy_from(sequence(ctypes.c_int32)())

    def caches_types(expect):
        expect(sequence(ctypes.c_float) is sequence(ctypes.c_float)) == True
        expect(sequence(ctypes.c_float) is sequence(ctypes.c_float, 3)) == False


def describe_bounded_sequence():
    def accepts_up_to_bound(expect, native):
        seq = sequence(ctypes.c_int32, 2)()
        seq.assign([1, 2])
        expect(seq.to_list()) == [1, 2]

    def rejects_more_than_bound(expect, native):
        seq = sequence(ctypes.c_int32, 2)()
        with pytest.raises(CapacityError):
            seq.assign([1, 2, 3])
        expect(native.calls) == []

    def checks_string_bounds_of_elements(expect, native):
        seq = sequence(bounded_string(2))()
        with pytest.raises(CapacityError):
            seq.assign(["ok", "long"])


def describe_integer_elements():
    @pytest.mark.parametrize(
        "element, value",
        [(ctypes.c_uint8, 256), (ctypes.c_uint8, -1), (ctypes.c_int8, 128), (ctypes.c_uint64, 2**64)],
    )
    def rejects_values_out_of_range(expect, native, element, value):
        seq = sequence(element)()
        with pytest.raises(CapacityError):
            seq.assign([0, value])
        expect(native.calls) == []

    def accepts_limits(expect, native):
        seq = sequence(ctypes.c_int16)()
        seq.assign([-32768, 32767])
        expect(seq.to_list()) == [-32768, 32767]

    def checks_items_set_in_place(expect, native):
        seq = sequence(ctypes.c_int32)()
        seq.assign([1])
        with pytest.raises(CapacityError):
            seq[0] = 2**31
        expect(seq[0]) == 1

    def leaves_floats_unchecked(expect, native):
        seq = sequence(ctypes.c_double)()
        seq.assign([1e300])
        expect(seq.to_list()) == [1e300]
