"""End-to-end tests of package compilation."""

from pathlib import Path

import pytest

from rosidlgen.generator import (
    CompileError,
    CyclicDependency,
    InvalidArrayBound,
    LexError,
    UnresolvedType,
    compile_package,
    index_package,
)
from rosidlgen.generator.types import (
    DependencyEdge,
    ExternalType,
    Layer,
    PackageDescriptor,
    SourceFile,
    TypeKey,
    TypeTable,
)

FIXTURES = Path(__file__).parent / "fixtures"

STD_MSGS = TypeTable("std_msgs", {"Header": ExternalType("Header")})


def describe_compile_package():
    def compiles_the_position_example(expect, build):
        result = build("geo", {"Position.msg": "# Position\nfloat64 x\nfloat64 y\nfloat64 z 0.0\n"})
        expect(result.ok) == True
        expect(result.dependencies) == ()
        expect([u.layer for u in result.units].count(Layer.WIRE)) == 1

        from geo.ffi.msg import position as wire
        from geo.msg import Position

        expect([name for name, _ in wire.Position._fields_]) == ["x", "y", "z"]
        position = Position()
        expect((position.x, position.y, position.z)) == (0.0, 0.0, 0.0)

    def reports_parse_errors_with_their_file(expect, descriptor):
        result = compile_package(
            descriptor("pkg", {"Good.msg": "int32 a", "Bad.msg": "int32 a\nint32[0] b"})
        )
        expect(result.ok) == False
        expect(result.units) == ()
        expect(len(result.diagnostics)) == 1
        expect(isinstance(result.diagnostics[0], InvalidArrayBound)) == True
        expect(result.diagnostics[0].file) == "Bad.msg"
        expect(str(result.diagnostics[0]).startswith("Bad.msg: ")) == True

    def collects_diagnostics_of_every_file(expect, descriptor):
        result = compile_package(
            descriptor("pkg", {"A.msg": "int32 a ~", "B.msg": "int32[0] b", "C.msg": "int32 c"})
        )
        expect([type(d) for d in result.diagnostics]) == [LexError, InvalidArrayBound]
        expect([d.file for d in result.diagnostics]) == ["A.msg", "B.msg"]

    def stops_before_resolution_on_parse_errors(expect, descriptor):
        result = compile_package(
            descriptor("pkg", {"A.msg": "Missing m", "B.msg": "int32[0] b"})
        )
        expect([type(d) for d in result.diagnostics]) == [InvalidArrayBound]

    def reports_resolution_errors(expect, descriptor):
        result = compile_package(descriptor("pkg", {"A.msg": "Missing m"}))
        expect(result.diagnostics) == (UnresolvedType("pkg", "Missing", "m"),)

    def extracts_dependencies(expect, descriptor):
        result = compile_package(
            descriptor("pkg", {"A.msg": "Header h", "B.srv": "int32 a\n---\nHeader h"}),
            {"std_msgs": STD_MSGS},
        )
        expect(result.ok) == True
        expect(result.dependencies) == (
            DependencyEdge("A", "std_msgs"),
            DependencyEdge("B", "std_msgs"),
        )
        expect(result.external_packages) == ["std_msgs"]

    def reads_files_from_disk(expect):
        source = SourceFile.from_path(str(FIXTURES / "pkg_b" / "msg" / "Bar.msg"))
        expect(source.name) == "Bar"
        result = compile_package(PackageDescriptor("pkg_b", (source,)))
        expect(result.diagnostics) == (UnresolvedType("pkg_a", "Foo", "foo"),)

    def is_deterministic(expect, descriptor):
        files = {"Point.msg": "float64 x", "Line.msg": "Point a\nPoint b", "Get.srv": "---\nLine l"}
        first = compile_package(descriptor("pkg", files))
        second = compile_package(descriptor("pkg", files))
        expect(first.units) == second.units


def describe_cross_package_cycles():
    @pytest.fixture
    def pkg_a():
        return PackageDescriptor(
            "pkg_a", (SourceFile.from_path(str(FIXTURES / "pkg_a" / "msg" / "Foo.msg")),)
        )

    @pytest.fixture
    def pkg_b():
        return PackageDescriptor(
            "pkg_b", (SourceFile.from_path(str(FIXTURES / "pkg_b" / "msg" / "Bar.msg")),)
        )

    def rejects_cycle_through_dependency(expect, pkg_a, pkg_b):
        result = compile_package(pkg_a, {"pkg_b": index_package(pkg_b)})
        expect(result.diagnostics) == (
            CyclicDependency(["pkg_a/Foo", "pkg_b/Bar", "pkg_a/Foo"]),
        )
        message = str(result.diagnostics[0])
        expect(message).contains("pkg_a/Foo")
        expect(message).contains("pkg_b/Bar")

    def rejects_cycle_from_either_side(expect, pkg_a, pkg_b):
        result = compile_package(pkg_b, {"pkg_a": index_package(pkg_a)})
        expect(result.diagnostics) == (
            CyclicDependency(["pkg_b/Bar", "pkg_a/Foo", "pkg_b/Bar"]),
        )


def describe_index_package():
    def exports_message_references(expect, descriptor):
        table = index_package(
            descriptor(
                "pkg",
                {
                    "Point.msg": "float64 x",
                    "Stamped.msg": "Header header\nPoint[] points\nother/Thing t",
                    "Get.srv": "---\nPoint p",
                },
            )
        )
        expect(table.package) == "pkg"
        expect(sorted(table.types)) == ["Point", "Stamped"]
        expect(table.types["Stamped"].references) == (
            TypeKey("other", "Thing"),
            TypeKey("pkg", "Point"),
            TypeKey("std_msgs", "Header"),
        )

    def prefers_local_header(expect, descriptor):
        table = index_package(
            descriptor("pkg", {"Header.msg": "uint32 seq", "Stamped.msg": "Header header"})
        )
        expect(table.types["Stamped"].references) == (TypeKey("pkg", "Header"),)

    def raises_on_parse_errors(expect, descriptor):
        with pytest.raises(CompileError) as e:
            index_package(descriptor("pkg", {"Bad.msg": "int32[0] b"}))
        expect(e.value.diagnostics[0].file) == "Bad.msg"

    def round_trips_through_json(expect, descriptor):
        table = index_package(descriptor("pkg", {"Point.msg": "float64 x"}))
        expect(TypeTable.from_json(table.to_json()).to_json()) == table.to_json()
