"""Tests for identifier helpers."""

from rosidlgen.generator import escape_identifier
from rosidlgen.generator.util import module_name, to_snake_case


def describe_escape_identifier():
    def appends_underscore_to_keywords(expect):
        expect(escape_identifier("class")) == "class_"
        expect(escape_identifier("lambda")) == "lambda_"
        expect(escape_identifier("None")) == "None_"

    def escapes_self(expect):
        expect(escape_identifier("self")) == "self_"

    def keeps_other_names(expect):
        expect(escape_identifier("position")) == "position"
        expect(escape_identifier("class_")) == "class_"
        expect(escape_identifier("match")) == "match"


def describe_to_snake_case():
    def converts_camel_case(expect):
        expect(to_snake_case("Point")) == "point"
        expect(to_snake_case("PoseStamped")) == "pose_stamped"
        expect(to_snake_case("PointCloud2")) == "point_cloud2"

    def keeps_acronyms_together(expect):
        expect(to_snake_case("HTTPHeader")) == "http_header"

    def escapes_module_names(expect):
        expect(module_name("Import")) == "import_"
