import re

# Python 3.12 keyword.kwlist, fixed so generated names do not depend on the
# interpreter running the compiler. "self" is added since generated methods
# take it as first argument.
RESERVED_WORDS = frozenset(
    [
        "False",
        "None",
        "True",
        "and",
        "as",
        "assert",
        "async",
        "await",
        "break",
        "class",
        "continue",
        "def",
        "del",
        "elif",
        "else",
        "except",
        "finally",
        "for",
        "from",
        "global",
        "if",
        "import",
        "in",
        "is",
        "lambda",
        "nonlocal",
        "not",
        "or",
        "pass",
        "raise",
        "return",
        "try",
        "while",
        "with",
        "yield",
        "self",
    ]
)

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def escape_identifier(name: str) -> str:
    """Return name as a usable Python identifier.

    Reserved words get a single trailing underscore: `class` -> `class_`,
    `self` -> `self_`. Every other name is returned unchanged.
    """
    if name in RESERVED_WORDS:
        return name + "_"
    return name


def to_snake_case(name: str) -> str:
    """Module name of a type: `PointCloud2` -> `point_cloud2`, `HTTPHeader` -> `http_header`."""
    return _SNAKE_BOUNDARY.sub("_", name).lower()


def module_name(type_name: str) -> str:
    return escape_identifier(to_snake_case(type_name))
