"""ROS interface compiler."""

from .compiler import CompileResult as CompileResult
from .compiler import compile_package as compile_package
from .compiler import index_package as index_package
from .errors import *
from .lexer import tokenize as tokenize
from .parser import parse as parse
from .parser import parse_text as parse_text
from .python import generate as generate
from .resolver import resolve as resolve
from .types import *
from .util import escape_identifier as escape_identifier
