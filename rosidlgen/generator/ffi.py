"""Foreign function declarations emitted into the wire layer.

Each declaration names a C symbol of the rosidl libraries of a package,
its prototype as ctypes expressions, and the justification attached to
every generated call site.
"""

from dataclasses import dataclass

from .types import Action, InterfaceKind, Message, Service
from .util import escape_identifier

SAFETY_TYPE_SUPPORT = "takes no arguments and returns a pointer to static type support data"
SAFETY_INIT = (
    "self is a freshly zero-filled struct owned by this object and no other "
    "reference to its memory exists yet"
)
SAFETY_FINI = (
    "self owns its memory and is being collected, so nothing else can access it "
    "during or after finalization"
)
SAFETY_COPY = (
    "self and the new instance are distinct live structs, so source and destination "
    "never alias, and the destination is not yet shared"
)


def generator_library(package: str) -> str:
    return f"{package}__rosidl_generator_c"


def typesupport_library(package: str) -> str:
    return f"{package}__rosidl_typesupport_c"


def c_name(package: str, namespace: InterfaceKind, name: str) -> str:
    """C identifier prefix of a type: `pkg__msg__Point`."""
    return f"{package}__{namespace}__{name}"


@dataclass(frozen=True)
class ForeignDeclaration:
    """One module-level ForeignFunction in generated code."""

    variable: str
    library: str
    symbol: str
    argtypes: tuple[str, ...]
    restype: str
    safety: str

    @property
    def argtypes_source(self) -> str:
        if len(self.argtypes) == 1:
            return f"({self.argtypes[0]},)"
        return "(" + ", ".join(self.argtypes) + ")"

    def call(self, *args: str, indent: str = "") -> str:
        """Source of a call, laid out over several lines starting at indent."""
        lines = [f"{self.variable}.call("]
        lines.extend(f"{indent}    {arg}," for arg in args)
        lines.append(f'{indent}    safety="{self.safety}",')
        lines.append(f"{indent})")
        return "\n".join(lines)


@dataclass(frozen=True)
class MessageBindings:
    type_support: ForeignDeclaration
    init: ForeignDeclaration
    fini: ForeignDeclaration
    copy: ForeignDeclaration
    sequence_init: ForeignDeclaration
    sequence_fini: ForeignDeclaration
    sequence_copy: ForeignDeclaration

    @property
    def declarations(self) -> list[ForeignDeclaration]:
        return [
            self.type_support,
            self.init,
            self.fini,
            self.copy,
            self.sequence_init,
            self.sequence_fini,
            self.sequence_copy,
        ]


def _type_support(package: str, kind: str, namespace: InterfaceKind, name: str) -> ForeignDeclaration:
    return ForeignDeclaration(
        variable=f"_{escape_identifier(name)}_type_support",
        library=typesupport_library(package),
        symbol=f"rosidl_typesupport_c__get_{kind}_type_support_handle__"
        + c_name(package, namespace, name),
        argtypes=(),
        restype="ctypes.c_void_p",
        safety=SAFETY_TYPE_SUPPORT,
    )


def message_bindings(package: str, message: Message) -> MessageBindings:
    cls = escape_identifier(message.name)
    prefix = c_name(package, message.namespace, message.name)
    library = generator_library(package)
    pointer = f"ctypes.POINTER({cls})"

    def declare(suffix: str, argtypes: tuple[str, ...], restype: str, safety: str) -> ForeignDeclaration:
        return ForeignDeclaration(
            variable=f"_{cls}_{suffix.lstrip('_').replace('__', '_').lower()}",
            library=library,
            symbol=f"{prefix}{suffix}",
            argtypes=argtypes,
            restype=restype,
            safety=safety,
        )

    # Sequence functions are called by the runtime sequence type, which
    # passes the call site justification itself.
    return MessageBindings(
        type_support=_type_support(package, "message", message.namespace, message.name),
        init=declare("__init", (pointer,), "ctypes.c_bool", SAFETY_INIT),
        fini=declare("__fini", (pointer,), "None", SAFETY_FINI),
        copy=declare("__copy", (pointer, pointer), "ctypes.c_bool", SAFETY_COPY),
        sequence_init=declare(
            "__Sequence__init", ("ctypes.c_void_p", "ctypes.c_size_t"), "ctypes.c_bool", ""
        ),
        sequence_fini=declare("__Sequence__fini", ("ctypes.c_void_p",), "None", ""),
        sequence_copy=declare(
            "__Sequence__copy", ("ctypes.c_void_p", "ctypes.c_void_p"), "ctypes.c_bool", ""
        ),
    )


def service_type_support(package: str, service: Service) -> ForeignDeclaration:
    return _type_support(package, "service", InterfaceKind.SERVICE, service.name)


def action_type_support(package: str, action: Action) -> ForeignDeclaration:
    return _type_support(package, "action", InterfaceKind.ACTION, action.name)
