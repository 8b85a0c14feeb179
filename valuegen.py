"""Value type generator for Java.

Reads Java interfaces annotated with @AutoMatter and generates, for each one,
a `<Type>Builder` class with a nested immutable `Value` implementation that
provides accessors, equals, hashCode and toString.

Usage:
    python valuegen.py src/main/java --output-dir target/generated-sources
"""

import argparse
import io
import math
import re
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import TextIO

import javalang

DEFAULT_OUTPUT_DIR = Path("generated")
DEFAULT_ANNOTATION = "AutoMatter"
DEFAULT_GENERATED_ANNOTATION = "javax.annotation.Generated"
GENERATOR_NAME = "valuegen"

JAVA_LANG = "java.lang."
BUILDER_SUFFIX = "Builder"
VALUE_CLASS_NAME = "Value"
JSON_CREATOR = "com.fasterxml.jackson.annotation.JsonCreator"
JSON_PROPERTY = "com.fasterxml.jackson.annotation.JsonProperty"


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    sources: tuple[Path, ...]
    output_dir: Path
    annotation: str
    jackson_annotations: bool
    generated_annotation: str | None


@dataclass(frozen=True)
class ListConfig:
    sources: tuple[Path, ...]
    annotation: str


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
    "NO_SOURCES",
    "INVALID_ANNOTATION_NAME",
}
_QUALIFIED_NAME_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_annotation_name(name: str, flag: str = "--annotation") -> str:
    if _QUALIFIED_NAME_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_ANNOTATION_NAME",
        f"Invalid annotation name for {flag}: {name!r}",
        "Pass a Java type name, e.g. AutoMatter or io.norberg.automatter.AutoMatter.",
    )


def validate_path_exists(path: Path) -> Path:
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Source path does not exist: {path}",
        "Pass existing .java files or directories containing them.",
    )


def collect_source_files(paths: Iterable[Path]) -> tuple[Path, ...]:
    """Expand files and directories into a sorted, de-duplicated .java list.

    Directories are searched recursively. Files are taken as given, whatever
    their suffix, so a single file can always be passed explicitly.

    Raises:
        ConfigError: PATH_NOT_FOUND for a missing path, NO_SOURCES when
            nothing is left to read.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        validate_path_exists(path)
        candidates = sorted(path.rglob("*.java")) if path.is_dir() else [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                found.append(candidate)

    if not found:
        raise ConfigError(
            "NO_SOURCES",
            "No .java source files found.",
            "Pass at least one .java file or a directory containing them.",
        )
    return tuple(found)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate builders and value classes for annotated Java interfaces"
    )

    parser.add_argument("sources", type=Path, nargs="+")
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--annotation", type=str, default=DEFAULT_ANNOTATION)
    parser.add_argument("--no-jackson", action="store_true", default=False)

    generated_group = parser.add_mutually_exclusive_group()
    generated_group.add_argument(
        "--generated-annotation", type=str, default=DEFAULT_GENERATED_ANNOTATION
    )
    generated_group.add_argument(
        "--no-generated-annotation", action="store_true", default=False
    )

    parser.add_argument("--list", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | ListConfig:
    annotation = validate_annotation_name(args.annotation)
    sources = collect_source_files(args.sources)

    if args.list:
        return ListConfig(sources=sources, annotation=annotation)

    if args.no_generated_annotation:
        generated_annotation = None
    else:
        generated_annotation = validate_annotation_name(
            args.generated_annotation, "--generated-annotation"
        )

    return GenerateConfig(
        sources=sources,
        output_dir=args.output_dir,
        annotation=annotation,
        jackson_annotations=not args.no_jackson,
        generated_annotation=generated_annotation,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | ListConfig:
    return validate_config(parse_args(argv))


# ===--- Generation errors ---=== #


VALID_GENERATION_ERROR_CODES = {
    "UNSUPPORTED_FIELD_SHAPE",
    "UNSUPPORTED_TYPE_KIND",
    "UNSUPPORTED_TYPE_SHAPE",
    "BUILDER_NAME_COLLISION",
    "JAVA_SYNTAX_ERROR",
}


class GenerationError(Exception):
    """Failure to generate one value type (or to read one source file).

    Attributes:
        code: One of VALID_GENERATION_ERROR_CODES.
        message: Human-readable description, already naming the type/field.
        type_name: Qualified name of the type being generated, or the source
            path for JAVA_SYNTAX_ERROR.
        field_name: Offending member, when the failure is about one field.
        line: 1-based source line, when the frontend knows it.
    """

    def __init__(
        self,
        code: str,
        message: str,
        type_name: str | None = None,
        field_name: str | None = None,
        line: int | None = None,
    ):
        if code not in VALID_GENERATION_ERROR_CODES:
            raise ValueError(f"Unknown generation error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.type_name = type_name
        self.field_name = field_name
        self.line = line


class UnsupportedFieldShape(GenerationError):
    def __init__(self, message, type_name=None, field_name=None, line=None):
        super().__init__(
            "UNSUPPORTED_FIELD_SHAPE", message, type_name, field_name, line
        )


class UnsupportedTypeKind(GenerationError):
    def __init__(self, message, type_name=None, field_name=None, line=None):
        super().__init__("UNSUPPORTED_TYPE_KIND", message, type_name, field_name, line)


# ===--- Data model ---=== #


class TypeKind(str, Enum):
    BYTE = "byte"
    SHORT = "short"
    CHAR = "char"
    INT = "int"
    LONG = "long"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DOUBLE = "double"
    ARRAY = "array"
    REFERENCE = "reference"
    VOID = "void"


INTEGRAL_KINDS = frozenset(
    {TypeKind.BYTE, TypeKind.SHORT, TypeKind.CHAR, TypeKind.INT, TypeKind.LONG}
)
FLOATING_KINDS = frozenset({TypeKind.FLOAT, TypeKind.DOUBLE})
PRIMITIVE_KINDS: dict[str, TypeKind] = {
    kind.value: kind
    for kind in (*INTEGRAL_KINDS, TypeKind.BOOLEAN, *FLOATING_KINDS)
}

# Names the generated equals/hashCode bodies declare or call unqualified.
# Arrays, Float and Double would be obscured by a field of the same name.
RESERVED_FIELD_NAMES = frozenset(
    {
        "o",
        "value",
        "result",
        "temp",
        "hashCode",
        "toString",
        "getClass",
        "Arrays",
        "Float",
        "Double",
    }
)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type_kind: TypeKind
    type_name: str


@dataclass(frozen=True)
class TypeDescriptor:
    """The value interface being implemented.

    Attributes:
        package_name: Dotted package, empty string for the default package.
        simple_name: Interface name, e.g. "Foobar".
        fields: Accessors in declaration order. Order is carried verbatim
            into every generated member, including the hashCode accumulation.
    """

    package_name: str
    simple_name: str
    fields: tuple[FieldDescriptor, ...]

    @property
    def builder_name(self) -> str:
        return self.simple_name + BUILDER_SUFFIX

    @property
    def qualified_name(self) -> str:
        return qualify(self.package_name, self.simple_name)

    @property
    def qualified_builder_name(self) -> str:
        return qualify(self.package_name, self.builder_name)


@dataclass(frozen=True)
class MemberDescription:
    name: str
    type_kind: TypeKind
    type_name: str
    is_static: bool = False
    parameter_names: tuple[str, ...] = ()
    line: int | None = None


@dataclass(frozen=True)
class InterfaceDescription:
    package_name: str
    simple_name: str
    members: tuple[MemberDescription, ...]
    line: int | None = None

    @property
    def qualified_name(self) -> str:
        return qualify(self.package_name, self.simple_name)


def qualify(package_name: str, simple_name: str) -> str:
    return f"{package_name}.{simple_name}" if package_name else simple_name


# ===--- Java source frontend ---=== #


def parse_compilation_unit(source: str, filename: str = "<input>"):
    try:
        return javalang.parse.parse(source)
    except javalang.parser.JavaSyntaxError as err:
        position = getattr(err, "at", None)
        line = getattr(getattr(position, "position", None), "line", None)
        raise GenerationError(
            "JAVA_SYNTAX_ERROR",
            f"{filename}: Java syntax error: {err.description}",
            type_name=filename,
            line=line,
        ) from err
    except javalang.tokenizer.LexerError as err:
        raise GenerationError(
            "JAVA_SYNTAX_ERROR",
            f"{filename}: Java lexer error: {err}",
            type_name=filename,
        ) from err


def short_type_name(name: str) -> str:
    if name.startswith(JAVA_LANG):
        remainder = name[len(JAVA_LANG):]
        base = re.split(r"[<\[]", remainder, maxsplit=1)[0]
        if "." not in base:
            return remainder
    return name


def _render_type_argument(argument) -> str:
    pattern = getattr(argument, "pattern_type", None)
    inner = getattr(argument, "type", None)
    if inner is None:
        return "?"
    rendered = _render_unqualified(inner)
    if pattern == "extends":
        return f"? extends {rendered}"
    if pattern == "super":
        return f"? super {rendered}"
    return rendered


def _render_unqualified(type_node) -> str:
    parts: list[str] = []
    node = type_node
    while node is not None:
        part = node.name
        arguments = getattr(node, "arguments", None)
        if arguments:
            part += "<" + ", ".join(_render_type_argument(a) for a in arguments) + ">"
        parts.append(part)
        node = getattr(node, "sub_type", None)
    return short_type_name(".".join(parts)) + "[]" * len(type_node.dimensions or ())


def render_type_name(type_node) -> str:
    if type_node is None:
        return "void"
    return _render_unqualified(type_node)


def classify_type(type_node) -> TypeKind:
    if type_node is None:
        return TypeKind.VOID
    if type_node.dimensions:
        return TypeKind.ARRAY
    if isinstance(type_node, javalang.tree.BasicType):
        return PRIMITIVE_KINDS[type_node.name]
    return TypeKind.REFERENCE


def _line_of(node) -> int | None:
    position = getattr(node, "position", None)
    return getattr(position, "line", None)


def _annotated_with(declaration, annotation: str) -> bool:
    simple = annotation.rsplit(".", 1)[-1]
    for candidate in declaration.annotations or ():
        if candidate.name == annotation:
            return True
        if candidate.name.rsplit(".", 1)[-1] == simple:
            return True
    return False


def _member_declarations(declaration) -> list:
    body = declaration.body or ()
    if isinstance(body, javalang.tree.EnumBody):
        return body.declarations or []
    return list(body)


def _walk_type_declarations(declarations, enclosing: str = ""):
    for declaration in declarations:
        if not isinstance(declaration, javalang.tree.TypeDeclaration):
            continue
        name = f"{enclosing}.{declaration.name}" if enclosing else declaration.name
        yield name, declaration
        yield from _walk_type_declarations(_member_declarations(declaration), name)


def declared_type_names(unit) -> set[str]:
    package_name = unit.package.name if unit.package else ""
    return {
        qualify(package_name, name)
        for name, _ in _walk_type_declarations(unit.types or ())
    }


def describe_interface(declaration, package_name: str) -> InterfaceDescription:
    members = []
    for method in declaration.methods:
        members.append(
            MemberDescription(
                name=method.name,
                type_kind=classify_type(method.return_type),
                type_name=render_type_name(method.return_type),
                is_static="static" in (method.modifiers or ()),
                parameter_names=tuple(p.name for p in method.parameters or ()),
                line=_line_of(method),
            )
        )
    return InterfaceDescription(
        package_name=package_name,
        simple_name=declaration.name,
        members=tuple(members),
        line=_line_of(declaration),
    )


def find_value_interfaces(
    unit, annotation: str
) -> tuple[list[InterfaceDescription], list[GenerationError]]:
    """Return every type in the unit carrying `annotation`, in source order.

    Nested interfaces are found too, but are described by their simple name:
    the generated builder is a top-level type in the same package.

    Returns:
        (interfaces, errors). An annotated class, enum, generic interface or
        interface that extends another one yields an UNSUPPORTED_TYPE_SHAPE
        error in place of a description; its siblings are still returned.
    """
    package_name = unit.package.name if unit.package else ""
    found: list[InterfaceDescription] = []
    errors: list[GenerationError] = []
    for name, declaration in _walk_type_declarations(unit.types or ()):
        if not _annotated_with(declaration, annotation):
            continue
        qualified = qualify(package_name, name)
        if not isinstance(declaration, javalang.tree.InterfaceDeclaration):
            kind = type(declaration).__name__.replace("Declaration", "").lower()
            reason = f"is a {kind}, expected an interface"
        elif declaration.type_parameters:
            reason = "declares type parameters; generic value types are not supported"
        elif declaration.extends:
            reason = "extends other interfaces; inherited accessors are not supported"
        else:
            found.append(describe_interface(declaration, package_name))
            continue
        errors.append(
            GenerationError(
                "UNSUPPORTED_TYPE_SHAPE",
                f"@{annotation} type {qualified} {reason}",
                type_name=qualified,
                line=_line_of(declaration),
            )
        )
    return found, errors


# ===--- Field model extraction ---=== #


def extract_fields(interface: InterfaceDescription) -> list[FieldDescriptor]:
    """Project the non-static members of an interface onto field descriptors."""
    return [
        FieldDescriptor(member.name, member.type_kind, member.type_name)
        for member in interface.members
        if not member.is_static
    ]


def check_member_shapes(interface: InterfaceDescription) -> None:
    for member in interface.members:
        if member.is_static:
            continue
        if member.parameter_names:
            params = ", ".join(member.parameter_names)
            raise UnsupportedFieldShape(
                f"{interface.qualified_name}.{member.name}({params}) is not a "
                f"zero-argument accessor",
                type_name=interface.qualified_name,
                field_name=member.name,
                line=member.line,
            )
        if member.name in RESERVED_FIELD_NAMES:
            raise UnsupportedFieldShape(
                f"{interface.qualified_name}.{member.name}() clashes with a name "
                f"used by the generated value class",
                type_name=interface.qualified_name,
                field_name=member.name,
                line=member.line,
            )


def describe_type(interface: InterfaceDescription) -> TypeDescriptor:
    return TypeDescriptor(
        package_name=interface.package_name,
        simple_name=interface.simple_name,
        fields=tuple(extract_fields(interface)),
    )


# ===--- Emission plan ---=== #


EMIT_OPS = frozenset(
    {
        "emit_package",
        "emit_imports",
        "begin_type",
        "end_type",
        "begin_method",
        "end_method",
        "begin_constructor",
        "end_constructor",
        "emit_field",
        "emit_statement",
        "begin_control_flow",
        "end_control_flow",
        "emit_annotation",
        "emit_empty_line",
    }
)


@dataclass(frozen=True)
class Instruction:
    """One structural emit call: the emitter method name and its arguments."""

    op: str
    args: tuple = ()

    def __post_init__(self) -> None:
        if self.op not in EMIT_OPS:
            raise ValueError(f"Unknown emit operation: {self.op}")


GenerationPlan = tuple[Instruction, ...]


class PlanRecorder:
    """Emitter stand-in that records every call as an Instruction."""

    def __init__(self) -> None:
        self.instructions: list[Instruction] = []

    def __getattr__(self, op: str):
        if op not in EMIT_OPS:
            raise AttributeError(op)

        def record(*args) -> None:
            self.instructions.append(Instruction(op, args))

        return record

    def plan(self) -> GenerationPlan:
        return tuple(self.instructions)


def replay_plan(plan: Sequence[Instruction], emitter) -> None:
    for instruction in plan:
        getattr(emitter, instruction.op)(*instruction.args)


# ===--- Type-kind dispatch ---=== #


def _unsupported(field: FieldDescriptor) -> UnsupportedTypeKind:
    return UnsupportedTypeKind(
        f"field '{field.name}' has type '{field.type_name}' ({field.type_kind.value}) "
        f"with no equals/hashCode/toString rule",
        field_name=field.name,
    )


def not_equal_condition(field: FieldDescriptor) -> str:
    name = field.name
    kind = field.type_kind
    if kind in INTEGRAL_KINDS or kind == TypeKind.BOOLEAN:
        return f"if ({name} != value.{name})"
    if kind == TypeKind.FLOAT:
        return f"if (Float.compare(value.{name}, {name}) != 0)"
    if kind == TypeKind.DOUBLE:
        return f"if (Double.compare(value.{name}, {name}) != 0)"
    if kind == TypeKind.ARRAY:
        return f"if (!Arrays.equals({name}, value.{name}))"
    if kind == TypeKind.REFERENCE:
        return f"if ({name} != null ? !{name}.equals(value.{name}) : value.{name} != null)"
    raise _unsupported(field)


def hash_contribution(field: FieldDescriptor) -> tuple[str, ...]:
    name = field.name
    kind = field.type_kind
    if kind == TypeKind.LONG:
        return (f"result = 31 * result + (int) ({name} ^ ({name} >>> 32))",)
    if kind == TypeKind.INT:
        return (f"result = 31 * result + {name}",)
    if kind == TypeKind.BOOLEAN:
        return (f"result = 31 * result + ({name} ? 1 : 0)",)
    if kind in INTEGRAL_KINDS:
        return (f"result = 31 * result + (int) {name}",)
    if kind == TypeKind.FLOAT:
        return (
            f"result = 31 * result + "
            f"({name} != +0.0f ? Float.floatToIntBits({name}) : 0)",
        )
    if kind == TypeKind.DOUBLE:
        return (
            f"temp = Double.doubleToLongBits({name})",
            "result = 31 * result + (int) (temp ^ (temp >>> 32))",
        )
    if kind == TypeKind.ARRAY:
        return (f"result = 31 * result + ({name} != null ? Arrays.hashCode({name}) : 0)",)
    if kind == TypeKind.REFERENCE:
        return (f"result = 31 * result + ({name} != null ? {name}.hashCode() : 0)",)
    raise _unsupported(field)


def to_string_term(field: FieldDescriptor, separator: str) -> str:
    name = field.name
    kind = field.type_kind
    if kind == TypeKind.ARRAY:
        return f'"{separator}{name}=" + Arrays.toString({name}) +'
    if kind in INTEGRAL_KINDS or kind in FLOATING_KINDS:
        return f'"{separator}{name}=" + {name} +'
    if kind in (TypeKind.BOOLEAN, TypeKind.REFERENCE):
        return f'"{separator}{name}=" + {name} +'
    raise _unsupported(field)


# ===--- Value/builder synthesis ---=== #


@dataclass(frozen=True)
class SynthesisOptions:
    """Knobs for the generated source that do not change value semantics.

    Attributes:
        jackson_annotations: Emit Jackson @JsonCreator/@JsonProperty so the
            value class can be deserialized without extra configuration.
        generated_annotation: Qualified @Generated annotation type, or None
            to emit neither the import nor the annotation.
        generator_name: Value of the @Generated annotation.
    """

    jackson_annotations: bool = True
    generated_annotation: str | None = DEFAULT_GENERATED_ANNOTATION
    generator_name: str = GENERATOR_NAME


DEFAULT_SYNTHESIS_OPTIONS = SynthesisOptions()


def synthesize(
    descriptor: TypeDescriptor,
    options: SynthesisOptions = DEFAULT_SYNTHESIS_OPTIONS,
) -> GenerationPlan:
    """Produce the emission plan for `<Type>Builder` and its nested Value.

    The plan is a pure function of the descriptor and options; nothing is
    written. Every field's kind is checked against the dispatch rules before
    the first instruction is recorded, so a failing type yields no plan.

    Raises:
        UnsupportedTypeKind: A field kind has no equals/hashCode/toString
            rule. type_name is set to the descriptor's qualified name.
    """
    fields = descriptor.fields
    for field in fields:
        try:
            not_equal_condition(field)
        except UnsupportedTypeKind as err:
            raise UnsupportedTypeKind(
                f"{descriptor.qualified_name}: {err.message}",
                type_name=descriptor.qualified_name,
                field_name=field.name,
            ) from err

    w = PlanRecorder()
    w.emit_package(descriptor.package_name)

    imports = []
    if any(f.type_kind == TypeKind.ARRAY for f in fields):
        imports.append("java.util.Arrays")
    if options.generated_annotation:
        imports.append(options.generated_annotation)
    if imports:
        w.emit_imports(*imports)
        w.emit_empty_line()

    if options.generated_annotation:
        w.emit_annotation(
            options.generated_annotation.rsplit(".", 1)[-1],
            f'"{options.generator_name}"',
        )
    w.begin_type(descriptor.builder_name, "class", ("public", "final"), None, ())

    _emit_builder_fields(w, fields)
    _emit_setters(w, descriptor.builder_name, fields)
    _emit_build(w, descriptor.simple_name, fields)
    _emit_value(w, descriptor.simple_name, fields, options)

    w.end_type()
    return w.plan()


def _emit_builder_fields(w, fields) -> None:
    w.emit_empty_line()
    for field in fields:
        w.emit_field(field.type_name, field.name, ("private",))


def _emit_setters(w, builder_name, fields) -> None:
    for field in fields:
        w.emit_empty_line()
        w.begin_method(
            builder_name, field.name, ("public",), ((field.type_name, field.name),)
        )
        w.emit_statement(f"this.{field.name} = {field.name}")
        w.emit_statement("return this")
        w.end_method()


def _emit_build(w, target_name, fields) -> None:
    w.emit_empty_line()
    w.begin_method(target_name, "build", ("public",), ())
    arguments = ", ".join(field.name for field in fields)
    w.emit_statement(f"return new {VALUE_CLASS_NAME}({arguments})")
    w.end_method()


def _emit_value(w, target_name, fields, options) -> None:
    w.emit_empty_line()
    w.begin_type(
        VALUE_CLASS_NAME, "class", ("private", "static", "final"), None, (target_name,)
    )

    w.emit_empty_line()
    for field in fields:
        w.emit_field(field.type_name, field.name, ("private", "final"))

    _emit_value_constructor(w, fields, options)
    for field in fields:
        _emit_value_getter(w, field, options)
    _emit_value_equals(w, fields)
    _emit_value_hash_code(w, fields)
    _emit_value_to_string(w, target_name, fields)

    w.end_type()


def _emit_value_constructor(w, fields, options) -> None:
    w.emit_empty_line()
    parameters = []
    for field in fields:
        type_name = field.type_name
        if options.jackson_annotations:
            type_name = f'@{JSON_PROPERTY}("{field.name}") {type_name}'
        parameters.append((type_name, field.name))
    if options.jackson_annotations:
        w.emit_annotation(JSON_CREATOR, None)
    w.begin_constructor(("private",), tuple(parameters))
    for field in fields:
        w.emit_statement(f"this.{field.name} = {field.name}")
    w.end_constructor()


def _emit_value_getter(w, field, options) -> None:
    w.emit_empty_line()
    if options.jackson_annotations:
        w.emit_annotation(JSON_PROPERTY, None)
    w.emit_annotation("Override", None)
    w.begin_method(field.type_name, field.name, ("public",), ())
    w.emit_statement(f"return {field.name}")
    w.end_method()


def _emit_value_equals(w, fields) -> None:
    w.emit_empty_line()
    w.emit_annotation("Override", None)
    w.begin_method("boolean", "equals", ("public",), (("Object", "o"),))

    w.begin_control_flow("if (this == o)")
    w.emit_statement("return true")
    w.end_control_flow()

    w.begin_control_flow("if (o == null || getClass() != o.getClass())")
    w.emit_statement("return false")
    w.end_control_flow()

    if fields:
        w.emit_empty_line()
        w.emit_statement(f"final {VALUE_CLASS_NAME} value = ({VALUE_CLASS_NAME}) o")
        w.emit_empty_line()
        for field in fields:
            w.begin_control_flow(not_equal_condition(field))
            w.emit_statement("return false")
            w.end_control_flow()

    w.emit_empty_line()
    w.emit_statement("return true")
    w.end_method()


def _emit_value_hash_code(w, fields) -> None:
    w.emit_empty_line()
    w.emit_annotation("Override", None)
    w.begin_method("int", "hashCode", ("public",), ())
    w.emit_statement("int result = 0")
    if any(field.type_kind == TypeKind.DOUBLE for field in fields):
        w.emit_statement("long temp")
    for field in fields:
        for statement in hash_contribution(field):
            w.emit_statement(statement)
    w.emit_statement("return result")
    w.end_method()


def _emit_value_to_string(w, target_name, fields) -> None:
    w.emit_empty_line()
    w.emit_annotation("Override", None)
    w.begin_method("String", "toString", ("public",), ())
    lines = [f'return "{target_name}{{" +']
    for index, field in enumerate(fields):
        lines.append(to_string_term(field, ", " if index else ""))
    lines.append("'}'")
    w.emit_statement("\n".join(lines))
    w.end_method()


# ===--- Java source writer ---=== #


MODIFIER_ORDER: tuple[str, ...] = (
    "public",
    "protected",
    "private",
    "abstract",
    "static",
    "final",
)


class JavaWriter:
    """Structural Java source emitter over a text stream.

    Tracks indentation and the enclosing type names so constructors can be
    emitted by modifiers and parameters alone. The writer does not own the
    stream; whoever opened it closes it.
    """

    def __init__(self, out: TextIO, indent: str = "  ") -> None:
        self._out = out
        self._indent = indent
        self._scopes: list[str] = []
        self._types: list[str] = []

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def _line(self, text: str) -> None:
        self._out.write(self._indent * self.depth + text + "\n")

    def _open(self, scope: str, header: str) -> None:
        self._line(header + " {")
        self._scopes.append(scope)

    def _close(self, scope: str) -> None:
        if not self._scopes or self._scopes[-1] != scope:
            current = self._scopes[-1] if self._scopes else "nothing"
            raise ValueError(f"Cannot end {scope}: innermost open scope is {current}")
        self._scopes.pop()
        self._line("}")

    @staticmethod
    def _modifiers(modifiers: Iterable[str]) -> str:
        ordered = sorted(set(modifiers), key=MODIFIER_ORDER.index)
        return "".join(f"{m} " for m in ordered)

    @staticmethod
    def _parameters(parameters: Iterable[tuple[str, str]]) -> str:
        return ", ".join(f"{type_name} {name}" for type_name, name in parameters)

    def emit_package(self, package_name: str) -> None:
        if package_name:
            self._line(f"package {package_name};")
            self.emit_empty_line()

    def emit_imports(self, *names: str) -> None:
        for name in names:
            self._line(f"import {name};")

    def emit_empty_line(self) -> None:
        self._out.write("\n")

    def emit_annotation(self, name: str, value: str | None = None) -> None:
        if value is None:
            self._line(f"@{name}")
        else:
            self._line(f"@{name}({value})")

    def begin_type(
        self,
        name: str,
        kind: str,
        modifiers: Iterable[str] = (),
        extends: str | None = None,
        implements: Sequence[str] = (),
    ) -> None:
        header = f"{self._modifiers(modifiers)}{kind} {name}"
        if extends:
            header += f" extends {extends}"
        if implements:
            header += " implements " + ", ".join(implements)
        self._open("type", header)
        self._types.append(name)

    def end_type(self) -> None:
        self._close("type")
        self._types.pop()

    def emit_field(
        self, type_name: str, name: str, modifiers: Iterable[str] = ()
    ) -> None:
        self._line(f"{self._modifiers(modifiers)}{type_name} {name};")

    def begin_method(
        self,
        return_type: str,
        name: str,
        modifiers: Iterable[str] = (),
        parameters: Iterable[tuple[str, str]] = (),
    ) -> None:
        header = (
            f"{self._modifiers(modifiers)}{return_type} {name}"
            f"({self._parameters(parameters)})"
        )
        self._open("method", header)

    def end_method(self) -> None:
        self._close("method")

    def begin_constructor(
        self,
        modifiers: Iterable[str] = (),
        parameters: Iterable[tuple[str, str]] = (),
    ) -> None:
        if not self._types:
            raise ValueError("Cannot begin a constructor outside a type")
        header = (
            f"{self._modifiers(modifiers)}{self._types[-1]}"
            f"({self._parameters(parameters)})"
        )
        self._open("constructor", header)

    def end_constructor(self) -> None:
        self._close("constructor")

    def emit_statement(self, statement: str) -> None:
        first, *rest = statement.split("\n")
        prefix = self._indent * self.depth
        hanging = prefix + self._indent * 2
        self._out.write(prefix + first)
        for line in rest:
            self._out.write("\n" + hanging + line)
        self._out.write(";\n")

    def begin_control_flow(self, control_flow: str) -> None:
        self._open("control flow", control_flow)

    def end_control_flow(self) -> None:
        self._close("control flow")


# ===--- File writer ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing one generated builder source file.

    Attributes:
        type_name: Qualified name of the value interface it implements.
        filename: Filename written, e.g. "FoobarBuilder.java".
        path: Absolute path of the written file.
        field_count: Number of fields in the generated value type.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    type_name: str
    filename: str
    path: Path
    field_count: int
    line_count: int
    byte_count: int


_HEADER_BORDER: str = "// x-------------------------------------------x //"


def format_file_header(
    descriptor: TypeDescriptor, generator_name: str = GENERATOR_NAME
) -> list[str]:
    """Return the comment block placed above the package declaration.

    Output format:
        // x-------------------------------------------x //
        // | Builder and value for com.example.Foobar
        // | Generated by valuegen
        // | Fields: bar, foo
        // x-------------------------------------------x //

    The Fields line reads "(none)" for a type without accessors.
    """
    field_names = ", ".join(f.name for f in descriptor.fields) or "(none)"
    return [
        _HEADER_BORDER,
        f"// | Builder and value for {descriptor.qualified_name}",
        f"// | Generated by {generator_name}",
        f"// | Fields: {field_names}",
        _HEADER_BORDER,
    ]


def source_path_for(output_dir: Path, descriptor: TypeDescriptor) -> Path:
    package_dir = Path(*descriptor.package_name.split(".")) if descriptor.package_name else Path()
    return Path(output_dir) / package_dir / f"{descriptor.builder_name}.java"


def _emit_source(
    out: TextIO, descriptor: TypeDescriptor, plan: GenerationPlan, generator_name: str
) -> None:
    for line in format_file_header(descriptor, generator_name):
        out.write(line + "\n")
    out.write("\n")
    replay_plan(plan, JavaWriter(out))


def render_java_source(
    descriptor: TypeDescriptor,
    plan: GenerationPlan,
    generator_name: str = GENERATOR_NAME,
) -> str:
    buffer = io.StringIO()
    _emit_source(buffer, descriptor, plan, generator_name)
    return buffer.getvalue()


def write_value_type(
    output_dir: Path,
    descriptor: TypeDescriptor,
    plan: GenerationPlan,
    generator_name: str = GENERATOR_NAME,
) -> FileWriteResult:
    """Write `<Type>Builder.java` under the package directory of output_dir.

    The file is opened immediately before emission and closed on every exit
    path, including a failure half-way through the plan. A partially written
    file is left in place (no rollback).

    Returns:
        FileWriteResult with resolved path, line_count and byte_count of the
        content actually on disk.

    Raises:
        OSError: Propagated unchanged if the directory or file cannot be
            created or written.
        ValueError: Propagated from JavaWriter on an unbalanced plan.
    """
    path = source_path_for(output_dir, descriptor)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as out:
        _emit_source(out, descriptor, plan, generator_name)

    resolved = path.resolve()
    content = resolved.read_bytes()
    return FileWriteResult(
        type_name=descriptor.qualified_name,
        filename=path.name,
        path=resolved,
        field_count=len(descriptor.fields),
        line_count=content.count(b"\n"),
        byte_count=len(content),
    )


# ===--- Java value semantics ---=== #


_CANONICAL_FLOAT_NAN_BITS = 0x7FC00000
_CANONICAL_DOUBLE_NAN_BITS = 0x7FF8000000000000
_BOOLEAN_TRUE_HASH = 1231
_BOOLEAN_FALSE_HASH = 1237


def to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def to_float32(value: float) -> float:
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack(">f", struct.pack(">f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def float_to_int_bits(value: float) -> int:
    value = to_float32(value)
    if math.isnan(value):
        return to_int32(_CANONICAL_FLOAT_NAN_BITS)
    return struct.unpack(">i", struct.pack(">f", value))[0]


def double_to_long_bits(value: float) -> int:
    if math.isnan(value):
        return _CANONICAL_DOUBLE_NAN_BITS
    return struct.unpack(">q", struct.pack(">d", value))[0]


def fold_long(value: int) -> int:
    """Java's `(int) (v ^ (v >>> 32))` for a 64-bit value."""
    unsigned = value & 0xFFFFFFFFFFFFFFFF
    return to_int32(unsigned ^ (unsigned >> 32))


def java_string_hash(text: str) -> int:
    encoded = text.encode("utf-16-be", "surrogatepass")
    result = 0
    for index in range(0, len(encoded), 2):
        unit = (encoded[index] << 8) | encoded[index + 1]
        result = to_int32(31 * result + unit)
    return result


def _format_java_decimal(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0.0:
        return "-0.0" if math.copysign(1.0, value) < 0 else "0.0"

    magnitude = abs(value)
    sign = "-" if value < 0 else ""
    if 1e-3 <= magnitude < 1e7:
        text = repr(magnitude)
        if "e" in text or "E" in text:
            text = format(Decimal(text), "f")
        if "." not in text:
            text += ".0"
        return sign + text

    _, digits, exponent = Decimal(repr(magnitude)).normalize().as_tuple()
    scientific_exponent = len(digits) - 1 + exponent
    head = str(digits[0])
    tail = "".join(str(d) for d in digits[1:]) or "0"
    return f"{sign}{head}.{tail}E{scientific_exponent}"


def java_double_string(value: float) -> str:
    return _format_java_decimal(float(value))


def java_float_string(value: float) -> str:
    value = to_float32(float(value))
    if math.isnan(value) or math.isinf(value) or value == 0.0:
        return _format_java_decimal(value)
    for precision in range(1, 10):
        candidate = float(f"{value:.{precision}g}")
        if to_float32(candidate) == value:
            return _format_java_decimal(candidate)
    return _format_java_decimal(value)


def java_string(value: object) -> str:
    """String.valueOf for values held in reference fields."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return java_double_string(value)
    return str(value)


def java_hash_code(value: object) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return java_string_hash(value)
    if isinstance(value, bool):
        return _BOOLEAN_TRUE_HASH if value else _BOOLEAN_FALSE_HASH
    if isinstance(value, float):
        return fold_long(double_to_long_bits(value))
    hash_code = getattr(value, "hash_code", None)
    if callable(hash_code):
        return to_int32(hash_code())
    return to_int32(hash(value))


_BOXED_SCALARS = (bool, int, float)


def java_equals(a: object, b: object) -> bool:
    """Object.equals for values held in reference fields.

    Booleans, integers and doubles are only equal to their own boxed type,
    and doubles compare by bits as Double.equals does.
    """
    if a is None or b is None:
        return a is b
    if isinstance(a, _BOXED_SCALARS) or isinstance(b, _BOXED_SCALARS):
        if type(a) is not type(b):
            return False
        if isinstance(a, float):
            return double_to_long_bits(a) == double_to_long_bits(b)
    return a == b


def component_kind(type_name: str) -> TypeKind:
    """Element kind of an array type name such as "int[]" or "String[][]".

    Nested arrays report ARRAY: their elements compare by identity, as
    java.util.Arrays does for Object[] holding arrays.
    """
    if not type_name.endswith("[]"):
        raise ValueError(f"Not an array type: {type_name}")
    element = type_name[:-2]
    if element.endswith("[]"):
        return TypeKind.ARRAY
    return PRIMITIVE_KINDS.get(element, TypeKind.REFERENCE)


def _char_code(value) -> int:
    return ord(value) if isinstance(value, str) else int(value)


def _elements_differ(kind: TypeKind, a, b) -> bool:
    if kind == TypeKind.FLOAT:
        return float_to_int_bits(a) != float_to_int_bits(b)
    if kind == TypeKind.DOUBLE:
        return double_to_long_bits(a) != double_to_long_bits(b)
    if kind == TypeKind.ARRAY:
        return a is not b
    if kind == TypeKind.REFERENCE:
        return not java_equals(a, b)
    if kind == TypeKind.CHAR:
        return _char_code(a) != _char_code(b)
    return a != b


def _element_hash(kind: TypeKind, element) -> int:
    if kind == TypeKind.BOOLEAN:
        return _BOOLEAN_TRUE_HASH if element else _BOOLEAN_FALSE_HASH
    if kind == TypeKind.CHAR:
        return _char_code(element)
    if kind == TypeKind.LONG:
        return fold_long(element)
    if kind == TypeKind.FLOAT:
        return float_to_int_bits(element)
    if kind == TypeKind.DOUBLE:
        return fold_long(double_to_long_bits(element))
    if kind == TypeKind.ARRAY:
        return 0 if element is None else to_int32(id(element))
    if kind == TypeKind.REFERENCE:
        return java_hash_code(element)
    return to_int32(element)


def _render_element(kind: TypeKind, element, type_name: str) -> str:
    if kind == TypeKind.BOOLEAN:
        return "true" if element else "false"
    if kind == TypeKind.CHAR:
        return element if isinstance(element, str) else chr(element)
    if kind == TypeKind.FLOAT:
        return java_float_string(element)
    if kind == TypeKind.DOUBLE:
        return java_double_string(element)
    if kind == TypeKind.ARRAY:
        return "null" if element is None else f"{type_name}@{id(element):x}"
    if kind == TypeKind.REFERENCE:
        return java_string(element)
    return str(element)


def array_equals(kind: TypeKind, a, b) -> bool:
    if a is b:
        return True
    if a is None or b is None or len(a) != len(b):
        return False
    return not any(_elements_differ(kind, x, y) for x, y in zip(a, b))


def array_hash_code(kind: TypeKind, array) -> int:
    if array is None:
        return 0
    result = 1
    for element in array:
        result = to_int32(31 * result + _element_hash(kind, element))
    return result


def array_to_string(kind: TypeKind, array, element_type_name: str = "") -> str:
    if array is None:
        return "null"
    rendered = (_render_element(kind, e, element_type_name) for e in array)
    return "[" + ", ".join(rendered) + "]"


def values_differ(field: FieldDescriptor, a, b) -> bool:
    kind = field.type_kind
    if kind in PRIMITIVE_KINDS.values() or kind == TypeKind.REFERENCE:
        return _elements_differ(kind, a, b)
    if kind == TypeKind.ARRAY:
        return not array_equals(component_kind(field.type_name), a, b)
    raise _unsupported(field)


def field_hash(field: FieldDescriptor, value) -> int:
    kind = field.type_kind
    if kind == TypeKind.LONG:
        return fold_long(value)
    if kind == TypeKind.CHAR:
        return _char_code(value)
    if kind in INTEGRAL_KINDS:
        return to_int32(value)
    if kind == TypeKind.BOOLEAN:
        return 1 if value else 0
    if kind == TypeKind.FLOAT:
        return 0 if to_float32(value) == 0.0 else float_to_int_bits(value)
    if kind == TypeKind.DOUBLE:
        return fold_long(double_to_long_bits(value))
    if kind == TypeKind.ARRAY:
        return array_hash_code(component_kind(field.type_name), value)
    if kind == TypeKind.REFERENCE:
        return java_hash_code(value)
    raise _unsupported(field)


def render_field(field: FieldDescriptor, value) -> str:
    kind = field.type_kind
    if kind == TypeKind.ARRAY:
        return array_to_string(
            component_kind(field.type_name), value, field.type_name[:-2]
        )
    if kind in INTEGRAL_KINDS or kind in FLOATING_KINDS:
        return _render_element(kind, value, field.type_name)
    if kind == TypeKind.BOOLEAN:
        return "true" if value else "false"
    if kind == TypeKind.REFERENCE:
        return java_string(value)
    raise _unsupported(field)


def default_value(field: FieldDescriptor):
    kind = field.type_kind
    if kind == TypeKind.CHAR:
        return "\x00"
    if kind in INTEGRAL_KINDS:
        return 0
    if kind == TypeKind.BOOLEAN:
        return False
    if kind in FLOATING_KINDS:
        return 0.0
    if kind in (TypeKind.ARRAY, TypeKind.REFERENCE):
        return None
    raise _unsupported(field)


# ===--- In-process materializer ---=== #


MATERIALIZED_API_NAMES = frozenset(
    {"build", "equals", "hash_code", "to_string", "Value", "target"}
)


class MaterializedValue:
    """Base of materialized Value classes: Java value semantics over a tuple."""

    __slots__ = ("_values",)
    _fields: tuple[FieldDescriptor, ...] = ()
    _type_name: str = ""

    def __init__(self, *values) -> None:
        if len(values) != len(self._fields):
            raise TypeError(
                f"{self._type_name} takes {len(self._fields)} values, got {len(values)}"
            )
        object.__setattr__(self, "_values", values)

    def __setattr__(self, name, value) -> None:
        raise AttributeError(f"{self._type_name} values are immutable")

    def equals(self, other: object) -> bool:
        if self is other:
            return True
        if other is None or type(other) is not type(self):
            return False
        for field, mine, theirs in zip(self._fields, self._values, other._values):
            if values_differ(field, mine, theirs):
                return False
        return True

    def hash_code(self) -> int:
        result = 0
        for field, value in zip(self._fields, self._values):
            result = to_int32(31 * result + field_hash(field, value))
        return result

    def to_string(self) -> str:
        body = ", ".join(
            f"{field.name}={render_field(field, value)}"
            for field, value in zip(self._fields, self._values)
        )
        return f"{self._type_name}{{{body}}}"

    def __eq__(self, other: object) -> bool:
        return self.equals(other)

    def __hash__(self) -> int:
        return self.hash_code()

    def __str__(self) -> str:
        return self.to_string()

    __repr__ = __str__


class MaterializedBuilder:
    """Base of materialized builders: fluent setters over a mutable dict."""

    __slots__ = ("_state",)
    _fields: tuple[FieldDescriptor, ...] = ()
    Value: type = MaterializedValue

    def __init__(self) -> None:
        self._state = {field.name: default_value(field) for field in self._fields}

    def build(self):
        return self.Value(*(self._state[field.name] for field in self._fields))


def _make_accessor(index: int, name: str):
    def accessor(self):
        return self._values[index]

    accessor.__name__ = name
    return accessor


def _make_setter(name: str):
    def setter(self, value):
        self._state[name] = value
        return self

    setter.__name__ = name
    return setter


def materialize(descriptor: TypeDescriptor) -> type:
    """Build Python classes with the same semantics as the generated Java.

    Returns the `<Type>Builder` class. Its `Value` attribute is the value
    class (a subclass of the marker class `target`, named after the value
    interface). Values store field contents verbatim: arrays are held by the
    reference passed to the setter.

    Raises:
        UnsupportedTypeKind: A field kind has no value rule.
        UnsupportedFieldShape: A field name would shadow the builder/value API.
    """
    fields = descriptor.fields
    for field in fields:
        if field.name in MATERIALIZED_API_NAMES or field.name.startswith("_"):
            raise UnsupportedFieldShape(
                f"{descriptor.qualified_name}.{field.name}() would shadow the "
                f"materialized builder/value API",
                type_name=descriptor.qualified_name,
                field_name=field.name,
            )
        try:
            default_value(field)
        except UnsupportedTypeKind as err:
            raise UnsupportedTypeKind(
                f"{descriptor.qualified_name}: {err.message}",
                type_name=descriptor.qualified_name,
                field_name=field.name,
            ) from err

    target = type(descriptor.simple_name, (), {"__slots__": (), "__module__": __name__})

    value_namespace = {
        "__slots__": (),
        "__module__": __name__,
        "__qualname__": f"{descriptor.builder_name}.{VALUE_CLASS_NAME}",
        "_fields": fields,
        "_type_name": descriptor.simple_name,
    }
    for index, field in enumerate(fields):
        value_namespace[field.name] = _make_accessor(index, field.name)
    value_class = type(VALUE_CLASS_NAME, (MaterializedValue, target), value_namespace)

    builder_namespace = {
        "__slots__": (),
        "__module__": __name__,
        "_fields": fields,
        "Value": value_class,
        "target": target,
    }
    for field in fields:
        builder_namespace[field.name] = _make_setter(field.name)
    return type(descriptor.builder_name, (MaterializedBuilder,), builder_namespace)


# ===--- Pipeline ---=== #


@dataclass(frozen=True)
class GenerationFailure:
    """One failed type (or unreadable source file) in a generation run.

    Attributes:
        type_name: Qualified type name, or the source path when the file
            itself could not be read or parsed.
        code: GenerationError code, or "EMISSION_IO_FAILURE" for OSError.
        message: Diagnostic text naming the type and, where known, the field.
        source: Path of the source file the type came from.
    """

    type_name: str
    code: str
    message: str
    source: Path


@dataclass(frozen=True)
class RunResult:
    output_dir: Path
    source_count: int
    files: tuple[FileWriteResult, ...]
    failures: tuple[GenerationFailure, ...]

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)

    @property
    def ok(self) -> bool:
        return not self.failures


def synthesis_options_for(config: GenerateConfig) -> SynthesisOptions:
    return SynthesisOptions(
        jackson_annotations=config.jackson_annotations,
        generated_annotation=config.generated_annotation,
    )


def collision_error(
    descriptor: TypeDescriptor, declared: set[str], generated: set[str]
) -> GenerationError | None:
    builder = descriptor.qualified_builder_name
    if builder in generated:
        reason = "is already generated for another value type in this run"
    elif builder in declared:
        reason = "is already declared in the sources"
    else:
        return None
    return GenerationError(
        "BUILDER_NAME_COLLISION",
        f"{descriptor.qualified_name}: builder {builder} {reason}",
        type_name=descriptor.qualified_name,
    )


def generate_value_type(
    interface: InterfaceDescription,
    output_dir: Path,
    options: SynthesisOptions = DEFAULT_SYNTHESIS_OPTIONS,
) -> FileWriteResult:
    check_member_shapes(interface)
    descriptor = describe_type(interface)
    plan = synthesize(descriptor, options)
    return write_value_type(output_dir, descriptor, plan, options.generator_name)


def _failure_from_error(err: GenerationError, source: Path) -> GenerationFailure:
    location = f" (line {err.line})" if err.line else ""
    return GenerationFailure(
        type_name=err.type_name or str(source),
        code=err.code,
        message=f"{err.message}{location}",
        source=source,
    )


def load_units(
    sources: Sequence[Path], failures: list[GenerationFailure]
) -> list[tuple[Path, object]]:
    """Read and parse every source, recording unreadable files as failures."""
    units = []
    for source in sources:
        print(f"Parsing: {source}")
        try:
            text = source.read_text(encoding="utf-8")
            units.append((source, parse_compilation_unit(text, str(source))))
        except GenerationError as err:
            failures.append(_failure_from_error(err, source))
        except OSError as err:
            failures.append(
                GenerationFailure(str(source), "EMISSION_IO_FAILURE", str(err), source)
            )
    return units


def run_generate(config: GenerateConfig) -> RunResult:
    """Execute a full generation run for a GenerateConfig.

    Stages: parse every source -> collect declared type names -> find value
    interfaces -> per type: collision check, shape check, extract, synthesize,
    write. Every failure is local to its type (or file); the run carries on.

    Returns:
        RunResult with written files in generation order and all failures.
    """
    failures: list[GenerationFailure] = []
    units = load_units(config.sources, failures)

    declared: set[str] = set()
    for _, unit in units:
        declared |= declared_type_names(unit)

    options = synthesis_options_for(config)
    generated: set[str] = set()
    files: list[FileWriteResult] = []

    for source, unit in units:
        interfaces, shape_errors = find_value_interfaces(unit, config.annotation)
        for err in shape_errors:
            failures.append(_failure_from_error(err, source))
        print(f"  Value types: {len(interfaces)} in {source.name}")

        for interface in interfaces:
            descriptor = describe_type(interface)
            collision = collision_error(descriptor, declared, generated)
            if collision is not None:
                failures.append(_failure_from_error(collision, source))
                continue
            try:
                result = generate_value_type(interface, config.output_dir, options)
            except GenerationError as err:
                failures.append(_failure_from_error(err, source))
                continue
            except OSError as err:
                failures.append(
                    GenerationFailure(
                        interface.qualified_name,
                        "EMISSION_IO_FAILURE",
                        f"{interface.qualified_name}: {err}",
                        source,
                    )
                )
                continue
            generated.add(descriptor.qualified_builder_name)
            files.append(result)

    result = RunResult(
        output_dir=Path(config.output_dir),
        source_count=len(config.sources),
        files=tuple(files),
        failures=tuple(failures),
    )
    print(f"  Written: {len(result.files)} files, {result.total_lines} lines")
    return result


def format_value_type_listing(
    interface: InterfaceDescription, error: GenerationError | None = None
) -> str:
    """Render one discovered value type and its fields for --list.

    Output format:
        com.example.Foobar (2 fields)
            bar    int       int
            foo    String    reference

    A type that fails the accessor shape check is listed with its error.
    """
    fields = extract_fields(interface)
    lines = [f"{interface.qualified_name} ({len(fields)} fields)"]
    if error is not None:
        lines.append(f"    error [{error.code}]: {error.message}")
    name_width = max((len(f.name) for f in fields), default=0) + 4
    type_width = max((len(f.type_name) for f in fields), default=0) + 4
    for field in fields:
        lines.append(
            f"    {field.name:<{name_width}}{field.type_name:<{type_width}}"
            f"{field.type_kind.value}"
        )
    return "\n".join(lines) + "\n"


def run_list(config: ListConfig) -> tuple[GenerationFailure, ...]:
    """Print every discovered value type with its fields; write nothing.

    Returns:
        Failures recorded while reading sources or checking accessor shapes.
    """
    failures: list[GenerationFailure] = []
    units = load_units(config.sources, failures)
    for failure in failures:
        print(f"error [{failure.code}]: {failure.message}")

    for source, unit in units:
        interfaces, shape_errors = find_value_interfaces(unit, config.annotation)
        for err in shape_errors:
            failure = _failure_from_error(err, source)
            failures.append(failure)
            print(f"error [{failure.code}]: {failure.message}")
        for interface in interfaces:
            error = None
            try:
                check_member_shapes(interface)
            except GenerationError as err:
                error = err
                failures.append(_failure_from_error(err, source))
            print(format_value_type_listing(interface, error), end="")
    return tuple(failures)


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Immutable data for the post-generation console report.

    Attributes:
        output_dir: Output directory path as string.
        source_count: Number of source files read.
        files: Written files in generation order.
        failures: Failures in the order they were recorded.
    """

    output_dir: str
    source_count: int
    files: tuple[FileWriteResult, ...]
    failures: tuple[GenerationFailure, ...]


def build_generation_summary(result: RunResult) -> GenerationSummary:
    return GenerationSummary(
        output_dir=str(result.output_dir),
        source_count=result.source_count,
        files=result.files,
        failures=result.failures,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary to the console report string.

    The Failures section appears only when something failed. Line counts
    use thousands separators. Returns a string with one trailing newline.
    """
    lines: list[str] = []
    lines.append("Value types generated:")
    lines.append("")
    lines.append(f"  Sources:    {summary.source_count} files")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Types:")
    if not summary.files:
        lines.append("    (none)")
    for file_result in summary.files:
        lines.append(
            f"    {file_result.type_name:<36} {file_result.field_count:>3} fields"
            f"  {file_result.filename:<28} {file_result.line_count:>6,} lines"
        )

    if summary.failures:
        lines.append("")
        lines.append("  Failures:")
        for failure in summary.failures:
            lines.append(f"    {failure.type_name}  [{failure.code}]")
            lines.append(f"      {failure.message}")

    total_lines = sum(f.line_count for f in summary.files)
    lines.append("")
    lines.append(
        f"  Total: {total_lines:,} lines across {len(summary.files)} files,"
        f" {len(summary.failures)} failed"
    )
    lines.append("")

    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Main generation ---=== #


def main(argv: list[str] | None = None):
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    if isinstance(config, ListConfig):
        if run_list(config):
            raise SystemExit(1)
        return

    try:
        result = run_generate(config)
    except OSError as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except ValueError as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err

    print_generation_summary(build_generation_summary(result))
    if not result.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
