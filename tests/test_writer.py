from __future__ import annotations

import io
from pathlib import Path

import pytest

import valuegen


def _writer() -> tuple[valuegen.JavaWriter, io.StringIO]:
    out = io.StringIO()
    return valuegen.JavaWriter(out), out


def test_t_01_java_writer_nests_type_method_and_control_flow() -> None:
    writer, out = _writer()

    writer.begin_type("A", "class", ("final", "public"))
    writer.begin_method("int", "f", ("public",), (("int", "x"),))
    writer.begin_control_flow("if (x > 0)")
    writer.emit_statement("return x")
    writer.end_control_flow()
    writer.emit_statement("return 0")
    writer.end_method()
    writer.end_type()

    assert out.getvalue() == (
        "public final class A {\n"
        "  public int f(int x) {\n"
        "    if (x > 0) {\n"
        "      return x;\n"
        "    }\n"
        "    return 0;\n"
        "  }\n"
        "}\n"
    )


def test_t_02_java_writer_orders_modifiers_canonically() -> None:
    writer, out = _writer()

    writer.emit_field("int", "x", ("final", "static", "private"))

    assert out.getvalue() == "private static final int x;\n"


def test_t_03_java_writer_type_header_includes_extends_and_implements() -> None:
    writer, out = _writer()

    writer.begin_type("B", "class", (), "Base", ("I", "J"))
    writer.end_type()

    assert out.getvalue() == "class B extends Base implements I, J {\n}\n"


def test_t_04_java_writer_constructor_uses_innermost_type_name() -> None:
    writer, out = _writer()

    writer.begin_type("Outer", "class")
    writer.begin_type("Inner", "class", ("private", "static"))
    writer.begin_constructor(("private",), (("int", "a"),))
    writer.end_constructor()
    writer.end_type()
    writer.end_type()

    assert "    private Inner(int a) {\n    }\n" in out.getvalue()


def test_t_05_java_writer_multiline_statement_uses_hanging_indent() -> None:
    writer, out = _writer()

    writer.begin_type("A", "class")
    writer.emit_statement('return "A{" +\n\'}\'')
    writer.end_type()

    assert out.getvalue() == 'class A {\n  return "A{" +\n      \'}\';\n}\n'


def test_t_06_java_writer_package_imports_and_annotations() -> None:
    writer, out = _writer()

    writer.emit_package("com.example")
    writer.emit_imports("java.util.Arrays", "javax.annotation.Generated")
    writer.emit_annotation("Generated", '"x"')
    writer.emit_annotation("Override")

    assert out.getvalue() == (
        "package com.example;\n"
        "\n"
        "import java.util.Arrays;\n"
        "import javax.annotation.Generated;\n"
        '@Generated("x")\n'
        "@Override\n"
    )


def test_t_07_java_writer_empty_package_emits_nothing() -> None:
    writer, out = _writer()

    writer.emit_package("")

    assert out.getvalue() == ""


@pytest.mark.parametrize(
    "close", ["end_type", "end_method", "end_constructor", "end_control_flow"]
)
def test_t_08_java_writer_rejects_close_without_open(close: str) -> None:
    writer, _ = _writer()

    with pytest.raises(ValueError, match="Cannot end"):
        getattr(writer, close)()


def test_t_09_java_writer_rejects_mismatched_close() -> None:
    writer, _ = _writer()
    writer.begin_type("A", "class")
    writer.begin_method("void", "f")

    with pytest.raises(ValueError, match="innermost open scope is method"):
        writer.end_type()


def test_t_10_java_writer_rejects_constructor_outside_type() -> None:
    writer, _ = _writer()

    with pytest.raises(ValueError, match="outside a type"):
        writer.begin_constructor()


def test_t_11_format_file_header_lists_fields(foobar_descriptor) -> None:
    assert valuegen.format_file_header(foobar_descriptor) == [
        "// x-------------------------------------------x //",
        "// | Builder and value for com.example.Foobar",
        "// | Generated by valuegen",
        "// | Fields: bar, foo",
        "// x-------------------------------------------x //",
    ]


def test_t_12_format_file_header_no_fields(make_descriptor) -> None:
    header = valuegen.format_file_header(make_descriptor("E", ()), "custom-gen")

    assert header[2] == "// | Generated by custom-gen"
    assert header[3] == "// | Fields: (none)"


def test_t_13_source_path_for_follows_package_directories(
    foobar_descriptor, make_descriptor, tmp_path: Path
) -> None:
    assert valuegen.source_path_for(tmp_path, foobar_descriptor) == (
        tmp_path / "com" / "example" / "FoobarBuilder.java"
    )
    assert valuegen.source_path_for(
        tmp_path, make_descriptor("Bare", (), package_name="")
    ) == (tmp_path / "BareBuilder.java")


def test_t_14_write_value_type_writes_rendered_source(
    foobar_descriptor, tmp_path: Path
) -> None:
    plan = valuegen.synthesize(foobar_descriptor)

    result = valuegen.write_value_type(tmp_path / "out", foobar_descriptor, plan)

    expected = valuegen.render_java_source(foobar_descriptor, plan)
    assert result.path.read_text(encoding="utf-8") == expected
    assert result.filename == "FoobarBuilder.java"
    assert result.type_name == "com.example.Foobar"
    assert result.field_count == 2
    assert result.line_count == expected.count("\n")
    assert result.byte_count == len(expected.encode("utf-8"))
    assert result.path.is_absolute()


def test_t_15_write_value_type_overwrites_existing_file(
    foobar_descriptor, tmp_path: Path
) -> None:
    target = valuegen.source_path_for(tmp_path, foobar_descriptor)
    target.parent.mkdir(parents=True)
    target.write_text("stale\n" * 1000, encoding="utf-8")

    valuegen.write_value_type(
        tmp_path, foobar_descriptor, valuegen.synthesize(foobar_descriptor)
    )

    assert "stale" not in target.read_text(encoding="utf-8")


def test_t_16_write_value_type_propagates_os_error(
    foobar_descriptor, tmp_path: Path
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OSError):
        valuegen.write_value_type(
            blocker, foobar_descriptor, valuegen.synthesize(foobar_descriptor)
        )


def test_t_17_write_value_type_leaves_partial_file_on_unbalanced_plan(
    foobar_descriptor, tmp_path: Path
) -> None:
    plan = (
        valuegen.Instruction("emit_package", ("com.example",)),
        valuegen.Instruction("end_type", ()),
    )

    with pytest.raises(ValueError):
        valuegen.write_value_type(tmp_path, foobar_descriptor, plan)

    partial = valuegen.source_path_for(tmp_path, foobar_descriptor)
    assert partial.read_text(encoding="utf-8").endswith("package com.example;\n\n")


def test_t_18_replay_plan_drives_any_emitter() -> None:
    calls: list[tuple[str, tuple]] = []

    class _Spy:
        def __getattr__(self, name):
            return lambda *args: calls.append((name, args))

    valuegen.replay_plan(
        (
            valuegen.Instruction("emit_empty_line"),
            valuegen.Instruction("emit_field", ("int", "x", ("private",))),
        ),
        _Spy(),
    )

    assert calls == [("emit_empty_line", ()), ("emit_field", ("int", "x", ("private",)))]
