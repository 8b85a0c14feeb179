import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import valuegen  # noqa: E402

FOOBAR_SOURCE = """\
package com.example;

import io.norberg.automatter.AutoMatter;

@AutoMatter
public interface Foobar {
  int bar();
  String foo();
}
"""


@pytest.fixture
def foobar_source() -> str:
    return FOOBAR_SOURCE


@pytest.fixture
def write_java(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write_java(relative: str, source: str) -> Path:
        path = tmp_path / "src" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    return _write_java


@pytest.fixture
def make_field() -> Callable[..., valuegen.FieldDescriptor]:
    def _make_field(
        name: str, type_kind: valuegen.TypeKind, type_name: str | None = None
    ) -> valuegen.FieldDescriptor:
        return valuegen.FieldDescriptor(
            name=name,
            type_kind=type_kind,
            type_name=type_name if type_name is not None else type_kind.value,
        )

    return _make_field


@pytest.fixture
def make_descriptor() -> Callable[..., valuegen.TypeDescriptor]:
    def _make_descriptor(
        simple_name: str = "Foobar",
        fields: tuple[valuegen.FieldDescriptor, ...] = (),
        package_name: str = "com.example",
    ) -> valuegen.TypeDescriptor:
        return valuegen.TypeDescriptor(package_name, simple_name, tuple(fields))

    return _make_descriptor


@pytest.fixture
def foobar_descriptor() -> valuegen.TypeDescriptor:
    return valuegen.TypeDescriptor(
        "com.example",
        "Foobar",
        (
            valuegen.FieldDescriptor("bar", valuegen.TypeKind.INT, "int"),
            valuegen.FieldDescriptor("foo", valuegen.TypeKind.REFERENCE, "String"),
        ),
    )


@pytest.fixture
def make_args(tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        source = tmp_path / "args_src" / "Foobar.java"
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_text(FOOBAR_SOURCE, encoding="utf-8")
        base_args: dict[str, object] = {
            "sources": [source],
            "output_dir": tmp_path / "out",
            "annotation": valuegen.DEFAULT_ANNOTATION,
            "no_jackson": False,
            "generated_annotation": valuegen.DEFAULT_GENERATED_ANNOTATION,
            "no_generated_annotation": False,
            "list": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args
