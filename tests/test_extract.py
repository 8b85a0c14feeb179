import pytest

import valuegen

TypeKind = valuegen.TypeKind


def _member(name, kind=TypeKind.INT, type_name="int", **kwargs):
    return valuegen.MemberDescription(name, kind, type_name, **kwargs)


def _interface(*members, package_name="com.example", simple_name="Thing"):
    return valuegen.InterfaceDescription(package_name, simple_name, tuple(members))


def test_extract_fields_keeps_declaration_order_and_drops_statics() -> None:
    interface = _interface(
        _member("zeta"),
        _member("helper", is_static=True),
        _member("alpha", TypeKind.REFERENCE, "String"),
    )

    fields = valuegen.extract_fields(interface)

    assert fields == [
        valuegen.FieldDescriptor("zeta", TypeKind.INT, "int"),
        valuegen.FieldDescriptor("alpha", TypeKind.REFERENCE, "String"),
    ]


def test_extract_fields_empty_interface_yields_no_fields() -> None:
    assert valuegen.extract_fields(_interface()) == []


def test_describe_type_builds_descriptor_with_derived_names() -> None:
    descriptor = valuegen.describe_type(_interface(_member("a")))

    assert descriptor.qualified_name == "com.example.Thing"
    assert descriptor.builder_name == "ThingBuilder"
    assert descriptor.qualified_builder_name == "com.example.ThingBuilder"
    assert descriptor.fields == (valuegen.FieldDescriptor("a", TypeKind.INT, "int"),)


def test_describe_type_default_package_names_are_unqualified() -> None:
    descriptor = valuegen.describe_type(_interface(package_name=""))

    assert descriptor.qualified_name == "Thing"
    assert descriptor.qualified_builder_name == "ThingBuilder"


def test_check_member_shapes_rejects_accessor_with_parameters() -> None:
    interface = _interface(_member("get", parameter_names=("index",), line=7))

    with pytest.raises(valuegen.UnsupportedFieldShape) as exc_info:
        valuegen.check_member_shapes(interface)

    err = exc_info.value
    assert err.code == "UNSUPPORTED_FIELD_SHAPE"
    assert err.type_name == "com.example.Thing"
    assert err.field_name == "get"
    assert err.line == 7


def test_check_member_shapes_ignores_static_members_with_parameters() -> None:
    interface = _interface(_member("of", is_static=True, parameter_names=("x",)))

    valuegen.check_member_shapes(interface)


@pytest.mark.parametrize("name", sorted(valuegen.RESERVED_FIELD_NAMES))
def test_check_member_shapes_rejects_reserved_names(name) -> None:
    with pytest.raises(valuegen.UnsupportedFieldShape) as exc_info:
        valuegen.check_member_shapes(_interface(_member(name)))

    assert exc_info.value.field_name == name


def test_generation_error_rejects_unknown_code() -> None:
    with pytest.raises(ValueError, match="Unknown generation error code"):
        valuegen.GenerationError("NOPE", "message")


def test_unsupported_type_kind_is_a_generation_error() -> None:
    err = valuegen.UnsupportedTypeKind("bad", type_name="T", field_name="f")

    assert isinstance(err, valuegen.GenerationError)
    assert err.code == "UNSUPPORTED_TYPE_KIND"
    assert str(err) == "bad"


@pytest.mark.parametrize("name", ["Arrays", "Float", "Double"])
def test_check_member_shapes_rejects_names_obscuring_helper_types(name) -> None:
    interface = _interface(_member(name, TypeKind.REFERENCE, "String"))

    with pytest.raises(valuegen.UnsupportedFieldShape) as exc_info:
        valuegen.check_member_shapes(interface)

    assert exc_info.value.field_name == name
    assert "clashes with a name" in exc_info.value.message
