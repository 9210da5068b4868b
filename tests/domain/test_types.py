import pytest

from packforge.domain.types import (
    ANY,
    BOOL,
    NUMBER,
    STRING,
    TypeExpressionError,
    is_compatible,
    list_of,
    map_of,
    object_of,
    parse_type,
    type_of,
)


def test_parse_type_primitives_and_collections():
    assert parse_type("string") == STRING
    assert parse_type("list(number)") == list_of(NUMBER)
    assert parse_type(" map( list(bool) ) ") == map_of(list_of(BOOL))
    assert parse_type("object(port=number, name=string)") == object_of(
        name=STRING, port=NUMBER
    )


@pytest.mark.parametrize("expr", ["", "strng", "list(", "list(string", "object(a=)", "map(string))"])
def test_parse_type_rejects_malformed(expr):
    with pytest.raises(TypeExpressionError):
        parse_type(expr)


def test_type_of_infers_from_runtime_value():
    assert type_of("x") == STRING
    assert type_of(True) == BOOL
    assert type_of(3) == NUMBER
    assert type_of(2.5) == NUMBER
    assert type_of([1]) == list_of(ANY)
    assert type_of({"a": 1}) == map_of(ANY)


def test_bool_is_not_a_number():
    assert not is_compatible(NUMBER, True)
    assert is_compatible(BOOL, False)


def test_list_is_not_a_number():
    assert not is_compatible(NUMBER, [1, 2])


def test_collections_check_their_elements():
    assert is_compatible(list_of(STRING), ["a", "b"])
    assert not is_compatible(list_of(STRING), ["a", 1])
    assert is_compatible(map_of(NUMBER), {"a": 1, "b": 2.0})
    assert not is_compatible(map_of(NUMBER), {"a": "1"})


def test_object_requires_declared_attributes():
    service = object_of(name=STRING, port=NUMBER)
    assert is_compatible(service, {"name": "web", "port": 80, "extra": True})
    assert not is_compatible(service, {"name": "web"})
    assert not is_compatible(service, ["web", 80])


def test_null_and_any_are_permissive():
    assert is_compatible(NUMBER, None)
    assert is_compatible(ANY, [1, "a"])


def test_friendly_names():
    assert list_of(STRING).friendly_name == "list of string"
    assert object_of(a=STRING).friendly_name == "object"
    assert str(object_of(a=STRING, b=list_of(NUMBER))) == "object(a=string, b=list(number))"
