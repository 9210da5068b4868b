from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
from typing import TypeAlias, TypeGuard

JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonScalar | dict[str, "JsonValue"] | list["JsonValue"]
JsonDict: TypeAlias = dict[str, JsonValue]
JsonList: TypeAlias = list[JsonValue]


def _is_dict(value: object) -> TypeGuard[dict[object, object]]:
    return isinstance(value, dict)


def _is_list(value: object) -> TypeGuard[list[object]]:
    return isinstance(value, list)


def coerce_json_value(value: object) -> JsonValue:
    if _is_dict(value):
        return {str(k): coerce_json_value(v) for k, v in value.items()}
    if _is_list(value) or isinstance(value, tuple):
        return [coerce_json_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    # YAML dates and timestamps end up here
    return str(value)


def as_json_dict(value: object) -> JsonDict:
    if not _is_dict(value):
        return {}
    return {str(k): coerce_json_value(v) for k, v in value.items()}


def as_json_list(value: object) -> JsonList:
    if not _is_list(value):
        return []
    return [coerce_json_value(item) for item in value]


class TypeKind(str, Enum):
    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    LIST = "list"
    MAP = "map"
    OBJECT = "object"
    NULL = "null"
    ANY = "any"


@dataclass(frozen=True)
class VarType:
    kind: TypeKind
    element: VarType | None = None
    attributes: tuple[tuple[str, VarType], ...] = ()

    @property
    def friendly_name(self) -> str:
        if self.kind in (TypeKind.LIST, TypeKind.MAP) and self.element is not None:
            return f"{self.kind.value} of {self.element.friendly_name}"
        return self.kind.value

    def __str__(self) -> str:
        if self.kind in (TypeKind.LIST, TypeKind.MAP):
            inner = self.element or ANY
            return f"{self.kind.value}({inner})"
        if self.kind == TypeKind.OBJECT:
            attrs = ", ".join(f"{name}={attr}" for name, attr in self.attributes)
            return f"object({attrs})"
        return self.kind.value


STRING = VarType(TypeKind.STRING)
BOOL = VarType(TypeKind.BOOL)
NUMBER = VarType(TypeKind.NUMBER)
NULL = VarType(TypeKind.NULL)
ANY = VarType(TypeKind.ANY)


def list_of(element: VarType) -> VarType:
    return VarType(TypeKind.LIST, element=element)


def map_of(element: VarType) -> VarType:
    return VarType(TypeKind.MAP, element=element)


def object_of(**attributes: VarType) -> VarType:
    return VarType(TypeKind.OBJECT, attributes=tuple(sorted(attributes.items())))


_PRIMITIVES = {t.kind.value: t for t in (STRING, BOOL, NUMBER, NULL, ANY)}
_TOKEN = re.compile(r"\s*(?:([A-Za-z_][A-Za-z0-9_-]*)|(.))")


class TypeExpressionError(ValueError):
    pass


class _TypeParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens: list[str] = []
        for match in _TOKEN.finditer(text):
            word, punct = match.groups()
            token = word or punct
            if token and not token.isspace():
                self.tokens.append(token)
        self.pos = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self, expected: str | None = None) -> str:
        token = self._peek()
        if token is None:
            raise TypeExpressionError(f"Unexpected end of type expression: {self.text!r}")
        if expected is not None and token != expected:
            raise TypeExpressionError(
                f"Expected {expected!r} but found {token!r} in type expression: {self.text!r}"
            )
        self.pos += 1
        return token

    def parse(self) -> VarType:
        result = self._parse_type()
        if self._peek() is not None:
            raise TypeExpressionError(
                f"Unexpected {self._peek()!r} in type expression: {self.text!r}"
            )
        return result

    def _parse_type(self) -> VarType:
        word = self._take()
        if word in _PRIMITIVES:
            return _PRIMITIVES[word]
        if word in ("list", "map"):
            self._take("(")
            element = self._parse_type()
            self._take(")")
            return list_of(element) if word == "list" else map_of(element)
        if word == "object":
            self._take("(")
            attributes: dict[str, VarType] = {}
            while self._peek() != ")":
                name = self._take()
                self._take("=")
                if name in attributes:
                    raise TypeExpressionError(
                        f"Duplicate object attribute {name!r} in type expression: {self.text!r}"
                    )
                attributes[name] = self._parse_type()
                if self._peek() == ",":
                    self._take(",")
            self._take(")")
            return object_of(**attributes)
        raise TypeExpressionError(f"Unknown type {word!r} in type expression: {self.text!r}")


def parse_type(expression: str) -> VarType:
    if not expression or not expression.strip():
        raise TypeExpressionError("Empty type expression")
    return _TypeParser(expression).parse()


def type_of(value: object) -> VarType:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOL
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, list):
        return list_of(ANY)
    if isinstance(value, dict):
        return map_of(ANY)
    return ANY


def is_compatible(expected: VarType, value: object) -> bool:
    # null fits every type here; objects ignore extra keys
    if value is None or expected.kind == TypeKind.ANY:
        return True
    kind = expected.kind
    if kind == TypeKind.NULL:
        return False
    if kind == TypeKind.STRING:
        return isinstance(value, str)
    if kind == TypeKind.BOOL:
        return isinstance(value, bool)
    if kind == TypeKind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    element = expected.element or ANY
    if kind == TypeKind.LIST:
        return isinstance(value, list) and all(is_compatible(element, v) for v in value)
    if kind == TypeKind.MAP:
        return isinstance(value, dict) and all(
            is_compatible(element, v) for v in value.values()
        )
    if kind == TypeKind.OBJECT:
        if not isinstance(value, dict):
            return False
        return all(
            name in value and is_compatible(attr, value[name])
            for name, attr in expected.attributes
        )
    return False
