from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

from packforge.domain.types import JsonValue, VarType


class SourceKind(IntEnum):
    DEFAULT = 0
    SHARED_FILE = 1
    PACK_FILE = 2
    ENV = 3
    CLI = 4

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class VariablePath:
    packs: tuple[str, ...]
    name: str

    @classmethod
    def parse(cls, dotted: str) -> VariablePath:
        parts = dotted.split(".")
        return cls(packs=tuple(parts[:-1]), name=parts[-1])

    @property
    def qualified(self) -> bool:
        return bool(self.packs)

    def __str__(self) -> str:
        return ".".join((*self.packs, self.name))


@dataclass(frozen=True)
class VariableSource:
    kind: SourceKind
    target: VariablePath
    value: JsonValue
    literal: bool = False
    origin: str = ""


@dataclass(frozen=True)
class ResolvedVariable:
    name: str
    value: JsonValue
    type: VarType | None
    source: SourceKind
    description: str = ""


class ResolvedVariableSet:
    def __init__(self) -> None:
        self._packs: dict[str, dict[str, ResolvedVariable]] = {}

    def add_pack(self, pack_path: str) -> None:
        self._packs.setdefault(pack_path, {})

    def set(self, pack_path: str, variable: ResolvedVariable) -> None:
        self._packs.setdefault(pack_path, {})[variable.name] = variable

    def get(self, pack_path: str, name: str) -> ResolvedVariable | None:
        return self._packs.get(pack_path, {}).get(name)

    def value(self, pack_path: str, name: str) -> JsonValue:
        variable = self.get(pack_path, name)
        if variable is None:
            raise KeyError(f"{pack_path}.{name}")
        return variable.value

    def get_vars(self) -> dict[str, dict[str, ResolvedVariable]]:
        return {pack: dict(variables) for pack, variables in self._packs.items()}

    def as_values(self) -> dict[str, dict[str, JsonValue]]:
        return {
            pack: {name: var.value for name, var in variables.items()}
            for pack, variables in self._packs.items()
        }

    def __contains__(self, key: object) -> bool:
        if isinstance(key, tuple) and len(key) == 2:
            return self.get(str(key[0]), str(key[1])) is not None
        return key in self._packs

    def __iter__(self) -> Iterator[str]:
        return iter(self._packs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedVariableSet):
            return NotImplemented
        return self._packs == other._packs

    def __repr__(self) -> str:
        return f"ResolvedVariableSet({self._packs!r})"
