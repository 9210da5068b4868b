from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import Any, Iterable, Iterator


class Severity(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


@dataclass(frozen=True)
class Location:
    kind: str


@dataclass(frozen=True)
class FileLocation(Location):
    path: str
    line: int | None = None
    col: int | None = None

    def __init__(self, path: str, line: int | None = None, col: int | None = None):
        object.__setattr__(self, "kind", "file")
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "line", line)
        object.__setattr__(self, "col", col)


@dataclass(frozen=True)
class ValueLocation(Location):
    field: str
    value: str

    def __init__(self, field: str, value: str):
        object.__setattr__(self, "kind", "value")
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class VariableLocation(Location):
    pack: str
    variable: str
    file: str | None = None

    def __init__(self, pack: str, variable: str, file: str | None = None):
        object.__setattr__(self, "kind", "variable")
        object.__setattr__(self, "pack", pack)
        object.__setattr__(self, "variable", variable)
        object.__setattr__(self, "file", file)


@dataclass(frozen=True)
class Diagnostic:
    code: str
    rule: str
    severity: Severity
    message: str
    location: Location | None = None
    hint: str | None = None
    details: dict[str, Any] | None = None
    is_execution: bool = False
    upgradeable: bool = False
    id: str = field(init=False)

    def __post_init__(self) -> None:
        raw = f"{self.code}|{self.rule}|{self.severity}|{self.message}|{self.location}"
        object.__setattr__(self, "id", hashlib.sha256(raw.encode()).hexdigest()[:12])

    def render(self) -> str:
        prefix = "error" if self.severity == Severity.ERROR else self.severity.value
        line = f"{prefix}: [{self.code}] {self.message}"
        if isinstance(self.location, VariableLocation):
            line += f" (pack {self.location.pack!r}, variable {self.location.variable!r})"
        elif isinstance(self.location, FileLocation):
            line += f" ({self.location.path})"
        lines = [line]
        if self.details:
            for key in sorted(self.details):
                lines.append(f"  {key}: {self.details[key]}")
        if self.hint:
            lines.append(f"  hint: {self.hint}")
        return "\n".join(lines)


class Diagnostics:
    def __init__(self, items: Iterable[Diagnostic] = ()) -> None:
        self._items: list[Diagnostic] = list(items)

    def add(self, diagnostic: Diagnostic) -> None:
        self._items.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self._items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity == Severity.WARN]

    def codes(self) -> list[str]:
        return [d.code for d in self._items]

    def error(self) -> str:
        return "\n".join(d.render() for d in self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Diagnostics):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"Diagnostics({self._items!r})"


@dataclass(frozen=True)
class ErrorContext:
    entries: tuple[tuple[str, str], ...] = ()

    def with_value(self, label: str, value: str | None) -> ErrorContext:
        if not value:
            return self
        kept = tuple((k, v) for k, v in self.entries if k != label)
        return ErrorContext(kept + ((label, value),))

    def as_details(self) -> dict[str, Any]:
        return {label: value for label, value in self.entries}
