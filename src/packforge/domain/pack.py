from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from packforge.domain.diagnostics import Diagnostic, Severity, ValueLocation
from packforge.domain.naming import validate_pack_name, validate_registry_name
from packforge.domain.types import JsonDict, JsonValue, VarType, type_of

DEFAULT_REGISTRY = "default"
LATEST_REF = "latest"
LOCAL_REGISTRY = "<local>"


@dataclass(frozen=True)
class PackReference:
    name: str
    registry: str = DEFAULT_REGISTRY
    ref: str = LATEST_REF
    path: str | None = None

    @property
    def is_local(self) -> bool:
        return self.path is not None

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.name} ({self.path})"
        return f"{self.registry}/{self.name}@{self.ref}"


def validate_reference(
    name: str,
    registry: str | None = None,
    ref: str | None = None,
    path: str | None = None,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    if path is not None and (registry is not None or ref is not None):
        diagnostics.append(
            Diagnostic(
                code="PACK_REFERENCE_INVALID",
                rule="pack.reference.exclusive",
                severity=Severity.ERROR,
                message="A pack path cannot be combined with a registry or ref",
                location=ValueLocation("pack.path", path),
            )
        )
    if path is None:
        diagnostics.extend(validate_pack_name(name))
    if registry is not None:
        diagnostics.extend(validate_registry_name(registry))
    if ref is not None and not ref.strip():
        diagnostics.append(
            Diagnostic(
                code="PACK_REFERENCE_INVALID",
                rule="pack.reference.ref",
                severity=Severity.ERROR,
                message="Pack ref must not be empty",
                location=ValueLocation("pack.ref", ref),
            )
        )
    return diagnostics


@dataclass(frozen=True)
class CacheEntry:
    registry: str
    pack_name: str
    resolved_ref: str
    local_path: Path
    cached: bool = True

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.registry, self.pack_name, self.resolved_ref)


@dataclass(frozen=True)
class PackMetadata:
    name: str
    description: str = ""
    url: str = ""
    version: str | None = None
    raw: JsonDict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class DependencySpec:
    name: str
    alias: str
    path: str | None = None
    registry: str | None = None
    ref: str | None = None
    enabled: bool = True

    def reference(self, declaring_dir: Path) -> PackReference:
        if self.path is not None:
            return PackReference(name=self.name, path=str(declaring_dir / self.path))
        if self.registry is None and self.ref is None:
            # vendored next to the declaring pack
            return PackReference(
                name=self.name, path=str(declaring_dir / "deps" / self.name)
            )
        return PackReference(
            name=self.name,
            registry=self.registry or DEFAULT_REGISTRY,
            ref=self.ref or LATEST_REF,
        )


@dataclass(frozen=True)
class VariableSpec:
    name: str
    owning_pack: str
    declared_type: VarType | None = None
    default: JsonValue = None
    description: str = ""

    @property
    def required(self) -> bool:
        return self.default is None

    @property
    def effective_type(self) -> VarType | None:
        if self.declared_type is not None:
            return self.declared_type
        if self.default is not None:
            return type_of(self.default)
        return None


@dataclass(frozen=True, eq=False)
class Pack:
    metadata: PackMetadata
    source: CacheEntry
    alias: str
    path: tuple[str, ...]
    variable_specs: tuple[VariableSpec, ...] = ()
    template_files: tuple[Path, ...] = ()
    children: dict[str, Pack] = field(default_factory=dict)
    variables_file: Path | None = None

    @property
    def path_name(self) -> str:
        return ".".join(self.path)

    def walk(self) -> Iterator[Pack]:
        yield self
        for child in self.children.values():
            yield from child.walk()

    def get_spec(self, name: str) -> VariableSpec | None:
        for spec in self.variable_specs:
            if spec.name == name:
                return spec
        return None

    def root_variable_files(self) -> dict[str, Path]:
        return {
            pack.path_name: pack.variables_file
            for pack in self.walk()
            if pack.variables_file is not None
        }
