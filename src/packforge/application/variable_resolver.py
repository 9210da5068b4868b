from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from packforge.domain.diagnostics import (
    Diagnostic,
    Diagnostics,
    Severity,
    VariableLocation,
)
from packforge.domain.pack import Pack, VariableSpec
from packforge.domain.types import (
    JsonValue,
    TypeKind,
    VarType,
    coerce_json_value,
    is_compatible,
    type_of,
)
from packforge.domain.variables import (
    ResolvedVariable,
    ResolvedVariableSet,
    SourceKind,
    VariablePath,
    VariableSource,
)


def _new_sources() -> list[VariableSource]:
    return []


def _new_files() -> dict[str, Path]:
    return {}


@dataclass
class ResolverConfig:
    parent_pack: Pack
    root_variable_files: dict[str, Path] = field(default_factory=_new_files)
    ignore_missing_vars: bool = False
    sources: list[VariableSource] = field(default_factory=_new_sources)


class _Unparseable(Exception):
    pass


def _interpret(source: VariableSource, expected: VarType | None) -> JsonValue:
    if not source.literal or not isinstance(source.value, str):
        return source.value
    if expected is None or expected.kind == TypeKind.STRING:
        return source.value
    try:
        parsed: object = yaml.safe_load(source.value)
    except yaml.YAMLError as e:
        raise _Unparseable(str(e))
    return coerce_json_value(parsed)


class Resolver:
    def __init__(self, config: ResolverConfig) -> None:
        self.config = config

    def _location(self, pack_path: str, name: str) -> VariableLocation:
        file = self.config.root_variable_files.get(pack_path)
        return VariableLocation(pack_path, name, str(file) if file is not None else None)

    def _targets(self, target: VariablePath, packs: list[Pack]) -> list[Pack]:
        root_path = self.config.parent_pack.path
        matched: list[Pack] = []
        for pack in packs:
            if pack.get_spec(target.name) is None:
                continue
            if not target.qualified:
                matched.append(pack)
            elif pack.path == target.packs or pack.path[len(root_path):] == target.packs:
                matched.append(pack)
        return matched

    def resolve(self) -> tuple[ResolvedVariableSet, Diagnostics]:
        diagnostics = Diagnostics()
        resolved = ResolvedVariableSet()
        packs = list(self.config.parent_pack.walk())

        matching: dict[tuple[str, str], list[VariableSource]] = {}
        # stable sort: same-rank sources keep supply order, so the last one wins
        for source in sorted(self.config.sources, key=lambda s: s.kind):
            targets = self._targets(source.target, packs)
            if not targets:
                diagnostics.add(self._unknown(source))
                continue
            for pack in targets:
                matching.setdefault((pack.path_name, source.target.name), []).append(source)

        for pack in packs:
            resolved.add_pack(pack.path_name)
            for spec in pack.variable_specs:
                candidates = matching.get((pack.path_name, spec.name), [])
                if any(s.target.qualified for s in candidates):
                    candidates = [s for s in candidates if s.target.qualified]
                variable = self._resolve_spec(pack, spec, candidates, diagnostics)
                if variable is not None:
                    resolved.set(pack.path_name, variable)
        return resolved, diagnostics

    def _resolve_spec(
        self,
        pack: Pack,
        spec: VariableSpec,
        candidates: list[VariableSource],
        diagnostics: Diagnostics,
    ) -> ResolvedVariable | None:
        value: JsonValue = spec.default
        origin = SourceKind.DEFAULT
        expected = spec.effective_type

        for source in candidates:
            try:
                candidate = _interpret(source, expected)
            except _Unparseable as e:
                diagnostics.add(
                    self._mismatch(pack, spec, source, expected, source.value, str(e))
                )
                continue
            if candidate is None and expected is not None and expected.kind not in (
                TypeKind.NULL,
                TypeKind.ANY,
            ):
                diagnostics.add(
                    self._mismatch(pack, spec, source, expected, candidate, "null value")
                )
                continue
            if expected is not None and not is_compatible(expected, candidate):
                diagnostics.add(self._mismatch(pack, spec, source, expected, candidate))
                continue
            value = candidate
            origin = source.kind
            if expected is None and candidate is not None:
                expected = type_of(candidate)

        if value is None and spec.required:
            diagnostics.add(self._missing(pack, spec))
            return None
        return ResolvedVariable(
            name=spec.name,
            value=value,
            type=expected,
            source=origin,
            description=spec.description,
        )

    def _unknown(self, source: VariableSource) -> Diagnostic:
        pack = ".".join(source.target.packs) or "*"
        return Diagnostic(
            code="VAR_UNKNOWN",
            rule="variables.unknown",
            severity=Severity.WARN,
            message=(
                f"{source.target} from {source.kind.label} {source.origin} "
                "does not match any declared variable; ignoring it"
            ),
            location=VariableLocation(pack, source.target.name),
            upgradeable=True,
        )

    def _mismatch(
        self,
        pack: Pack,
        spec: VariableSpec,
        source: VariableSource,
        expected: VarType | None,
        got: JsonValue,
        reason: str | None = None,
    ) -> Diagnostic:
        message = (
            f"Value from {source.kind.label} {source.origin} is not a valid "
            f"{expected}; keeping the previous value"
        )
        if reason:
            message += f" ({reason})"
        return Diagnostic(
            code="VAR_TYPE_MISMATCH",
            rule="variables.type",
            severity=Severity.ERROR,
            message=message,
            location=self._location(pack.path_name, spec.name),
            details={"expected": str(expected), "got": str(type_of(got))},
        )

    def _missing(self, pack: Pack, spec: VariableSpec) -> Diagnostic:
        ignored = self.config.ignore_missing_vars
        return Diagnostic(
            code="VAR_MISSING_REQUIRED",
            rule="variables.required",
            severity=Severity.WARN if ignored else Severity.ERROR,
            message=f"Required variable {spec.name} has no value",
            location=self._location(pack.path_name, spec.name),
            hint=None if ignored else f"Set it with --var {pack.path_name}.{spec.name}=...",
        )
