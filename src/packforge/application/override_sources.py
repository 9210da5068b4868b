from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

import yaml

from packforge.domain.diagnostics import Diagnostic, FileLocation, Severity, ValueLocation
from packforge.domain.pack import Pack
from packforge.domain.result import Result
from packforge.domain.types import JsonDict, JsonValue, as_json_dict
from packforge.domain.variables import SourceKind, VariablePath, VariableSource

ENV_PREFIX = "PACKFORGE_VAR_"

PackPrefixes = set[tuple[str, ...]]


def pack_prefixes(root: Pack) -> PackPrefixes:
    prefixes: PackPrefixes = set()
    for pack in root.walk():
        prefixes.add(pack.path)
        relative = pack.path[len(root.path):]
        if relative:
            prefixes.add(relative)
    return prefixes


def _valid_path(dotted: str) -> bool:
    return bool(dotted) and all(segment.strip() for segment in dotted.split("."))


def _flatten(
    mapping: JsonDict, prefix: tuple[str, ...], prefixes: PackPrefixes
) -> list[tuple[VariablePath, JsonValue]]:
    assignments: list[tuple[VariablePath, JsonValue]] = []
    for key, value in mapping.items():
        chain = (*prefix, *key.split("."))
        if isinstance(value, dict) and chain in prefixes:
            assignments.extend(_flatten(as_json_dict(value), chain, prefixes))
        else:
            assignments.append((VariablePath(packs=chain[:-1], name=chain[-1]), value))
    return assignments


def _file_error(path: Path, message: str) -> Diagnostic:
    return Diagnostic(
        code="OVERRIDE_FILE_INVALID",
        rule="overrides.file",
        severity=Severity.ERROR,
        message=message,
        location=FileLocation(str(path)),
    )


def file_sources(
    path: Path, prefixes: PackPrefixes, pack: str | None = None
) -> Result[list[VariableSource]]:
    try:
        raw: object = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        return Result(diagnostics=[_file_error(path, f"Could not read override file: {e}")])
    except yaml.YAMLError as e:
        return Result(diagnostics=[_file_error(path, f"Invalid YAML in override file: {e}")])
    if not isinstance(raw, dict):
        return Result(diagnostics=[_file_error(path, "Override file must contain a mapping")])

    prefix = tuple(pack.split(".")) if pack else ()
    kind = SourceKind.PACK_FILE if pack else SourceKind.SHARED_FILE
    sources: list[VariableSource] = []
    diagnostics: list[Diagnostic] = []
    for target, value in _flatten(as_json_dict(raw), prefix, prefixes):
        if not _valid_path(str(target)):
            diagnostics.append(_file_error(path, f"Invalid variable path: {target}"))
            continue
        sources.append(VariableSource(kind=kind, target=target, value=value, origin=str(path)))
    return Result(value=sources, diagnostics=diagnostics)


def env_sources(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> list[VariableSource]:
    sources: list[VariableSource] = []
    for key in sorted(environ):
        if not key.startswith(prefix) or len(key) == len(prefix):
            continue
        dotted = key[len(prefix):]
        if not _valid_path(dotted):
            continue
        sources.append(
            VariableSource(
                kind=SourceKind.ENV,
                target=VariablePath.parse(dotted),
                value=environ[key],
                literal=True,
                origin=key,
            )
        )
    return sources


def split_assignments(assignments: Iterable[str]) -> Result[list[tuple[str, str]]]:
    pairs: list[tuple[str, str]] = []
    diagnostics: list[Diagnostic] = []
    for text in assignments:
        name, sep, value = text.partition("=")
        name = name.strip()
        if not sep or not _valid_path(name):
            diagnostics.append(
                Diagnostic(
                    code="OVERRIDE_ASSIGNMENT_INVALID",
                    rule="overrides.cli",
                    severity=Severity.ERROR,
                    message=f"Expected name=value, got {text!r}",
                    location=ValueLocation("var", text),
                )
            )
            continue
        pairs.append((name, value))
    return Result(value=pairs, diagnostics=diagnostics)


def cli_sources(pairs: Iterable[tuple[str, str]]) -> list[VariableSource]:
    return [
        VariableSource(
            kind=SourceKind.CLI,
            target=VariablePath.parse(name),
            value=value,
            literal=True,
            origin=f"--var {name}",
        )
        for name, value in pairs
    ]


def collect_sources(
    root: Pack,
    *,
    var_files: Iterable[Path] = (),
    pack_var_files: Iterable[tuple[str, Path]] = (),
    environ: Mapping[str, str] | None = None,
    assignments: Iterable[str] = (),
) -> Result[list[VariableSource]]:
    prefixes = pack_prefixes(root)
    sources: list[VariableSource] = []
    diagnostics: list[Diagnostic] = []
    for path in var_files:
        result = file_sources(path, prefixes)
        sources.extend(result.value or [])
        diagnostics.extend(result.diagnostics)
    for pack, path in pack_var_files:
        result = file_sources(path, prefixes, pack=pack)
        sources.extend(result.value or [])
        diagnostics.extend(result.diagnostics)
    if environ is not None:
        sources.extend(env_sources(environ))
    split = split_assignments(assignments)
    diagnostics.extend(split.diagnostics)
    sources.extend(cli_sources(split.value or []))
    return Result(value=sources, diagnostics=diagnostics)
