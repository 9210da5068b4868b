from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from packforge.adapters.command.subprocess_runner import SubprocessCommandRunner
from packforge.adapters.registry.git import GitRegistry
from packforge.application.override_sources import collect_sources
from packforge.application.pack_loader import load_pack
from packforge.application.registry_cache import RegistryCache
from packforge.application.settings import Settings, effective_strict
from packforge.application.variable_resolver import Resolver, ResolverConfig
from packforge.domain.diagnostics import Diagnostic, Severity
from packforge.domain.pack import Pack, PackReference
from packforge.domain.result import Result
from packforge.domain.strictness import apply_strictness
from packforge.domain.variables import ResolvedVariableSet
from packforge.ports.command_runner import CommandRunnerPort
from packforge.ports.pack_catalog import PackCatalogPort


@dataclass
class ResolvedPack:
    pack: Pack
    variables: ResolvedVariableSet


def build_cache(settings: Settings, runner: CommandRunnerPort | None = None) -> RegistryCache:
    runner = runner or SubprocessCommandRunner(settings.fetch_timeout)
    registry = GitRegistry(settings.registries, runner, timeout=settings.fetch_timeout)
    return RegistryCache(settings.cache_root, registry)


def resolve_pack(
    reference: PackReference,
    settings: Settings,
    *,
    var_files: Iterable[Path] = (),
    pack_var_files: Iterable[tuple[str, Path]] = (),
    environ: Mapping[str, str] | None = None,
    assignments: Iterable[str] = (),
    ignore_missing_vars: bool = False,
    strict: bool | None = None,
    cache: RegistryCache | None = None,
    catalog: PackCatalogPort | None = None,
) -> Result[ResolvedPack]:
    strict_enabled = effective_strict(strict, settings)
    cache = cache or build_cache(settings)
    diagnostics: list[Diagnostic] = []

    loaded = load_pack(
        reference, cache=cache, catalog=catalog, max_workers=settings.max_workers
    )
    diagnostics.extend(loaded.diagnostics)
    if loaded.value is None:
        return Result(diagnostics=apply_strictness(diagnostics, strict_enabled))
    pack = loaded.value

    sources = collect_sources(
        pack,
        var_files=var_files,
        pack_var_files=pack_var_files,
        environ=environ,
        assignments=assignments,
    )
    diagnostics.extend(sources.diagnostics)
    if any(d.severity == Severity.ERROR for d in sources.diagnostics):
        return Result(diagnostics=apply_strictness(diagnostics, strict_enabled))

    resolver = Resolver(
        ResolverConfig(
            parent_pack=pack,
            root_variable_files=pack.root_variable_files(),
            ignore_missing_vars=ignore_missing_vars,
            sources=sources.value or [],
        )
    )
    variables, resolution = resolver.resolve()
    diagnostics.extend(resolution)
    return Result(
        value=ResolvedPack(pack=pack, variables=variables),
        diagnostics=apply_strictness(diagnostics, strict_enabled),
    )
