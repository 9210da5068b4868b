from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from pathlib import Path

from packforge.adapters.errors import AdapterError, CyclicDependencyError, PackParseError
from packforge.adapters.pack_catalog.local import VARIABLES_FILE, LocalPackCatalog
from packforge.application.reference_resolver import (
    adapter_diagnostic,
    reference_context,
    resolve_reference,
)
from packforge.application.registry_cache import RegistryCache
from packforge.application.settings import DEFAULT_MAX_WORKERS
from packforge.domain.naming import validate_alias, validate_variable_name
from packforge.domain.pack import (
    CacheEntry,
    DependencySpec,
    Pack,
    PackMetadata,
    PackReference,
    VariableSpec,
)
from packforge.domain.result import Result
from packforge.domain.types import (
    JsonDict,
    TypeExpressionError,
    as_json_dict,
    as_json_list,
    is_compatible,
    parse_type,
)
from packforge.ports.pack_catalog import PackCatalogPort

logger = logging.getLogger(__name__)

Ancestors = tuple[tuple[Path, str], ...]


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def parse_metadata(manifest: JsonDict) -> PackMetadata:
    pack = as_json_dict(manifest.get("pack"))
    app = as_json_dict(manifest.get("app"))
    return PackMetadata(
        name=str(pack.get("name", "")),
        description=str(pack.get("description") or ""),
        url=str(app.get("url") or ""),
        version=_optional_str(pack.get("version")),
        raw=manifest,
    )


def parse_dependencies(manifest: JsonDict, manifest_file: Path) -> list[DependencySpec]:
    dependencies: list[DependencySpec] = []
    seen: set[str] = set()
    for item in as_json_list(manifest.get("dependencies")):
        raw = as_json_dict(item)
        name = str(raw.get("name"))
        alias = str(raw.get("alias") or name)
        for diag in validate_alias(alias):
            raise PackParseError(
                diag.message, details={"file": str(manifest_file)}, code=diag.code
            )
        if alias in seen:
            raise PackParseError(
                f"Duplicate dependency alias: {alias}",
                details={"file": str(manifest_file), "alias": alias},
                hint="Give one of the dependencies a distinct alias.",
                code="PACK_ALIAS_DUPLICATE",
            )
        seen.add(alias)
        dependencies.append(
            DependencySpec(
                name=name,
                alias=alias,
                path=_optional_str(raw.get("path")),
                registry=_optional_str(raw.get("registry")),
                ref=_optional_str(raw.get("ref")),
                enabled=raw.get("enabled", True) is not False,
            )
        )
    return dependencies


def parse_variable_specs(
    document: JsonDict, owning_pack: str, variables_file: Path
) -> tuple[VariableSpec, ...]:
    specs: list[VariableSpec] = []
    seen: set[str] = set()
    for item in as_json_list(document.get("variables")):
        raw = as_json_dict(item)
        name = str(raw.get("name"))
        details: JsonDict = {"file": str(variables_file), "variable": name}
        for diag in validate_variable_name(name):
            raise PackParseError(diag.message, details=details, code=diag.code)
        if name in seen:
            raise PackParseError(
                f"Variable {name} is declared more than once",
                details=details,
                code="VAR_DECLARATION_DUPLICATE",
            )
        seen.add(name)

        declared_type = None
        type_expr = raw.get("type")
        if type_expr is not None:
            try:
                declared_type = parse_type(str(type_expr))
            except TypeExpressionError as e:
                raise PackParseError(
                    f"Variable {name}: {e}", details=details, cause=e
                )
        default = raw.get("default")
        if declared_type is not None and not is_compatible(declared_type, default):
            raise PackParseError(
                f"Default for variable {name} is not a valid {declared_type}",
                details=details,
            )
        specs.append(
            VariableSpec(
                name=name,
                owning_pack=owning_pack,
                declared_type=declared_type,
                default=default,
                description=str(raw.get("description") or ""),
            )
        )
    return tuple(specs)


class PackLoader:
    def __init__(
        self,
        cache: RegistryCache,
        catalog: PackCatalogPort,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.cache = cache
        self.catalog = catalog
        self.max_workers = max(1, max_workers)

    def _resolve_all(self, references: list[PackReference]) -> list[CacheEntry]:
        if len(references) <= 1:
            return [resolve_reference(r, self.cache, self.catalog) for r in references]
        workers = min(self.max_workers, len(references))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="packforge-fetch") as pool:
            return list(
                pool.map(lambda r: resolve_reference(r, self.cache, self.catalog), references)
            )

    def load(
        self,
        entry: CacheEntry,
        alias: str | None = None,
        parent_path: tuple[str, ...] = (),
        ancestors: Ancestors = (),
    ) -> Pack:
        source_dir = entry.local_path
        identity = source_dir.resolve()
        manifest = self.catalog.load_manifest(source_dir)
        metadata = parse_metadata(manifest)
        alias = alias or metadata.name
        path = (*parent_path, alias)

        for ancestor_identity, _ in ancestors:
            if ancestor_identity == identity:
                chain = " -> ".join([*(a for _, a in ancestors), alias])
                raise CyclicDependencyError(
                    f"Cyclic pack dependency: {chain}",
                    details={"cycle": chain},
                )

        variables_file = source_dir / VARIABLES_FILE
        specs = parse_variable_specs(
            self.catalog.load_variables(source_dir), ".".join(path), variables_file
        )
        dependencies = [
            d for d in parse_dependencies(manifest, source_dir / "pack.yaml") if d.enabled
        ]
        child_entries = self._resolve_all([d.reference(source_dir) for d in dependencies])

        children: dict[str, Pack] = {}
        lineage = (*ancestors, (identity, alias))
        for dependency, child_entry in zip(dependencies, child_entries):
            logger.debug("Loading dependency %s of %s", dependency.alias, ".".join(path))
            children[dependency.alias] = self.load(child_entry, dependency.alias, path, lineage)

        return Pack(
            metadata=metadata,
            source=entry,
            alias=alias,
            path=path,
            variable_specs=specs,
            template_files=tuple(self.catalog.template_files(source_dir)),
            children=children,
            variables_file=variables_file if variables_file.is_file() else None,
        )


def load_pack(
    reference: PackReference,
    *,
    cache: RegistryCache,
    catalog: PackCatalogPort | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Result[Pack]:
    catalog = catalog or LocalPackCatalog()
    loader = PackLoader(cache, catalog, max_workers)
    try:
        entry = resolve_reference(reference, cache, catalog)
        pack = loader.load(entry, alias=reference.name)
    except AdapterError as e:
        return Result(diagnostics=[adapter_diagnostic(e, reference_context(reference))])
    return Result(value=pack)
