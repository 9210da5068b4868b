from __future__ import annotations

from pathlib import Path

from packforge.adapters.errors import (
    AdapterError,
    CyclicDependencyError,
    PackFetchError,
    PackNotFoundError,
    PackParseError,
    PackReadError,
    UnknownRegistryError,
)
from packforge.application.registry_cache import RegistryCache
from packforge.domain.diagnostics import Diagnostic, ErrorContext, FileLocation, Severity
from packforge.domain.pack import (
    DEFAULT_REGISTRY,
    LATEST_REF,
    LOCAL_REGISTRY,
    CacheEntry,
    PackReference,
    validate_reference,
)
from packforge.domain.result import Result
from packforge.ports.pack_catalog import PackCatalogPort

PACK_NAME = "Pack Name"
REGISTRY_NAME = "Registry Name"
PACK_REF = "Pack Ref"
PACK_PATH = "Pack Path"


def reference_context(reference: PackReference) -> ErrorContext:
    context = ErrorContext().with_value(PACK_NAME, reference.name)
    if reference.is_local:
        return context.with_value(PACK_PATH, reference.path)
    return context.with_value(REGISTRY_NAME, reference.registry).with_value(
        PACK_REF, reference.ref
    )


def reference_from_options(
    name: str,
    registry: str | None = None,
    ref: str | None = None,
    path: str | None = None,
) -> Result[PackReference]:
    diagnostics = validate_reference(name, registry=registry, ref=ref, path=path)
    if diagnostics:
        return Result(diagnostics=diagnostics)
    return Result(
        value=PackReference(
            name=name,
            registry=registry or DEFAULT_REGISTRY,
            ref=ref or LATEST_REF,
            path=path,
        )
    )


def _error_code(error: AdapterError) -> tuple[str, str]:
    if isinstance(error, UnknownRegistryError):
        return "REGISTRY_UNKNOWN", "registry.exists"
    if isinstance(error, PackNotFoundError):
        return "PACK_NOT_FOUND", "pack.exists"
    if isinstance(error, PackFetchError):
        return "PACK_FETCH_FAILED", "pack.fetch"
    if isinstance(error, CyclicDependencyError):
        return "PACK_CYCLIC_DEPENDENCY", "pack.dependencies.cycle"
    if isinstance(error, PackParseError):
        return error.code, "pack.parse"
    if isinstance(error, PackReadError):
        return "PACK_PARSE_FAILED", "pack.parse"
    return "PACK_LOAD_FAILED", "pack.load"


def adapter_diagnostic(error: AdapterError, context: ErrorContext) -> Diagnostic:
    code, rule = _error_code(error)
    details = {**context.as_details(), **(error.details or {})}
    location = None
    file = details.get("file")
    if isinstance(file, str):
        line = details.get("line")
        col = details.get("col")
        location = FileLocation(
            file,
            line if isinstance(line, int) else None,
            col if isinstance(col, int) else None,
        )
    return Diagnostic(
        code=code,
        rule=rule,
        severity=Severity.ERROR,
        message=str(error),
        location=location,
        hint=error.hint,
        details=details,
        is_execution=isinstance(error, PackFetchError),
    )


def resolve_reference(
    reference: PackReference, cache: RegistryCache, catalog: PackCatalogPort
) -> CacheEntry:
    if reference.is_local:
        path = Path(str(reference.path)).expanduser().resolve()
        if not catalog.has_pack(path):
            raise PackNotFoundError(
                f"No pack found at {reference.path}",
                details={"path": str(path)},
                hint="A pack directory must contain pack.yaml.",
            )
        return CacheEntry(LOCAL_REGISTRY, reference.name, str(path), path, cached=False)
    return cache.ensure(reference)


def verify_exists(
    reference: PackReference, cache: RegistryCache, catalog: PackCatalogPort
) -> Result[bool]:
    context = reference_context(reference)
    if reference.is_local:
        path = Path(str(reference.path)).expanduser().resolve()
        if catalog.has_pack(path):
            return Result(value=True)
        error = PackNotFoundError(
            f"No pack found at {reference.path}", details={"path": str(path)}
        )
        return Result(value=False, diagnostics=[adapter_diagnostic(error, context)])
    try:
        key = cache.locate(reference)
    except AdapterError as e:
        return Result(value=False, diagnostics=[adapter_diagnostic(e, context)])
    return Result(value=True, artifacts=[{"resolved_ref": key[2]}])
