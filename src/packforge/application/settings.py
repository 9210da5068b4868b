from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib

import tomli_w

from packforge.domain.diagnostics import Diagnostic, FileLocation, Severity
from packforge.domain.naming import validate_registry_name
from packforge.domain.pack import DEFAULT_REGISTRY
from packforge.domain.result import Result
from packforge.domain.types import JsonDict, as_json_dict

CONFIG_ENV = "PACKFORGE_CONFIG"
CACHE_DIR_ENV = "PACKFORGE_CACHE_DIR"
DEFAULT_REGISTRY_URL = "https://github.com/hashicorp/nomad-pack-community-registry"
DEFAULT_FETCH_TIMEOUT = 60.0
DEFAULT_MAX_WORKERS = 4


def _default_registries() -> dict[str, str]:
    return {DEFAULT_REGISTRY: DEFAULT_REGISTRY_URL}


@dataclass
class Settings:
    cache_root: Path
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    strict: bool = False
    registries: dict[str, str] = field(default_factory=_default_registries)


def config_path() -> Path:
    configured = os.environ.get(CONFIG_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".config" / "packforge" / "config.toml"


def _default_cache_root() -> Path:
    return Path.home() / ".cache" / "packforge"


def _invalid(path: Path, message: str) -> Diagnostic:
    return Diagnostic(
        code="CONFIG_PARSE_FAILED",
        rule="config.parse",
        severity=Severity.ERROR,
        message=message,
        location=FileLocation(str(path)),
    )


def settings_from_dict(raw: JsonDict, path: Path) -> Result[Settings]:
    diagnostics: list[Diagnostic] = []
    cache = as_json_dict(raw.get("cache"))
    general = as_json_dict(raw.get("settings"))
    settings = Settings(cache_root=_default_cache_root())

    root = cache.get("root")
    if isinstance(root, str) and root:
        settings.cache_root = Path(root).expanduser()
    timeout = cache.get("fetch_timeout")
    if timeout is not None:
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
            settings.fetch_timeout = float(timeout)
        else:
            diagnostics.append(_invalid(path, "cache.fetch_timeout must be a positive number"))
    workers = cache.get("max_workers")
    if workers is not None:
        if isinstance(workers, int) and not isinstance(workers, bool) and workers > 0:
            settings.max_workers = workers
        else:
            diagnostics.append(_invalid(path, "cache.max_workers must be a positive integer"))
    settings.strict = bool(general.get("strict", False))

    for name, url in as_json_dict(raw.get("registries")).items():
        diagnostics.extend(validate_registry_name(name))
        if not isinstance(url, str) or not url:
            diagnostics.append(_invalid(path, f"registries.{name} must be a URL string"))
            continue
        settings.registries[name] = url

    env_cache = os.environ.get(CACHE_DIR_ENV)
    if env_cache:
        settings.cache_root = Path(env_cache).expanduser()
    return Result(value=settings, diagnostics=diagnostics)


def read_settings(path: Path | None = None) -> Result[Settings]:
    path = path or config_path()
    if not path.exists():
        return settings_from_dict({}, path)
    try:
        raw = as_json_dict(tomllib.loads(path.read_text(encoding="utf-8")))
    except (OSError, tomllib.TOMLDecodeError) as e:
        return Result(diagnostics=[_invalid(path, str(e))])
    return settings_from_dict(raw, path)


def add_registry(path: Path, name: str, url: str) -> Result[None]:
    diagnostics = validate_registry_name(name)
    if diagnostics:
        return Result(diagnostics=diagnostics)
    raw: JsonDict = {}
    if path.exists():
        try:
            raw = as_json_dict(tomllib.loads(path.read_text(encoding="utf-8")))
        except (OSError, tomllib.TOMLDecodeError) as e:
            return Result(diagnostics=[_invalid(path, str(e))])
    registries = as_json_dict(raw.get("registries"))
    registries[name] = url
    raw["registries"] = registries
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(raw), encoding="utf-8")
    return Result()


def effective_strict(cli_strict: bool | None, settings: Settings | None) -> bool:
    if cli_strict is not None:
        return cli_strict
    if settings is None:
        return False
    return settings.strict
