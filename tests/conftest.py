from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from packforge.adapters.errors import PackNotFoundError
from packforge.domain.pack import LATEST_REF


def write_pack(
    root: Path,
    name: str,
    variables: list[dict[str, Any]] | None = None,
    dependencies: list[dict[str, Any]] | None = None,
    description: str = "",
    url: str = "",
) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    manifest: dict[str, Any] = {
        "app": {"url": url},
        "pack": {"name": name, "description": description, "version": "0.1.0"},
    }
    if dependencies:
        manifest["dependencies"] = dependencies
    (root / "pack.yaml").write_text(yaml.safe_dump(manifest), encoding="utf-8")
    if variables is not None:
        (root / "variables.yaml").write_text(
            yaml.safe_dump({"variables": variables}), encoding="utf-8"
        )
    templates = root / "templates"
    templates.mkdir(exist_ok=True)
    (templates / f"{name}.nomad.tpl").write_text("job {}\n", encoding="utf-8")
    return root


class FakeRegistry:
    """In-memory registry: packs keyed by (registry, name, ref)."""

    def __init__(
        self,
        packs: dict[tuple[str, str, str], dict[str, Any]] | None = None,
        latest: dict[tuple[str, str], str] | None = None,
        registries: tuple[str, ...] = ("default",),
        missing: set[str] | None = None,
    ) -> None:
        self.packs = packs or {}
        self.latest = latest or {}
        self.registries = registries
        self.missing = missing or set()
        self.fetches: list[tuple[str, str, str]] = []
        self.checks: list[tuple[str, str, str]] = []
        self.fail_next: Exception | None = None

    def has_registry(self, registry: str) -> bool:
        return registry in self.registries

    def resolve_ref(self, registry: str, pack_name: str, ref: str) -> str:
        if ref == LATEST_REF:
            return self.latest.get((registry, pack_name), "v1.0.0")
        return ref

    def has_pack(self, registry: str, pack_name: str, ref: str) -> bool:
        self.checks.append((registry, pack_name, ref))
        return pack_name not in self.missing

    def fetch(self, registry: str, pack_name: str, ref: str, dest: Path) -> Path:
        self.fetches.append((registry, pack_name, ref))
        if pack_name in self.missing:
            raise PackNotFoundError(f"Pack {pack_name} not found")
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            dest.mkdir(parents=True)
            (dest / "partial").write_text("x", encoding="utf-8")
            raise error
        spec = self.packs.get((registry, pack_name, ref), {})
        write_pack(dest, pack_name, **spec)
        return dest


@pytest.fixture
def make_pack(tmp_path: Path) -> Callable[..., Path]:
    def _make(rel: str, name: str | None = None, **kwargs: Any) -> Path:
        return write_pack(tmp_path / rel, name or Path(rel).name, **kwargs)

    return _make


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()
