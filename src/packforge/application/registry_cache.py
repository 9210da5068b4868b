from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import tempfile
import threading

from packforge.adapters.errors import PackFetchError, PackNotFoundError, UnknownRegistryError
from packforge.domain.pack import CacheEntry, PackReference
from packforge.ports.registry import RegistryPort

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


def ref_dirname(ref: str) -> str:
    return ref.replace("%", "%25").replace("/", "%2F")


def ref_from_dirname(dirname: str) -> str:
    return dirname.replace("%2F", "/").replace("%25", "%")


def _visible_dirs(path: Path) -> list[Path]:
    if not path.is_dir():
        return []
    return sorted(p for p in path.iterdir() if p.is_dir() and not p.name.startswith("."))


class RegistryCache:
    def __init__(self, root: Path, registry: RegistryPort) -> None:
        self.root = root
        self.registry = registry
        self._locks: dict[CacheKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def entry_path(self, registry: str, pack_name: str, resolved_ref: str) -> Path:
        return self.root / registry / pack_name / ref_dirname(resolved_ref)

    def resolve_key(self, reference: PackReference) -> CacheKey:
        if reference.is_local:
            raise ValueError(f"Local pack {reference.name} is not served from the cache")
        if not self.registry.has_registry(reference.registry):
            raise UnknownRegistryError(
                f"Unknown registry: {reference.registry}",
                details={"registry": reference.registry},
                hint="Add it with `packforge registry add`.",
            )
        resolved = self.registry.resolve_ref(reference.registry, reference.name, reference.ref)
        return (reference.registry, reference.name, resolved)

    def lookup(self, key: CacheKey) -> CacheEntry | None:
        path = self.entry_path(*key)
        if not path.is_dir():
            return None
        return CacheEntry(key[0], key[1], key[2], path)

    def ensure(self, reference: PackReference) -> CacheEntry:
        key = self.resolve_key(reference)
        with self._lock_for(key):
            entry = self.lookup(key)
            if entry is not None:
                logger.debug("Cache hit for %s/%s@%s", *key)
                return entry
            logger.debug("Cache miss for %s/%s@%s, fetching", *key)
            self._fetch(key)
        return CacheEntry(key[0], key[1], key[2], self.entry_path(*key))

    def _fetch(self, key: CacheKey) -> None:
        path = self.entry_path(*key)
        path.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=path.parent))
        try:
            fetched = self.registry.fetch(key[0], key[1], key[2], staging / "pack")
            os.replace(fetched, path)
        except OSError as e:
            raise PackFetchError(
                f"Could not store {key[1]}@{key[2]} in the cache",
                details={"path": str(path), "retryable": True},
                cause=e,
            )
        finally:
            shutil.rmtree(staging, ignore_errors=True)
            if staging.exists():
                logger.warning("Could not remove staging directory %s", staging)

    def locate(self, reference: PackReference) -> CacheKey:
        # read-only: a cached entry, or the remote confirming the pack at that ref
        key = self.resolve_key(reference)
        if self.lookup(key) is not None:
            return key
        if not self.registry.has_pack(*key):
            raise PackNotFoundError(
                f"Pack {key[1]} not found in registry {key[0]} at {key[2]}",
                details={"registry": key[0], "pack": key[1], "ref": key[2]},
            )
        return key

    def verify(self, reference: PackReference) -> bool:
        try:
            self.locate(reference)
        except (PackNotFoundError, PackFetchError):
            return False
        return True

    def list(self) -> list[tuple[str, str]]:
        packs: list[tuple[str, str]] = []
        for registry_dir in _visible_dirs(self.root):
            for pack_dir in _visible_dirs(registry_dir):
                if _visible_dirs(pack_dir):
                    packs.append((registry_dir.name, pack_dir.name))
        return packs

    def entries(self) -> list[CacheEntry]:
        found: list[CacheEntry] = []
        for registry, pack_name in self.list():
            for ref_dir in _visible_dirs(self.root / registry / pack_name):
                found.append(
                    CacheEntry(registry, pack_name, ref_from_dirname(ref_dir.name), ref_dir)
                )
        return found

    def invalidate(self, entry: CacheEntry) -> bool:
        with self._lock_for(entry.key):
            path = self.entry_path(*entry.key)
            if not path.is_dir():
                return False
            shutil.rmtree(path)
            logger.debug("Invalidated %s/%s@%s", *entry.key)
            return True
