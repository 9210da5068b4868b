from pathlib import Path
from typing import Protocol


class RegistryPort(Protocol):
    def has_registry(self, registry: str) -> bool: ...

    def resolve_ref(self, registry: str, pack_name: str, ref: str) -> str: ...

    def has_pack(self, registry: str, pack_name: str, ref: str) -> bool: ...

    def fetch(self, registry: str, pack_name: str, ref: str, dest: Path) -> Path: ...
