from pathlib import Path
from typing import Protocol

from packforge.domain.types import JsonDict


class PackCatalogPort(Protocol):
    def has_pack(self, pack_dir: Path) -> bool: ...

    def load_manifest(self, pack_dir: Path) -> JsonDict: ...

    def load_variables(self, pack_dir: Path) -> JsonDict: ...

    def template_files(self, pack_dir: Path) -> list[Path]: ...
