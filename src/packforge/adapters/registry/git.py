from __future__ import annotations

import logging
from pathlib import Path
import re
import shutil
import tempfile

from packforge.adapters.errors import (
    CommandNotFound,
    CommandTimeout,
    PackFetchError,
    PackNotFoundError,
    UnknownRegistryError,
)
from packforge.domain.pack import LATEST_REF
from packforge.ports.command_runner import CommandResult, CommandRunnerPort

logger = logging.getLogger(__name__)

SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")
_NUMBERS = re.compile(r"\d+")


def _is_sha(ref: str) -> bool:
    return bool(SHA_PATTERN.match(ref))


def _version_key(tag: str) -> tuple[tuple[int, ...], str]:
    numbers = tuple(int(n) for n in _NUMBERS.findall(tag))
    return (numbers or (-1,), tag)


def parse_tags(ls_remote_output: str) -> list[str]:
    tags: list[str] = []
    for line in ls_remote_output.splitlines():
        parts = line.split()
        if len(parts) != 2 or not parts[1].startswith("refs/tags/"):
            continue
        tag = parts[1][len("refs/tags/"):]
        if tag.endswith("^{}"):
            continue
        tags.append(tag)
    return tags


def latest_tag(tags: list[str]) -> str | None:
    if not tags:
        return None
    return max(tags, key=_version_key)


def _pack_dir(checkout: Path, pack_name: str) -> Path | None:
    for candidate in (checkout / "packs" / pack_name, checkout / pack_name):
        if (candidate / "pack.yaml").is_file():
            return candidate
    return None


class GitRegistry:
    """Pack registries hosted in git repositories.

    A registry repository keeps one directory per pack, either under
    ``packs/`` or at its root.
    """

    def __init__(
        self,
        registries: dict[str, str],
        runner: CommandRunnerPort,
        timeout: float | None = None,
    ) -> None:
        self.registries = dict(registries)
        self.runner = runner
        self.timeout = timeout

    def has_registry(self, registry: str) -> bool:
        return registry in self.registries

    def _url(self, registry: str) -> str:
        url = self.registries.get(registry)
        if url is None:
            raise UnknownRegistryError(
                f"Unknown registry: {registry}",
                details={"registry": registry},
                hint="Add it with `packforge registry add`.",
            )
        return url

    def _git(self, args: list[str], cwd: Path | None = None) -> CommandResult:
        try:
            result = self.runner.run(args, cwd=cwd, timeout=self.timeout)
        except CommandTimeout as e:
            raise PackFetchError(
                str(e), details={"retryable": True, **(e.details or {})}, cause=e
            )
        except CommandNotFound as e:
            raise PackFetchError(str(e), details=e.details, cause=e)
        if result.exit_code != 0:
            step = args[3] if args[1] == "-C" else args[1]
            raise PackFetchError(
                f"git {step} failed: {result.stderr.strip() or result.exit_code}",
                details={"command": " ".join(args), "retryable": True},
            )
        return result

    def resolve_ref(self, registry: str, pack_name: str, ref: str) -> str:
        url = self._url(registry)
        if ref != LATEST_REF:
            return ref
        tags = parse_tags(self._git(["git", "ls-remote", "--tags", url]).stdout)
        tag = latest_tag(tags)
        if tag is not None:
            logger.debug("Resolved %s/%s@latest to tag %s", registry, pack_name, tag)
            return tag
        head = self._git(["git", "ls-remote", url, "HEAD"]).stdout.split()
        if not head:
            raise PackFetchError(
                f"Could not resolve latest ref for registry {registry}",
                details={"registry": registry, "url": url},
            )
        logger.debug("Resolved %s/%s@latest to HEAD %s", registry, pack_name, head[0])
        return head[0]

    def has_pack(self, registry: str, pack_name: str, ref: str) -> bool:
        url = self._url(registry)
        if not _is_sha(ref) and not self._git(["git", "ls-remote", url, ref]).stdout.strip():
            logger.debug("Ref %s not found in registry %s", ref, registry)
            return False
        # tree only, no blobs
        with tempfile.TemporaryDirectory(prefix="packforge-verify-") as tmp:
            checkout = Path(tmp) / "registry"
            self._git(["git", "init", "-q", str(checkout)])
            self._git(
                [
                    "git", "-C", str(checkout), "fetch", "-q", "--depth", "1",
                    "--filter=blob:none", url, ref,
                ]
            )
            listing = self._git(
                [
                    "git", "-C", str(checkout), "ls-tree", "-r", "--name-only", "FETCH_HEAD",
                    "--", f"packs/{pack_name}/pack.yaml", f"{pack_name}/pack.yaml",
                ]
            ).stdout
        return bool(listing.strip())

    def fetch(self, registry: str, pack_name: str, ref: str, dest: Path) -> Path:
        url = self._url(registry)
        with tempfile.TemporaryDirectory(prefix="packforge-clone-") as tmp:
            checkout = Path(tmp) / "registry"
            if _is_sha(ref):
                self._git(["git", "init", "-q", str(checkout)])
                self._git(["git", "-C", str(checkout), "fetch", "-q", "--depth", "1", url, ref])
                self._git(["git", "-C", str(checkout), "checkout", "-q", "FETCH_HEAD"])
            else:
                self._git(
                    ["git", "clone", "-q", "--depth", "1", "--branch", ref, url, str(checkout)]
                )
            source = _pack_dir(checkout, pack_name)
            if source is None:
                raise PackNotFoundError(
                    f"Pack {pack_name} not found in registry {registry} at {ref}",
                    details={"registry": registry, "pack": pack_name, "ref": ref},
                )
            shutil.copytree(source, dest, ignore=shutil.ignore_patterns(".git"))
        logger.debug("Fetched %s/%s@%s into %s", registry, pack_name, ref, dest)
        return dest
