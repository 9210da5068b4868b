from pathlib import Path

import pytest

from packforge.adapters.errors import (
    CommandTimeout,
    PackFetchError,
    PackNotFoundError,
    UnknownRegistryError,
)
from packforge.adapters.registry.git import GitRegistry, latest_tag, parse_tags
from packforge.ports.command_runner import CommandResult

SHA = "a" * 40
LS_REMOTE_TAGS = (
    f"{SHA}\trefs/tags/v0.9.0\n"
    f"{SHA}\trefs/tags/v0.10.0\n"
    f"{SHA}\trefs/tags/v0.10.0^{{}}\n"
    f"{SHA}\trefs/heads/main\n"
)


class FakeRunner:
    def __init__(self, responses=None, layout=None, error=None):
        self.responses = responses or {}
        self.layout = layout
        self.error = error
        self.calls: list[list[str]] = []

    def run(self, args, cwd=None, timeout=None):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        if args[1] == "clone" and self.layout is not None:
            checkout = Path(args[-1])
            pack = checkout / self.layout
            pack.mkdir(parents=True)
            (pack / "pack.yaml").write_text("pack:\n  name: hello\n", encoding="utf-8")
        for tokens, result in self.responses.items():
            if all(token in args for token in tokens):
                return result
        return CommandResult(exit_code=0, stdout="", stderr="")


def _registry(runner):
    return GitRegistry({"default": "https://example.com/packs.git"}, runner)


def test_parse_tags_skips_peeled_and_branches():
    assert parse_tags(LS_REMOTE_TAGS) == ["v0.9.0", "v0.10.0"]


def test_latest_tag_compares_numerically():
    assert latest_tag(["v0.9.0", "v0.10.0", "v0.2.1"]) == "v0.10.0"
    assert latest_tag([]) is None


def test_resolve_latest_uses_highest_tag():
    runner = FakeRunner(
        {("git", "ls-remote", "--tags"): CommandResult(0, LS_REMOTE_TAGS, "")}
    )
    assert _registry(runner).resolve_ref("default", "hello", "latest") == "v0.10.0"


def test_resolve_latest_falls_back_to_head():
    runner = FakeRunner(
        {
            ("git", "ls-remote", "--tags"): CommandResult(0, "", ""),
            ("git", "ls-remote"): CommandResult(0, f"{SHA}\tHEAD\n", ""),
        }
    )
    assert _registry(runner).resolve_ref("default", "hello", "latest") == SHA


def test_explicit_ref_is_not_looked_up():
    runner = FakeRunner()
    assert _registry(runner).resolve_ref("default", "hello", "v1.2.0") == "v1.2.0"
    assert runner.calls == []


def test_unknown_registry():
    with pytest.raises(UnknownRegistryError):
        _registry(FakeRunner()).resolve_ref("other", "hello", "latest")


def test_git_failure_is_a_fetch_error():
    runner = FakeRunner({("git", "ls-remote"): CommandResult(128, "", "fatal: nope")})
    with pytest.raises(PackFetchError) as exc:
        _registry(runner).resolve_ref("default", "hello", "latest")
    assert "fatal: nope" in str(exc.value)


def test_timeout_is_a_retryable_fetch_error():
    runner = FakeRunner(error=CommandTimeout("git timed out"))
    with pytest.raises(PackFetchError) as exc:
        _registry(runner).resolve_ref("default", "hello", "latest")
    assert exc.value.details["retryable"] is True


@pytest.mark.parametrize("layout", ["packs/hello", "hello"])
def test_fetch_copies_pack_directory(tmp_path, layout):
    runner = FakeRunner(layout=layout)
    dest = tmp_path / "out"
    assert _registry(runner).fetch("default", "hello", "v1.0.0", dest) == dest
    assert (dest / "pack.yaml").is_file()
    assert runner.calls[0][:2] == ["git", "clone"]
    assert "--branch" in runner.calls[0]


def test_fetch_by_sha_uses_fetch_head(tmp_path):
    runner = FakeRunner()
    with pytest.raises(PackNotFoundError):
        _registry(runner).fetch("default", "hello", SHA, tmp_path / "out")
    assert [c[1] for c in runner.calls] == ["init", "-C", "-C"]
    assert runner.calls[1][3:] == ["fetch", "-q", "--depth", "1", "https://example.com/packs.git", SHA]
    assert not (tmp_path / "out").exists()


def test_has_pack_unknown_ref_stops_at_ls_remote():
    runner = FakeRunner({("git", "ls-remote"): CommandResult(0, "", "")})
    assert not _registry(runner).has_pack("default", "does_not_exist", "v9.9.9")
    assert runner.calls == [["git", "ls-remote", "https://example.com/packs.git", "v9.9.9"]]


def test_has_pack_lists_tree_without_blobs():
    runner = FakeRunner(
        {
            ("git", "ls-remote"): CommandResult(0, f"{SHA}\trefs/tags/v1.0.0\n", ""),
            ("ls-tree",): CommandResult(0, "packs/hello/pack.yaml\n", ""),
        }
    )
    assert _registry(runner).has_pack("default", "hello", "v1.0.0")
    fetch = next(c for c in runner.calls if "fetch" in c)
    assert "--filter=blob:none" in fetch
    assert not any("clone" in c for c in runner.calls)


def test_has_pack_missing_directory():
    runner = FakeRunner(
        {("git", "ls-remote"): CommandResult(0, f"{SHA}\trefs/tags/v1.0.0\n", "")}
    )
    assert not _registry(runner).has_pack("default", "nope", "v1.0.0")


def test_has_pack_with_broken_remote_raises():
    runner = FakeRunner({("git",): CommandResult(128, "", "fatal: repository not found")})
    with pytest.raises(PackFetchError):
        _registry(runner).has_pack("default", "hello", "v1.0.0")
