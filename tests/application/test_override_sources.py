from pathlib import Path

from packforge.application.override_sources import (
    collect_sources,
    env_sources,
    file_sources,
    pack_prefixes,
    split_assignments,
)
from packforge.domain.pack import CacheEntry, Pack, PackMetadata
from packforge.domain.variables import SourceKind, VariablePath


def _tree() -> Pack:
    entry = CacheEntry("<local>", "x", "x", Path("."), cached=False)
    child = Pack(PackMetadata("child"), entry, "child", ("app", "child"))
    return Pack(PackMetadata("app"), entry, "app", ("app",), children={"child": child})


def test_pack_prefixes_include_relative_paths():
    assert pack_prefixes(_tree()) == {("app",), ("app", "child"), ("child",)}


def test_file_sources_flatten_pack_sections(tmp_path):
    path = tmp_path / "overrides.yaml"
    path.write_text(
        "region: eu\n"
        "child:\n"
        "  count: 3\n"
        "app.child.name: web\n"
        "labels:\n"
        "  team: infra\n",
        encoding="utf-8",
    )
    result = file_sources(path, pack_prefixes(_tree()))
    assert result.diagnostics == []
    targets = {str(s.target): s.value for s in result.value}
    assert targets == {
        "region": "eu",
        "child.count": 3,
        "app.child.name": "web",
        "labels": {"team": "infra"},
    }
    assert {s.kind for s in result.value} == {SourceKind.SHARED_FILE}
    assert not any(s.literal for s in result.value)


def test_pack_bound_file_qualifies_everything(tmp_path):
    path = tmp_path / "child.yaml"
    path.write_text("count: 3\n", encoding="utf-8")
    result = file_sources(path, pack_prefixes(_tree()), pack="child")
    (source,) = result.value
    assert source.kind == SourceKind.PACK_FILE
    assert source.target == VariablePath(packs=("child",), name="count")


def test_bad_files_are_diagnosed(tmp_path):
    prefixes = pack_prefixes(_tree())
    missing = file_sources(tmp_path / "nope.yaml", prefixes)
    assert missing.value is None
    assert missing.diagnostics[0].code == "OVERRIDE_FILE_INVALID"

    listy = tmp_path / "list.yaml"
    listy.write_text("- a\n", encoding="utf-8")
    assert file_sources(listy, prefixes).diagnostics[0].code == "OVERRIDE_FILE_INVALID"

    broken = tmp_path / "broken.yaml"
    broken.write_text("a: [\n", encoding="utf-8")
    assert file_sources(broken, prefixes).diagnostics[0].code == "OVERRIDE_FILE_INVALID"


def test_env_sources_are_literal_and_sorted():
    sources = env_sources(
        {
            "PACKFORGE_VAR_child.count": "4",
            "PACKFORGE_VAR_region": "us",
            "PACKFORGE_VAR_": "ignored",
            "HOME": "/root",
        }
    )
    assert [str(s.target) for s in sources] == ["child.count", "region"]
    assert all(s.literal and s.kind == SourceKind.ENV for s in sources)


def test_split_assignments():
    result = split_assignments(["a=1", "child.b = x=y", "novalue", "=3"])
    assert result.value == [("a", "1"), ("child.b", " x=y")]
    assert [d.code for d in result.diagnostics] == ["OVERRIDE_ASSIGNMENT_INVALID"] * 2


def test_collect_sources_keeps_supply_order(tmp_path):
    shared = tmp_path / "shared.yaml"
    shared.write_text("region: eu\n", encoding="utf-8")
    bound = tmp_path / "child.yaml"
    bound.write_text("count: 2\n", encoding="utf-8")
    result = collect_sources(
        _tree(),
        var_files=[shared],
        pack_var_files=[("child", bound)],
        environ={"PACKFORGE_VAR_region": "us"},
        assignments=["region=ap"],
    )
    assert [s.kind for s in result.value] == [
        SourceKind.SHARED_FILE,
        SourceKind.PACK_FILE,
        SourceKind.ENV,
        SourceKind.CLI,
    ]
