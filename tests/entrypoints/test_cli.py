import json

import pytest
from typer.testing import CliRunner

from packforge.entrypoints.cli import app


@pytest.fixture
def env(tmp_path):
    return {
        "PACKFORGE_CONFIG": str(tmp_path / "config" / "config.toml"),
        "PACKFORGE_CACHE_DIR": str(tmp_path / "cache"),
    }


@pytest.fixture
def hello(make_pack):
    make_pack("helper", variables=[{"name": "size", "type": "number", "default": 1}])
    return make_pack(
        "hello",
        variables=[
            {"name": "greeting", "type": "string", "default": "hi", "description": "what to say"},
            {"name": "image", "type": "string", "description": "docker image"},
        ],
        dependencies=[{"name": "helper", "alias": "h", "path": "../helper"}],
        description="says hello",
    )


def test_info_prints_pack_and_variables(env, hello):
    runner = CliRunner()
    result = runner.invoke(
        app, ["info", "hello", "--path", str(hello), "--var", "image=nginx"], env=env
    )
    assert result.exit_code == 0
    assert "Pack Name          hello" in result.output
    assert '\t- "image" (string: required) - docker image' in result.output
    assert 'Pack "hello.h" Variables:' in result.output


def test_info_reports_missing_required(env, hello):
    result = CliRunner().invoke(app, ["info", "hello", "--path", str(hello)], env=env)
    assert result.exit_code == 2
    assert "VAR_MISSING_REQUIRED" in result.output


def test_info_ignore_missing_vars(env, hello):
    result = CliRunner().invoke(
        app, ["info", "hello", "--path", str(hello), "--ignore-missing-vars"], env=env
    )
    assert result.exit_code == 0


def test_info_json(env, hello):
    result = CliRunner().invoke(
        app,
        ["info", "hello", "--path", str(hello), "--var", "image=nginx", "--json"],
        env=env,
    )
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["command"] == "info"
    assert [a["path"] for a in payload["artifacts"]] == ["hello", "hello.h"]


def test_strict_turns_unknown_variables_into_errors(env, hello):
    args = ["info", "hello", "--path", str(hello), "--var", "image=x", "--var", "ghost=1"]
    assert CliRunner().invoke(app, args, env=env).exit_code == 0
    result = CliRunner().invoke(app, [*args, "--strict"], env=env)
    assert result.exit_code == 2
    assert "VAR_UNKNOWN" in result.output


def test_vars_prints_resolved_json(env, hello, tmp_path):
    overrides = tmp_path / "h.yaml"
    overrides.write_text("size: 3\n", encoding="utf-8")
    result = CliRunner().invoke(
        app,
        [
            "vars",
            "hello",
            "--path",
            str(hello),
            "--var",
            "image=nginx",
            "--pack-var-file",
            f"h={overrides}",
        ],
        env={**env, "PACKFORGE_VAR_greeting": "hey"},
    )
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["hello"]["greeting"] == {"value": "hey", "type": "string", "source": "env"}
    assert payload["hello.h"]["size"]["value"] == 3
    assert payload["hello.h"]["size"]["source"] == "pack-file"


def test_bad_pack_var_file_is_a_usage_error(env, hello):
    result = CliRunner().invoke(
        app, ["vars", "hello", "--path", str(hello), "--pack-var-file", "nofile"], env=env
    )
    assert result.exit_code == 2


def test_path_with_ref_is_rejected(env, hello):
    result = CliRunner().invoke(
        app, ["info", "hello", "--path", str(hello), "--ref", "v1"], env=env
    )
    assert result.exit_code == 2
    assert "PACK_REFERENCE_INVALID" in result.output


def test_registry_add_and_list(env, tmp_path):
    runner = CliRunner()
    assert runner.invoke(app, ["registry", "list"], env=env).output.strip() == "no packs found"

    added = runner.invoke(
        app, ["registry", "add", "community", "https://example.com/packs.git"], env=env
    )
    assert added.exit_code == 0
    assert "community" in (tmp_path / "config" / "config.toml").read_text(encoding="utf-8")

    (tmp_path / "cache" / "community" / "redis" / "v1.0.0").mkdir(parents=True)
    listed = runner.invoke(app, ["registry", "list"], env=env)
    assert listed.exit_code == 0
    assert "Pack Name" in listed.output
    assert "redis" in listed.output
    assert "community" in listed.output


def test_registry_add_rejects_bad_name(env):
    result = CliRunner().invoke(app, ["registry", "add", "Bad Name", "x"], env=env)
    assert result.exit_code == 2
    assert "REGISTRY_NAME_INVALID" in result.output
