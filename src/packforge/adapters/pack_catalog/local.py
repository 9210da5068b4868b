from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import yaml

from packforge.adapters.errors import PackNotFoundError, PackParseError, PackReadError
from packforge.domain.types import JsonDict, as_json_dict

MANIFEST_FILE = "pack.yaml"
VARIABLES_FILE = "variables.yaml"
TEMPLATES_DIR = "templates"

SCHEMA_DIR = Path(__file__).resolve().parents[2] / "schemas"


def schema_path(name: str) -> Path:
    return SCHEMA_DIR / f"{name}.schema.v1.json"


def _load_schema(name: str) -> JsonDict:
    return as_json_dict(json.loads(schema_path(name).read_text(encoding="utf-8")))


def _read_yaml(path: Path) -> JsonDict:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PackReadError(f"Could not read {path.name}", details={"file": str(path)}, cause=e)
    try:
        raw: object = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        details: JsonDict = {"file": str(path)}
        if mark is not None:
            details["line"] = mark.line + 1
            details["col"] = mark.column + 1
        raise PackParseError(f"Invalid YAML in {path.name}: {e}", details=details, cause=e)
    if not isinstance(raw, dict):
        raise PackParseError(
            f"{path.name} must contain a mapping", details={"file": str(path)}
        )
    return as_json_dict(raw)


def _validate(document: JsonDict, schema_name: str, path: Path) -> None:
    try:
        jsonschema.validate(document, _load_schema(schema_name))
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise PackParseError(
            f"{path.name} does not match the {schema_name} schema at {location}: {e.message}",
            details={"file": str(path), "schema": schema_name, "at": location},
            cause=e,
            code="PACK_SCHEMA_INVALID",
        )


class LocalPackCatalog:
    def has_pack(self, pack_dir: Path) -> bool:
        return pack_dir.is_dir() and (pack_dir / MANIFEST_FILE).is_file()

    def load_manifest(self, pack_dir: Path) -> JsonDict:
        path = pack_dir / MANIFEST_FILE
        if not path.is_file():
            raise PackNotFoundError(
                f"{MANIFEST_FILE} not found in {pack_dir}", details={"path": str(pack_dir)}
            )
        manifest = _read_yaml(path)
        _validate(manifest, "pack", path)
        return manifest

    def load_variables(self, pack_dir: Path) -> JsonDict:
        path = pack_dir / VARIABLES_FILE
        if not path.is_file():
            return {}
        variables = _read_yaml(path)
        _validate(variables, "variables", path)
        return variables

    def template_files(self, pack_dir: Path) -> list[Path]:
        templates = pack_dir / TEMPLATES_DIR
        if not templates.is_dir():
            return []
        return sorted(p for p in templates.rglob("*") if p.is_file())
