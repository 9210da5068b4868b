from dataclasses import asdict
import json
import logging
import os
from pathlib import Path

import typer

from packforge.application.pack_info import describe_pack, render_info
from packforge.application.reference_resolver import reference_from_options
from packforge.application.resolve_pack import ResolvedPack, build_cache, resolve_pack
from packforge.application.result_serialization import serialize_result, serialize_variables
from packforge.application.settings import add_registry, config_path, read_settings
from packforge.domain.diagnostics import Diagnostics
from packforge.domain.result import Result

app = typer.Typer(add_completion=False)
registry_app = typer.Typer(add_completion=False, help="Inspect and configure registries.")
app.add_typer(registry_app, name="registry")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """Resolve pack variables across a tree of nested packs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _split_pack_files(values: list[str]) -> list[tuple[str, Path]]:
    pairs: list[tuple[str, Path]] = []
    for value in values:
        pack, sep, path = value.partition("=")
        if not sep or not pack or not path:
            raise typer.BadParameter(
                f"expected ALIAS=FILE, got {value!r}", param_hint="--pack-var-file"
            )
        pairs.append((pack, Path(path)))
    return pairs


def _report(result: Result) -> None:
    if result.diagnostics:
        typer.echo(Diagnostics(result.diagnostics).error(), err=True)


def _resolve(
    name: str,
    registry: str | None,
    ref: str | None,
    path: str | None,
    var: list[str] | None,
    var_file: list[Path] | None,
    pack_var_file: list[str] | None,
    ignore_missing_vars: bool,
    strict: bool,
) -> Result[ResolvedPack]:
    settings = read_settings()
    if settings.value is None:
        return Result(diagnostics=settings.diagnostics)
    reference = reference_from_options(name, registry=registry, ref=ref, path=path)
    if reference.value is None:
        return Result(diagnostics=settings.diagnostics + reference.diagnostics)
    result = resolve_pack(
        reference.value,
        settings.value,
        var_files=var_file or [],
        pack_var_files=_split_pack_files(pack_var_file or []),
        environ=dict(os.environ),
        assignments=var or [],
        ignore_missing_vars=ignore_missing_vars,
        strict=True if strict else None,
    )
    result.diagnostics = settings.diagnostics + result.diagnostics
    return result


@app.command()
def info(
    name: str = typer.Argument(...),
    registry: str | None = typer.Option(None, "--registry"),
    ref: str | None = typer.Option(None, "--ref"),
    path: str | None = typer.Option(None, "--path"),
    var: list[str] = typer.Option(None, "--var"),
    var_file: list[Path] = typer.Option(None, "--var-file"),
    pack_var_file: list[str] = typer.Option(None, "--pack-var-file"),
    ignore_missing_vars: bool = typer.Option(False, "--ignore-missing-vars"),
    strict: bool = typer.Option(False, "--strict", help="Treat unknown variables as errors."),
    json_output: bool = typer.Option(False, "--json"),
):
    """Show a pack's metadata and variables."""
    result = _resolve(
        name, registry, ref, path, var, var_file, pack_var_file, ignore_missing_vars, strict
    )
    infos = describe_pack(result.value.pack, result.value.variables) if result.value else []
    if json_output:
        result.artifacts = [asdict(i) for i in infos]
        typer.echo(json.dumps(serialize_result(result, command="info", args=[name])))
        raise typer.Exit(result.exit_code)
    _report(result)
    if result.exit_code == 0:
        typer.echo(render_info(infos))
    raise typer.Exit(result.exit_code)


@app.command("vars")
def vars_(
    name: str = typer.Argument(...),
    registry: str | None = typer.Option(None, "--registry"),
    ref: str | None = typer.Option(None, "--ref"),
    path: str | None = typer.Option(None, "--path"),
    var: list[str] = typer.Option(None, "--var"),
    var_file: list[Path] = typer.Option(None, "--var-file"),
    pack_var_file: list[str] = typer.Option(None, "--pack-var-file"),
    ignore_missing_vars: bool = typer.Option(False, "--ignore-missing-vars"),
    strict: bool = typer.Option(False, "--strict", help="Treat unknown variables as errors."),
):
    """Print the resolved variables of a pack tree as JSON."""
    result = _resolve(
        name, registry, ref, path, var, var_file, pack_var_file, ignore_missing_vars, strict
    )
    _report(result)
    if result.value is not None and result.exit_code == 0:
        typer.echo(json.dumps(serialize_variables(result.value.variables), indent=2))
    raise typer.Exit(result.exit_code)


@registry_app.command("list")
def registry_list():
    """List packs present in the local cache."""
    settings = read_settings()
    if settings.value is None:
        _report(settings)
        raise typer.Exit(settings.exit_code)
    cache = build_cache(settings.value)
    packs = cache.list()
    if not packs:
        typer.echo("no packs found")
        return
    typer.echo(f"{'Pack Name':<30} Registry Name")
    for registry, pack_name in packs:
        typer.echo(f"{pack_name:<30} {registry}")


@registry_app.command("add")
def registry_add(name: str, url: str):
    """Register a git repository of packs under NAME."""
    result = add_registry(config_path(), name, url)
    _report(result)
    raise typer.Exit(result.exit_code)
