from __future__ import annotations

import re

from packforge.domain.diagnostics import Diagnostic, Severity, ValueLocation

PACK_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
ALIAS_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
REGISTRY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")
VARIABLE_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_pack_name(name: str) -> list[Diagnostic]:
    if PACK_NAME_PATTERN.match(name):
        return []
    return [
        Diagnostic(
            code="PACK_NAME_INVALID",
            rule="naming.pack.name",
            severity=Severity.ERROR,
            message=f"Invalid pack name: {name}",
            location=ValueLocation("pack.name", name),
        )
    ]


def validate_alias(alias: str) -> list[Diagnostic]:
    # Aliases become segments of dotted variable paths.
    if ALIAS_PATTERN.match(alias):
        return []
    return [
        Diagnostic(
            code="PACK_ALIAS_INVALID",
            rule="naming.pack.alias",
            severity=Severity.ERROR,
            message=f"Invalid pack alias: {alias}",
            location=ValueLocation("dependency.alias", alias),
        )
    ]


def validate_registry_name(name: str) -> list[Diagnostic]:
    if REGISTRY_PATTERN.match(name):
        return []
    return [
        Diagnostic(
            code="REGISTRY_NAME_INVALID",
            rule="naming.registry.format",
            severity=Severity.ERROR,
            message=f"Invalid registry name: {name}",
            location=ValueLocation("registry", name),
        )
    ]


def validate_variable_name(name: str) -> list[Diagnostic]:
    if VARIABLE_PATTERN.match(name):
        return []
    return [
        Diagnostic(
            code="VAR_NAME_INVALID",
            rule="naming.variable.format",
            severity=Severity.ERROR,
            message=f"Invalid variable name: {name}",
            location=ValueLocation("variable", name),
        )
    ]
