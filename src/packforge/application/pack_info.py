from __future__ import annotations

from dataclasses import dataclass

from packforge.domain.pack import Pack, VariableSpec
from packforge.domain.types import JsonValue
from packforge.domain.variables import ResolvedVariableSet


@dataclass(frozen=True)
class VariableRow:
    name: str
    type_name: str
    required: bool
    description: str
    value: JsonValue = None


@dataclass(frozen=True)
class PackInfo:
    path: str
    name: str
    description: str
    url: str
    variables: list[VariableRow]


def friendly_type(spec: VariableSpec) -> str:
    effective = spec.effective_type
    return effective.friendly_name if effective is not None else "unknown"


def describe_pack(root: Pack, resolved: ResolvedVariableSet | None = None) -> list[PackInfo]:
    infos: list[PackInfo] = []
    for pack in root.walk():
        rows: list[VariableRow] = []
        for spec in pack.variable_specs:
            variable = resolved.get(pack.path_name, spec.name) if resolved else None
            rows.append(
                VariableRow(
                    name=spec.name,
                    type_name=friendly_type(spec),
                    required=spec.required,
                    description=spec.description,
                    value=variable.value if variable is not None else None,
                )
            )
        rows.sort(key=lambda row: not row.required)
        infos.append(
            PackInfo(
                path=pack.path_name,
                name=pack.metadata.name,
                description=pack.metadata.description,
                url=pack.metadata.url,
                variables=rows,
            )
        )
    return infos


def render_info(infos: list[PackInfo]) -> str:
    lines: list[str] = []
    for info in infos:
        lines.append(f"Pack Name          {info.name}")
        lines.append(f"Description        {info.description}")
        lines.append(f"Application URL    {info.url}")
        lines.append(f'Pack "{info.path}" Variables:')
        for row in info.variables:
            status = "required" if row.required else "optional"
            lines.append(f'\t- "{row.name}" ({row.type_name}: {status}) - {row.description}')
        lines.append("")
    return "\n".join(lines)
