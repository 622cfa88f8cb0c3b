"""Configuration loading utilities for treesheet."""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

PDF_ENGINES = ("reportlab", "libreoffice")

AGGREGATIONS: Dict[str, Tuple[Callable[[Any, Any], Any], Any]] = {
    "sum": (operator.add, 0),
    "difference": (operator.sub, 0),
    "product": (operator.mul, 1),
    "max": (max, float("-inf")),
    "min": (min, float("inf")),
}


@dataclass
class RenderConfig:
    """Settings for turning a tree into table rows.

    ``aggregation`` is the binary function used for every total and combined
    header, with ``identity`` standing in for keys a leaf does not carry.
    """

    min_leaf_depth: int = 2
    indent_width: int = 2
    aggregation: Callable[[Any, Any], Any] = operator.add
    identity: Any = 0
    sum_totals: bool = True

    def __post_init__(self) -> None:
        if int(self.min_leaf_depth) < 0:
            raise ValueError("min_leaf_depth must be zero or greater")
        if int(self.indent_width) < 0:
            raise ValueError("indent_width must be zero or greater")


@dataclass
class ColumnConfig:
    """Preferred ordering of the displayed value columns."""

    first: List[Any] = field(default_factory=list)
    last: List[Any] = field(default_factory=list)
    empty: str = "-"


@dataclass
class OutputConfig:
    """Where and how generated documents are written."""

    workbook: Optional[Path] = None
    template: Optional[Path] = None
    pdf: Optional[Path] = None
    csv: Optional[Path] = None
    sheet_name: str = "Report"
    policy: str = "default"
    pdf_engine: str = "reportlab"

    def resolved(self, base_path: Path) -> "OutputConfig":
        return OutputConfig(
            workbook=_resolve_optional(self.workbook, base_path),
            template=_resolve_optional(self.template, base_path),
            pdf=_resolve_optional(self.pdf, base_path),
            csv=_resolve_optional(self.csv, base_path),
            sheet_name=self.sheet_name,
            policy=self.policy,
            pdf_engine=self.pdf_engine,
        )


@dataclass
class AppConfig:
    """Container for all configuration used by the CLI."""

    input: Optional[Path] = None
    title: Optional[str] = None
    group_by: List[str] = field(default_factory=list)
    value_columns: List[str] = field(default_factory=list)
    render: RenderConfig = field(default_factory=RenderConfig)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def resolved(self, base_path: Path) -> "AppConfig":
        return AppConfig(
            input=_resolve_optional(self.input, base_path),
            title=self.title,
            group_by=list(self.group_by),
            value_columns=list(self.value_columns),
            render=self.render,
            columns=self.columns,
            output=self.output.resolved(base_path),
        )


def resolve_aggregation(name: str) -> Tuple[Callable[[Any, Any], Any], Any]:
    """Look up a named aggregation and its identity value."""

    try:
        return AGGREGATIONS[str(name).strip().lower()]
    except KeyError:
        known = ", ".join(sorted(AGGREGATIONS))
        raise ValueError(f"Unknown aggregation '{name}' (expected one of: {known})") from None


def load_config(path: Path) -> AppConfig:
    """Load :class:`AppConfig` from a YAML file."""

    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{config_path}' does not exist")

    with config_path.open("r", encoding="utf-8") as stream:
        raw_config: Mapping[str, Any] = yaml.safe_load(stream) or {}

    if not isinstance(raw_config, Mapping):
        raise ValueError("Configuration must be a mapping")

    config = parse_config(raw_config)
    return config.resolved(config_path.parent)


def parse_config(raw_config: Mapping[str, Any]) -> AppConfig:
    """Build :class:`AppConfig` from an already parsed mapping."""

    input_section = raw_config.get("input", {}) or {}
    if isinstance(input_section, (str, Path)):
        input_section = {"path": input_section}

    return AppConfig(
        input=_optional_path(input_section.get("path")),
        title=input_section.get("title"),
        group_by=_string_list(input_section.get("group_by")),
        value_columns=_string_list(input_section.get("value_columns")),
        render=_parse_render_section(raw_config.get("render", {}) or {}),
        columns=ColumnConfig(**(raw_config.get("columns", {}) or {})),
        output=_parse_output_section(raw_config.get("output", {}) or {}),
    )


def _parse_render_section(section: Mapping[str, Any]) -> RenderConfig:
    parsed: Dict[str, Any] = {}
    for key in ("min_leaf_depth", "indent_width"):
        if key in section:
            parsed[key] = int(section[key])
    if "sum_totals" in section:
        parsed["sum_totals"] = bool(section["sum_totals"])
    if "aggregation" in section:
        aggregation, identity = resolve_aggregation(section["aggregation"])
        parsed["aggregation"] = aggregation
        parsed["identity"] = identity
    return RenderConfig(**parsed)


def _parse_output_section(section: Mapping[str, Any]) -> OutputConfig:
    parsed: Dict[str, Any] = {}
    for key in ("workbook", "template", "pdf", "csv"):
        if key in section:
            parsed[key] = _optional_path(section[key])
    for key in ("sheet_name", "policy", "pdf_engine"):
        if key in section:
            parsed[key] = str(section[key])
    if parsed.get("pdf_engine", "reportlab") not in PDF_ENGINES:
        raise ValueError(
            f"Unknown pdf_engine '{parsed['pdf_engine']}' (expected one of: {', '.join(PDF_ENGINES)})"
        )
    return OutputConfig(**parsed)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item) for item in value]


def _optional_path(value: Any) -> Optional[Path]:
    if value is None or value == "":
        return None
    return Path(value)


def _resolve_optional(path: Optional[Path], base_path: Path) -> Optional[Path]:
    if path is None:
        return None
    expanded = Path(path).expanduser()
    if expanded.is_absolute():
        return expanded
    return (base_path / expanded).resolve()


__all__ = [
    "AGGREGATIONS",
    "AppConfig",
    "ColumnConfig",
    "OutputConfig",
    "PDF_ENGINES",
    "RenderConfig",
    "load_config",
    "parse_config",
    "resolve_aggregation",
]
