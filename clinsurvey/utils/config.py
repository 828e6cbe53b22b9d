"""
Configuration Loading

Reads the report YAML (configs/report.yaml) into typed dataclasses.
Every field has a default, so an empty file is a valid configuration.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..analysis.discovery.correlation import CorrelationConfig


@dataclass
class DataConfig:
    """Dataset location, coding and display labels."""

    path: str = "data/raw/survey.xlsx"
    sheet: Union[str, int] = 0
    id_column: Optional[str] = None
    na_values: List[str] = field(default_factory=list)
    value_codes: Dict[str, Dict] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)
    categorical: List[str] = field(default_factory=list)


@dataclass
class DescriptiveConfig:
    """Table 1 settings."""

    variables: List[str] = field(default_factory=list)
    by: Optional[str] = None
    statistic: str = "mean_sd"
    digits: int = 1
    add_p: bool = True


@dataclass
class PlotConfig:
    """Static and interactive plot settings."""

    dpi: int = 300
    cell_size: float = 0.6
    font_size: int = 9
    cmap: str = "RdBu_r"
    self_contained: bool = True
    scatter: List[Dict[str, Any]] = field(default_factory=list)
    bubble: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class OutputConfig:
    """Where results are written."""

    results_dir: str = "results"

    @property
    def tables_dir(self) -> Path:
        return Path(self.results_dir) / "tables"

    @property
    def figures_dir(self) -> Path:
        return Path(self.results_dir) / "figures"

    @property
    def widgets_dir(self) -> Path:
        return Path(self.results_dir) / "widgets"


@dataclass
class SiteConfig:
    """Static site publishing settings."""

    site_dir: str = "docs"
    title: str = "Survey Results"
    base_url: Optional[str] = None
    intro: Optional[str] = None
    self_contained_widgets: bool = True


@dataclass
class ReportConfig:
    """Full report configuration."""

    data: DataConfig = field(default_factory=DataConfig)
    descriptive: DescriptiveConfig = field(default_factory=DescriptiveConfig)
    correlation_variables: List[str] = field(default_factory=list)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    plots: PlotConfig = field(default_factory=PlotConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    site: SiteConfig = field(default_factory=SiteConfig)


_SECTIONS = {
    "data": DataConfig,
    "descriptive": DescriptiveConfig,
    "correlation": CorrelationConfig,
    "plots": PlotConfig,
    "output": OutputConfig,
    "site": SiteConfig,
}


def _build_section(cls, values: Optional[Dict], name: str):
    values = values or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(values).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {sorted(unknown)}")
    return cls(**values)


def load_config(config_path: Union[str, Path] = "configs/report.yaml") -> ReportConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file

    Returns:
        ReportConfig with defaults for anything the file leaves out
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    unknown = set(raw) - set(_SECTIONS) - {"correlation_variables"}
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    sections = {name: _build_section(cls, raw.get(name), name) for name, cls in _SECTIONS.items()}
    return ReportConfig(
        correlation_variables=list(raw.get("correlation_variables") or []),
        **sections,
    )
