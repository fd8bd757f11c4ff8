"""Settings for the ledger pipeline, loadable from YAML/JSON sources."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

__all__ = [
    "DEFAULT_MARKER",
    "HierarchySettings",
    "LayoutSettings",
    "ParserSettings",
    "Settings",
    "load_settings",
]

DEFAULT_MARKER = "[Creditors / Suppliers]"


@dataclass(frozen=True)
class ParserSettings:
    """Format constants of the ledger export."""

    marker: str = DEFAULT_MARKER
    header_rows: int = 2
    root_name: str = "Creditors"

    def __post_init__(self):
        if not isinstance(self.marker, str) or not self.marker.strip():
            raise ConfigError("parser.marker must be a non-empty string")
        if isinstance(self.header_rows, bool) or not isinstance(self.header_rows, int):
            raise ConfigError("parser.header_rows must be an integer")
        if self.header_rows < 0:
            raise ConfigError("parser.header_rows must be >= 0")


@dataclass(frozen=True)
class HierarchySettings:
    """Fan-out control for grouping hierarchies."""

    fan_out: int | None = 3
    overflow_label: str = "…"

    def __post_init__(self):
        if self.fan_out is not None:
            if isinstance(self.fan_out, bool) or not isinstance(self.fan_out, int):
                raise ConfigError("hierarchy.fan_out must be an integer or null")
            if self.fan_out < 1:
                raise ConfigError("hierarchy.fan_out must be >= 1")
        if not isinstance(self.overflow_label, str) or not self.overflow_label:
            raise ConfigError("hierarchy.overflow_label must be a non-empty string")


@dataclass(frozen=True)
class LayoutSettings:
    """Canvas size and spacing constants for the layout engines."""

    width: float = 800.0
    height: float = 600.0
    pack_padding: float = 5.0
    treemap_padding: float = 3.0
    tree_level_spacing: float = 180.0
    sunburst_radius: float | None = None
    sunburst_inner_offset: float = 20.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None and f.name == "sunburst_radius":
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"layout.{f.name} must be a number")
            if value < 0:
                raise ConfigError(f"layout.{f.name} must be >= 0")
        if self.width <= 0 or self.height <= 0:
            raise ConfigError("layout.width and layout.height must be positive")

    @property
    def radius(self) -> float:
        """Sunburst outer radius, defaulting to half the shorter canvas side."""
        if self.sunburst_radius is not None:
            return float(self.sunburst_radius)
        return min(self.width, self.height) / 2


@dataclass(frozen=True)
class Settings:
    """All pipeline settings."""

    parser: ParserSettings = field(default_factory=ParserSettings)
    hierarchy: HierarchySettings = field(default_factory=HierarchySettings)
    layout: LayoutSettings = field(default_factory=LayoutSettings)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for section in _SECTIONS:
            values = getattr(self, section)
            out[section] = {f.name: getattr(values, f.name) for f in fields(values)}
        return out


_SECTIONS = {
    "parser": ParserSettings,
    "hierarchy": HierarchySettings,
    "layout": LayoutSettings,
}


def load_settings(
    source: str | Path | dict[str, Any] | None = None, *, format: str | None = None
) -> Settings:
    """
    Load settings from a YAML/JSON file or a mapping.

    Every section is optional; missing keys keep their defaults. Unknown
    sections or keys raise :class:`ConfigError` so typos do not go unnoticed.

    Args:
        source: Path to a ``.yaml``/``.yml``/``.json`` file, a mapping, or None
        format: Force the file format instead of inferring it from the suffix

    Returns:
        A validated :class:`Settings` instance
    """
    if source is None:
        return Settings()
    mapping, label = _read_source(source, format=format)

    unknown = sorted(set(mapping) - set(_SECTIONS))
    if unknown:
        raise ConfigError(f"{label}: unknown settings sections: {', '.join(unknown)}")

    settings = Settings()
    for section, cls in _SECTIONS.items():
        raw = mapping.get(section)
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ConfigError(f"{label}::{section}: expected a mapping")
        allowed = {f.name for f in fields(cls)}
        bad = sorted(set(raw) - allowed)
        if bad:
            raise ConfigError(f"{label}::{section}: unknown keys: {', '.join(bad)}")
        settings = replace(settings, **{section: cls(**raw)})
    return settings


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    if fmt in {"yaml", "yml", ""}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path}: invalid YAML ({exc})") from exc
    elif fmt == "json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{path}: invalid JSON ({exc})") from exc
    else:
        raise ConfigError(f"Unsupported settings format '{fmt}' for {path}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings root must be a mapping (source={path})")
    return data, str(path)
