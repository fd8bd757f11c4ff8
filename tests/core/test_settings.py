"""
Tests for settings validation and YAML/JSON loading.
"""

from __future__ import annotations

import json

import pytest
import yaml
from ledgerscope.core.errors import ConfigError
from ledgerscope.core.settings import (
    DEFAULT_MARKER,
    HierarchySettings,
    LayoutSettings,
    ParserSettings,
    Settings,
    load_settings,
)


def test_defaults():
    settings = load_settings()

    assert settings == Settings()
    assert settings.parser.marker == DEFAULT_MARKER
    assert settings.parser.header_rows == 2
    assert settings.hierarchy.fan_out == 3
    assert settings.layout.tree_level_spacing == 180
    assert settings.layout.radius == 300


def test_load_from_mapping_keeps_missing_defaults():
    settings = load_settings({"layout": {"width": 1000, "sunburst_radius": 250}})

    assert settings.layout.width == 1000
    assert settings.layout.height == 600
    assert settings.layout.radius == 250
    assert settings.parser == ParserSettings()


def test_load_from_yaml(tmp_path):
    path = tmp_path / "ledgers.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "parser": {"marker": "[Debtors]", "root_name": "Debtors"},
                "hierarchy": {"fan_out": 5, "overflow_label": "others"},
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.parser.marker == "[Debtors]"
    assert settings.parser.root_name == "Debtors"
    assert settings.hierarchy == HierarchySettings(fan_out=5, overflow_label="others")


def test_load_from_json(tmp_path):
    path = tmp_path / "ledgers.json"
    path.write_text(json.dumps({"layout": {"pack_padding": 2}}), encoding="utf-8")

    assert load_settings(path).layout.pack_padding == 2


def test_forced_format(tmp_path):
    path = tmp_path / "ledgers.cfg"
    path.write_text(json.dumps({"parser": {"header_rows": 1}}), encoding="utf-8")

    assert load_settings(path, format="json").parser.header_rows == 1
    with pytest.raises(ConfigError, match="Unsupported"):
        load_settings(path)


def test_empty_yaml_is_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path) == Settings()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "mapping,message",
    [
        ({"render": {}}, "unknown settings sections"),
        ({"layout": {"widht": 3}}, "unknown keys: widht"),
        ({"layout": []}, "expected a mapping"),
        ({"hierarchy": {"fan_out": 0}}, "fan_out"),
        ({"parser": {"header_rows": -1}}, "header_rows"),
        ({"parser": {"marker": " "}}, "marker"),
        ({"layout": {"width": 0}}, "positive"),
        ({"layout": {"pack_padding": -1}}, "pack_padding"),
        ({"layout": {"height": "tall"}}, "must be a number"),
    ],
)
def test_invalid_settings(mapping, message):
    with pytest.raises(ConfigError, match=message):
        load_settings(mapping)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("parser: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigError, match="invalid YAML"):
        load_settings(path)


def test_non_mapping_root(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigError, match="must be a mapping"):
        load_settings(path)


def test_fan_out_may_be_disabled():
    assert HierarchySettings(fan_out=None).fan_out is None


def test_to_dict_round_trip():
    settings = Settings(layout=LayoutSettings(width=320, height=200))

    assert load_settings(settings.to_dict()) == settings
