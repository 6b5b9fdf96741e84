"""Tests for the YAML config schema and its fallback adapter."""

import pytest

from schematic_sync.config import load_config
from schematic_sync.config_schema import (
    UnifiedConfig,
    build_config,
    to_fallbacks,
)
from schematic_sync.errors import ConfigError


def test_empty_gives_defaults():
    unified = build_config({})
    assert unified == UnifiedConfig()
    assert unified.output.suffix == ".msch"
    assert unified.logging.format == "text"


def test_sections_parsed():
    unified = build_config(
        {
            "export": {"cookies": "c=1", "poll_interval": 2},
            "output": {"dir": "/out", "max_parallel_io": 8},
            "denylist": {"names": ["Bad"], "authors": ["troll"]},
            "logging": {"level": "DEBUG", "format": "json"},
        }
    )
    assert unified.export.cookies == "c=1"
    assert unified.export.poll_interval == 2.0
    assert unified.output.max_parallel_io == 8
    assert unified.denylist.names == ["Bad"]
    assert unified.logging.format == "json"


@pytest.mark.parametrize(
    "raw",
    [
        {"output": {"max_parallel_io": 0}},
        {"export": {"poll_interval": -1}},
        {"logging": {"format": "xml"}},
    ],
)
def test_invalid_values(raw):
    with pytest.raises(ConfigError):
        build_config(raw)


def test_fallbacks_drop_none():
    fallbacks = to_fallbacks(UnifiedConfig())
    assert "cookies" not in fallbacks
    assert "output_dir" not in fallbacks
    assert fallbacks["suffix"] == ".msch"
    assert fallbacks["denied_names"] == []


def test_fallbacks_feed_load_config():
    unified = build_config(
        {
            "export": {"cookies": "c=1", "sheet_name": "Archive"},
            "output": {"dir": "/srv/schematics"},
            "denylist": {"names": ["Bad"]},
        }
    )

    config = load_config(yaml_fallbacks=to_fallbacks(unified))

    assert config.cookies == "c=1"
    assert config.sheet_name == "Archive"
    assert config.output_dir == "/srv/schematics"
    assert config.denylist.names == frozenset({"Bad"})
