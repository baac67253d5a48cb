"""
Unit tests for extractor configuration.
"""

import dataclasses

import pytest

from palette_config import (
    PaletteConfig, DEFAULT_MINIMUM_SQUARE_DISTANCE, MIN_SQUARE_DISTANCE_ENV,
    configure_logging,
)


def test_default_threshold():
    assert PaletteConfig().minimum_square_distance == DEFAULT_MINIMUM_SQUARE_DISTANCE == 32000


def test_config_is_frozen():
    config = PaletteConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.minimum_square_distance = 1


@pytest.mark.parametrize("value", [0, -5, 1.5, True, "100"])
def test_rejects_invalid_threshold(value):
    with pytest.raises(ValueError):
        PaletteConfig(minimum_square_distance=value)


class TestFromEnv:
    """Test environment overrides"""

    def test_missing_uses_default(self):
        assert PaletteConfig.from_env({}) == PaletteConfig()

    def test_blank_uses_default(self):
        assert PaletteConfig.from_env({MIN_SQUARE_DISTANCE_ENV: " "}) == PaletteConfig()

    def test_override(self):
        config = PaletteConfig.from_env({MIN_SQUARE_DISTANCE_ENV: "5000"})
        assert config.minimum_square_distance == 5000

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv(MIN_SQUARE_DISTANCE_ENV, "1234")
        assert PaletteConfig.from_env().minimum_square_distance == 1234

    def test_malformed(self):
        with pytest.raises(ValueError):
            PaletteConfig.from_env({MIN_SQUARE_DISTANCE_ENV: "lots"})


def test_configure_logging_accepts_lowercase_level():
    configure_logging("debug")
    configure_logging()
