"""Tests for build configuration validation."""

from __future__ import annotations

import os

import pytest

from gridpyramid import config as config_module
from gridpyramid.config import BoundsMode, EncoderConfig, PyramidConfig
from gridpyramid.core.types import BoundingBox
from gridpyramid.errors import ConfigError


class TestEncoderConfig:
    def test_defaults(self):
        encoder = EncoderConfig()
        assert (encoder.format, encoder.quality, encoder.speed) == ("avif", 70, 10)
        assert encoder.extension == "avif"

    @pytest.mark.parametrize("fmt", ["jpeg", "AVIF", ""])
    def test_unsupported_format(self, fmt: str):
        with pytest.raises(ConfigError, match="Unsupported output format"):
            EncoderConfig(format=fmt)

    @pytest.mark.parametrize("quality", [-1, 101])
    def test_quality_range(self, quality: int):
        with pytest.raises(ConfigError, match="quality"):
            EncoderConfig(quality=quality)

    @pytest.mark.parametrize("speed", [-1, 11])
    def test_speed_range(self, speed: int):
        with pytest.raises(ConfigError, match="speed"):
            EncoderConfig(speed=speed)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            EncoderConfig(quality=500)


class TestPyramidConfig:
    def test_defaults(self):
        config = PyramidConfig()
        assert config.base_size == 4096
        assert config.tile_size == 256
        assert config.tiles_per_base == 16
        assert config.bounds_mode is BoundsMode.AUTO

    @pytest.mark.parametrize("field_name", ["base_size", "tile_size", "thumb_size", "workers"])
    def test_sizes_must_be_positive(self, field_name: str):
        with pytest.raises(ConfigError, match=field_name):
            PyramidConfig(**{field_name: 0})

    def test_base_not_multiple_of_tile(self):
        with pytest.raises(ConfigError, match="multiple"):
            PyramidConfig(base_size=1000, tile_size=256)

    def test_tiles_per_base_power_of_two(self):
        with pytest.raises(ConfigError, match="power of two"):
            PyramidConfig(base_size=768, tile_size=256)

    def test_fixed_mode_requires_bounds(self):
        with pytest.raises(ConfigError, match="requires bounds"):
            PyramidConfig(bounds_mode=BoundsMode.FIXED)

    def test_fixed_mode(self):
        config = PyramidConfig(bounds_mode=BoundsMode.FIXED, bounds=BoundingBox(-2, -2, 5, 5))
        assert config.bounds.width == 8

    def test_negative_coarse_depth(self):
        with pytest.raises(ConfigError, match="coarse_depth"):
            PyramidConfig(coarse_depth=-1)

    def test_frozen(self):
        config = PyramidConfig()
        with pytest.raises(AttributeError):
            config.tile_size = 512


class TestEnvironment:
    def test_env_int(self, monkeypatch):
        monkeypatch.setenv("GRIDPYRAMID_TEST_INT", "12")
        assert config_module._get_env_int("GRIDPYRAMID_TEST_INT", 3) == 12

    def test_invalid_env_int_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("GRIDPYRAMID_TEST_INT", "many")
        assert config_module._get_env_int("GRIDPYRAMID_TEST_INT", 3) == 3
        assert "Invalid integer" in caplog.text

    def test_unset_env_int(self, monkeypatch):
        monkeypatch.delenv("GRIDPYRAMID_TEST_INT", raising=False)
        assert config_module._get_env_int("GRIDPYRAMID_TEST_INT", 3) == 3


class TestPackageImport:
    def test_libvips_environment(self):
        import gridpyramid

        assert gridpyramid.__version__
        assert os.environ["VIPS_WARNING"] == "0"
        assert os.environ["VIPS_CONCURRENCY"]

    def test_quiet_import_restores_stderr(self, capfd):
        import gridpyramid

        gridpyramid._import_pyvips_quietly()
        os.write(2, b"still attached\n")
        assert "still attached" in capfd.readouterr().err
