"""
Tests for converter settings: loading, sanitizing, status notice.
"""

from __future__ import annotations

import json

import pytest

from upload_converter.config.loader import (
    ConverterSettings,
    generate_master_config_template,
    load_config,
    settings_from_dict,
)
from upload_converter.config.system_status import get_converter_status
from upload_converter.content.capabilities import StaticCapabilities
from upload_converter.models.upload import ConversionConfig
from upload_converter.validation import (
    ValidationError,
    parse_bool,
    sanitize_quality,
    validate_dimension,
)


class TestLoadConfig:

    def test_defaults(self):
        settings = load_config({})

        assert settings.enabled is False
        assert settings.max_width == 1920
        assert settings.max_height == 1080
        assert settings.quality == 80
        assert settings.debug is False

    def test_individual_env_vars(self):
        settings = load_config({
            "UPLOAD_CONVERTER_ENABLED": "1",
            "UPLOAD_CONVERTER_MAX_WIDTH": "2560",
            "UPLOAD_CONVERTER_MAX_HEIGHT": "1440",
            "UPLOAD_CONVERTER_QUALITY": "70",
            "UPLOAD_CONVERTER_DEBUG": "true",
        })

        assert settings.enabled is True
        assert (settings.max_width, settings.max_height, settings.quality) == (2560, 1440, 70)
        assert settings.debug is True

    def test_master_config(self):
        settings = load_config({
            "UPLOAD_CONVERTER_CONFIG": json.dumps({"enabled": True, "max_width": 800, "quality": 60}),
        })

        assert settings.enabled is True
        assert settings.max_width == 800
        assert settings.quality == 60
        assert settings.max_height == 1080

    def test_master_config_accepts_env_var_names(self):
        settings = load_config({
            "UPLOAD_CONVERTER_CONFIG": json.dumps({"UPLOAD_CONVERTER_MAX_HEIGHT": 720}),
        })

        assert settings.max_height == 720

    def test_env_vars_fill_gaps_in_master(self):
        settings = load_config({
            "UPLOAD_CONVERTER_CONFIG": json.dumps({"max_width": 800}),
            "UPLOAD_CONVERTER_MAX_WIDTH": "1234",
            "UPLOAD_CONVERTER_QUALITY": "55",
        })

        assert settings.max_width == 800
        assert settings.quality == 55

    def test_invalid_master_json_falls_back(self, caplog):
        settings = load_config({
            "UPLOAD_CONVERTER_CONFIG": "{not json",
            "UPLOAD_CONVERTER_ENABLED": "yes",
        })

        assert settings.enabled is True
        assert any("Invalid UPLOAD_CONVERTER_CONFIG" in r.getMessage() for r in caplog.records)

    def test_out_of_range_width_rejected(self):
        with pytest.raises(ValidationError) as exc:
            load_config({"UPLOAD_CONVERTER_MAX_WIDTH": "10000"})
        assert exc.value.field == "max_width"

    def test_reads_process_environment(self, clean_env):
        clean_env.setenv("UPLOAD_CONVERTER_QUALITY", "33")

        assert load_config().quality == 33

    def test_conversion_config(self):
        settings = settings_from_dict({"enabled": "on", "max_width": 640, "quality": 250})

        assert settings.conversion_config() == ConversionConfig(
            enabled=True, max_width=640, max_height=1080, quality=100
        )

    def test_base_url_trailing_slash_stripped(self):
        assert settings_from_dict({"base_url": "https://cdn.example.com/media/"}).base_url == (
            "https://cdn.example.com/media"
        )

    def test_template_is_loadable(self):
        settings = load_config({"UPLOAD_CONVERTER_CONFIG": generate_master_config_template()})

        assert settings.enabled is True


class TestSanitizers:

    @pytest.mark.parametrize("raw,expected", [
        (0, 1),
        (1, 1),
        (80, 80),
        (100, 100),
        (150, 100),
        ("-50", 50),
        (" 42 ", 42),
    ])
    def test_quality_clamped(self, raw, expected):
        assert sanitize_quality(raw) == expected

    def test_quality_not_a_number(self):
        with pytest.raises(ValidationError):
            sanitize_quality("high")

    @pytest.mark.parametrize("raw", [0, 10000, "abc", None])
    def test_dimension_invalid(self, raw):
        with pytest.raises(ValidationError):
            validate_dimension(raw, "max_width")

    @pytest.mark.parametrize("raw,expected", [(1, 1), ("9999", 9999), ("-1920", 1920)])
    def test_dimension_valid(self, raw, expected):
        assert validate_dimension(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("true", True), ("ON", True), (True, True),
        ("0", False), ("no", False), ("", False), (None, False), (0, False),
    ])
    def test_parse_bool(self, raw, expected):
        assert parse_bool(raw) is expected

    def test_parse_bool_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_bool("maybe", "enabled")


class TestConversionConfigModel:

    @pytest.mark.parametrize("quality,expected", [(-5, 1), (0, 1), (55, 55), (101, 100)])
    def test_quality_clamped_on_construction(self, quality, expected):
        assert ConversionConfig(quality=quality).quality == expected

    def test_frozen(self):
        config = ConversionConfig()
        with pytest.raises(Exception):
            config.enabled = True


class TestConverterStatus:

    def test_enabled(self):
        status = get_converter_status(ConverterSettings(enabled=True), StaticCapabilities(True))

        assert status.level == "info"
        assert status.state == "enabled"
        assert status.message.startswith("Enabled:")
        assert status.ok

    def test_disabled(self):
        status = get_converter_status(ConverterSettings(enabled=False), StaticCapabilities(True))

        assert status.state == "disabled"
        assert "UPLOAD_CONVERTER_ENABLED=1" in status.message

    def test_codec_missing_wins(self):
        status = get_converter_status(ConverterSettings(enabled=True), StaticCapabilities(False))

        assert status.level == "warning"
        assert status.state == "codec_missing"
        assert not status.ok
        assert status.to_dict()["capabilities"] == {"webp_encoder": False, "heic_decoder": False}
