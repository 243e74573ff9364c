# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for overlay configuration and environment parsing."""
import pytest

from riskglobe.config import OverlayConfig, parse_horizons


class TestDefaults:

    def test_values(self):
        config = OverlayConfig()
        assert config.enabled is True
        assert config.horizons == (6, 12, 24)
        assert config.poll_interval_ms == 300000
        assert config.options == {"realtime": True}

    def test_interval_seconds(self):
        assert OverlayConfig().poll_interval_s == 300.0

    def test_timeout_defaults_to_interval(self):
        assert OverlayConfig(poll_interval_ms=45000).effective_timeout_s == 45.0

    def test_explicit_timeout(self):
        assert OverlayConfig(request_timeout_s=12.5).effective_timeout_s == 12.5

    def test_options_not_shared(self):
        a, b = OverlayConfig(), OverlayConfig()
        a.options["extra"] = 1
        assert "extra" not in b.options

    def test_frozen(self):
        with pytest.raises(AttributeError):
            OverlayConfig().enabled = False


class TestValidate:

    def test_defaults_valid(self):
        config = OverlayConfig()
        assert config.validate() is config

    @pytest.mark.parametrize("kwargs", [
        {"horizons": ()},
        {"horizons": (6, 0)},
        {"horizons": (6, -12)},
        {"horizons": (6, 6)},
        {"horizons": (6.5,)},
        {"horizons": (True,)},
        {"poll_interval_ms": 0},
        {"request_timeout_s": 0},
        {"max_workers": 0},
    ])
    def test_rejects(self, kwargs):
        with pytest.raises(ValueError):
            OverlayConfig(**kwargs).validate()


class TestFromEnv:

    def test_empty_env_gives_defaults(self):
        assert OverlayConfig.from_env({}) == OverlayConfig()

    def test_reads_all_variables(self):
        config = OverlayConfig.from_env({
            "RISKGLOBE_API_BASE": "https://example.com",
            "RISKGLOBE_HORIZONS": "6, 48",
            "RISKGLOBE_POLL_INTERVAL_MS": "60000",
            "RISKGLOBE_ENABLED": "false",
        })
        assert config.api_base == "https://example.com"
        assert config.horizons == (6, 48)
        assert config.poll_interval_ms == 60000
        assert config.enabled is False

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("yes", True), ("0", False), ("OFF", False), (" no ", False),
    ])
    def test_enabled_flag(self, value, expected):
        assert OverlayConfig.from_env({"RISKGLOBE_ENABLED": value}).enabled is expected

    def test_overrides_win(self):
        config = OverlayConfig.from_env(
            {"RISKGLOBE_API_BASE": "https://env"}, api_base="https://cli",
        )
        assert config.api_base == "https://cli"

    def test_invalid_env_raises(self):
        with pytest.raises(ValueError):
            OverlayConfig.from_env({"RISKGLOBE_HORIZONS": "6,twelve"})
        with pytest.raises(ValueError):
            OverlayConfig.from_env({"RISKGLOBE_POLL_INTERVAL_MS": "-5"})


class TestParseHorizons:

    def test_basic(self):
        assert parse_horizons("6,12,24") == (6, 12, 24)

    def test_whitespace_and_trailing_comma(self):
        assert parse_horizons(" 6 , 12 ,") == (6, 12)

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid horizon list"):
            parse_horizons("a,b")
