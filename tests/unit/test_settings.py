"""
Tests for AppSettings and the JSON config loader
"""

import json

import pytest
from pydantic import ValidationError

from volume_cross.infrastructure.config.config_loader import (
    CONFIG_ENV_VAR,
    get_settings_from_working_directory,
    load_app_settings_from_json,
    resolve_env_vars,
)
from volume_cross.infrastructure.config.settings import (
    AppSettings,
    ExchangeSettings,
    TradingSettings,
    VolumeHistorySettings,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestDefaults:

    def test_defaults(self):
        settings = AppSettings()

        assert settings.trading.position_size_percent == 1.0
        assert settings.trading.min_trade_balance == 10.0
        assert settings.trading.auto_trade_enabled is False
        assert settings.trading.recommendation_ttl_seconds == 600
        assert settings.volume.fast_window == 3
        assert settings.volume.slow_window == 8
        assert settings.volume.min_sample_gap_seconds == 270.0
        assert settings.notifications.retention_seconds == 600
        assert settings.exchange.effective_base_url == "https://api.bybit.com/v5"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("EXCHANGE_TESTNET", "true")
        monkeypatch.setenv("VOLUME_FAST_WINDOW", "5")

        assert ExchangeSettings().effective_base_url == "https://api-testnet.bybit.com/v5"
        assert VolumeHistorySettings().fast_window == 5


class TestValidation:

    @pytest.mark.parametrize("value", [0, -1, 101])
    def test_position_size_bounds(self, value):
        with pytest.raises(ValidationError):
            TradingSettings(position_size_percent=value)

    def test_negative_min_trade_balance(self):
        with pytest.raises(ValidationError):
            TradingSettings(min_trade_balance=-1)

    def test_fast_window_must_be_smaller(self):
        with pytest.raises(ValidationError):
            VolumeHistorySettings(fast_window=8, slow_window=8)

    def test_max_points_must_cover_slow_window(self):
        with pytest.raises(ValidationError):
            VolumeHistorySettings(max_points=4, slow_window=8)


class TestJsonLoader:

    def test_resolve_env_vars(self, monkeypatch):
        monkeypatch.setenv("BYBIT_KEY", "abc")

        resolved = resolve_env_vars({"exchange": {"api_key": "${BYBIT_KEY}", "items": ["${MISSING_VAR_X}"]}})

        assert resolved == {"exchange": {"api_key": "abc", "items": [""]}}

    def test_sections_overlay_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BYBIT_SECRET", "s3cret")
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "trading": {"auto_trade_enabled": True, "position_size_percent": 2.5},
            "exchange": {"api_secret": "${BYBIT_SECRET}", "api_key": "${UNSET_KEY_FOR_TEST}"},
            "volume": {"symbols": ["BTC", "ETH"]},
            "unknown": {"ignored": True},
        }))

        settings = load_app_settings_from_json(str(config_file))

        assert settings.trading.auto_trade_enabled is True
        assert settings.trading.position_size_percent == 2.5
        assert settings.trading.min_trade_balance == 10.0
        assert settings.exchange.api_secret == "s3cret"
        assert settings.exchange.api_key == ""
        assert settings.volume.symbols == ["BTC", "ETH"]

    def test_invalid_values_are_rejected(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"volume": {"fast_window": 10}}))

        with pytest.raises(ValidationError):
            load_app_settings_from_json(str(config_file))

    def test_env_var_points_to_config(self, tmp_path, monkeypatch):
        config_file = tmp_path / "custom.json"
        config_file.write_text(json.dumps({"api": {"port": 8080}}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

        assert get_settings_from_working_directory().api.port == 8080

    def test_missing_config_falls_back_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

        assert get_settings_from_working_directory().api.port == 5000
