"""
Tests for control configuration and persisted trading settings
"""

import json

from src.core.config import (
    ControlConfig, default_trading_settings, load_control_config, load_trading_settings,
    merge_settings, save_trading_settings, validate_settings,
)
from src.core.models import ResourceKey
from src.daemon.local import LocalDaemon


class TestControlConfig:

    def test_defaults(self):
        cfg = ControlConfig()
        assert cfg.refresh_interval_seconds == 30
        assert cfg.gateway_cache_ttl_seconds == 30
        assert cfg.ttl_for(ResourceKey.PORTFOLIO) == 120
        assert cfg.ttl_for(ResourceKey.TRADING_STATUS) == 0, "Status is always fetched"

    def test_environment_overrides(self):
        cfg = load_control_config({
            "GATEWAY_URL": "http://daemon.local:4000/",
            "WEB_PORT": "8080",
            "DASHBOARD_SECRET": " s3cret ",
            "REFRESH_INTERVAL_SECONDS": "10",
        })
        assert cfg.gateway_url == "http://daemon.local:4000"
        assert cfg.port == 8080
        assert cfg.dashboard_secret == "s3cret"
        assert cfg.refresh_interval_seconds == 10.0

    def test_invalid_values_are_ignored(self):
        cfg = load_control_config({"PORT": "abc", "GATEWAY_CACHE_TTL_SECONDS": "soon"})
        assert cfg.port == 3000
        assert cfg.gateway_cache_ttl_seconds == 30


class TestTradingSettings:

    def test_defaults_are_safe(self):
        settings = default_trading_settings()
        assert settings["execution"]["dryRun"] is True
        assert settings["profitTaking"]["stopLoss"]["enabled"] is False
        assert settings["riskManagement"]["maxDailyTrades"] == 10

    def test_defaults_are_copies(self):
        default_trading_settings()["execution"]["dryRun"] = False
        assert default_trading_settings()["execution"]["dryRun"] is True

    def test_merge_is_deep(self):
        merged = merge_settings(default_trading_settings(), {"execution": {"slippagePercent": 3}})
        assert merged["execution"]["slippagePercent"] == 3
        assert merged["execution"]["retryAttempts"] == 3
        assert merged["monitoring"]["checkIntervalMs"] == 60000

    def test_merge_replaces_lists(self):
        merged = merge_settings(default_trading_settings(), {"profitTaking": {"targets": []}})
        assert merged["profitTaking"]["targets"] == []
        assert merged["profitTaking"]["enabled"] is True

    def test_validate(self):
        assert validate_settings({"execution": {"slippagePercent": 2}}) is None
        assert validate_settings({"riskManagement": {"maxDailyTrades": 0}}) is not None
        assert validate_settings({"execution": {"maxPriceImpactPercent": "lots"}}) is not None
        assert validate_settings({"monitoring": {"checkIntervalMs": 1}}) is None

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "trading-config.json")
        settings = merge_settings(default_trading_settings(), {"execution": {"dryRun": False}})
        save_trading_settings(settings, path)
        assert load_trading_settings(path)["execution"]["dryRun"] is False

    def test_load_partial_file_fills_defaults(self, tmp_path):
        path = tmp_path / "trading-config.json"
        path.write_text(json.dumps({"riskManagement": {"maxDailyTrades": 7}}))
        loaded = load_trading_settings(str(path))
        assert loaded["riskManagement"]["maxDailyTrades"] == 7
        assert loaded["execution"]["dryRun"] is True

    def test_corrupt_file_falls_back(self, tmp_path):
        path = tmp_path / "trading-config.json"
        path.write_text("{not json")
        assert load_trading_settings(str(path)) == default_trading_settings()

    def test_daemon_persists_changes(self, tmp_path):
        path = str(tmp_path / "trading-config.json")
        LocalDaemon(settings_path=path).set_dry_run(False)
        assert LocalDaemon(settings_path=path).get_config()["execution"]["dryRun"] is False


class TestSettingsShape:

    def test_sections_must_stay_objects(self):
        for section in ("execution", "profitTaking", "riskManagement", "monitoring"):
            assert validate_settings({section: 5}) == f"{section} must be an object"

    def test_nested_shapes(self):
        assert validate_settings({"profitTaking": {"targets": {}}}) == "profitTaking.targets must be a list"
        assert validate_settings({"profitTaking": {"stopLoss": True}}) is not None
        assert validate_settings({"execution": {"dryRun": "false"}}) == "execution.dryRun must be a bool"
        assert validate_settings({"profitTaking": {"enabled": False, "targets": []}}) is None

    def test_malformed_file_falls_back(self, tmp_path):
        path = tmp_path / "trading-config.json"
        path.write_text(json.dumps({"riskManagement": 5}))
        assert load_trading_settings(str(path)) == default_trading_settings()
