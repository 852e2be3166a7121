"""
Unit tests for status reconciliation
"""

import pytest

from src.control.reconciler import connection_state, reconcile
from src.core.models import ConnectionState


def _status(wallet=None, daemon=None, auto_trader=None):
    return {"daemon": daemon or {}, "autoTrader": auto_trader or {}, "wallet": wallet or {}}


class TestConnectionState:
    """Wallet connectivity decides the headline mode"""

    def test_live_when_wallet_can_sign(self):
        """Connected signing wallet with a running daemon reads LIVE TRADING"""
        state = reconcile(
            _status(
                wallet={"connected": True, "canSign": True, "publicKey": "So1anaPubKey111"},
                daemon={"isRunning": True},
                auto_trader={"enabled": True, "dailyTrades": 3, "dailyTradeLimit": 10, "successRate": 66.7},
            ),
            {"execution": {"dryRun": False}},
        )
        assert state.connection == ConnectionState.LIVE
        assert state.connection_label == "LIVE TRADING"
        assert state.daemon_running is True
        assert state.auto_trading_enabled is True
        assert state.daily_trades == 3
        assert state.success_rate_percent == 66.7
        assert state.public_key == "So1anaPubKey111"
        assert state.can_trade, "Live signing wallet outside dry run can trade"

    def test_read_only_when_wallet_cannot_sign(self):
        state = reconcile(_status(wallet={"connected": True, "canSign": False}))
        assert state.connection == ConnectionState.READ_ONLY
        assert state.connection_label == "READ-ONLY"
        assert not state.can_trade

    def test_disconnected_wallet_wins_over_running_daemon(self):
        """Wallet state is reported as-is even when the daemon looks healthy"""
        state = reconcile(_status(
            wallet={"connected": False, "canSign": True},
            daemon={"isRunning": True},
            auto_trader={"enabled": True},
        ))
        assert state.connection == ConnectionState.DISCONNECTED
        assert state.connection_label == "DISCONNECTED"
        assert state.daemon_running is True, "Daemon fields still pass through"

    @pytest.mark.parametrize("connected,can_sign,expected", [
        (False, False, ConnectionState.DISCONNECTED),
        (False, True, ConnectionState.DISCONNECTED),
        (True, False, ConnectionState.READ_ONLY),
        (True, True, ConnectionState.LIVE),
    ])
    @pytest.mark.parametrize("running", [False, True])
    def test_precedence_ignores_daemon(self, connected, can_sign, expected, running):
        wallet = {"connected": connected, "canSign": can_sign}
        state = reconcile(_status(wallet=wallet, daemon={"isRunning": running}, auto_trader={"enabled": running}))
        assert state.connection == expected
        assert connection_state(wallet) == expected

    def test_string_flags_are_understood(self):
        assert connection_state({"connected": "true", "canSign": "false"}) == ConnectionState.READ_ONLY


class TestDefaults:
    """Reconcile is total: missing or malformed input gives documented defaults"""

    @pytest.mark.parametrize("status", [None, {}, "garbage", [], {"daemon": None, "autoTrader": 7, "wallet": "x"}])
    def test_missing_inputs(self, status):
        state = reconcile(status, None)
        assert state.connection == ConnectionState.DISCONNECTED
        assert state.daemon_running is False
        assert state.auto_trading_enabled is False
        assert state.daily_trades == 0
        assert state.success_rate_percent == 0.0
        assert state.daily_trade_limit == 10
        assert state.dry_run is True, "Dry run is assumed until the config says otherwise"
        assert state.public_key is None

    def test_malformed_numbers_fall_back(self):
        state = reconcile(_status(auto_trader={"dailyTrades": "lots", "successRate": float("nan")}))
        assert state.daily_trades == 0
        assert state.success_rate_percent == 0.0

    def test_empty_public_key_is_none(self):
        state = reconcile(_status(wallet={"connected": True, "publicKey": ""}))
        assert state.public_key is None

    def test_daily_limit_from_config(self):
        state = reconcile(_status(), {"riskManagement": {"maxDailyTrades": 25}})
        assert state.daily_trade_limit == 25

    def test_auto_trader_limit_overrides_config(self):
        state = reconcile(_status(auto_trader={"dailyTradeLimit": 5}), {"riskManagement": {"maxDailyTrades": 25}})
        assert state.daily_trade_limit == 5

    def test_dry_run_from_config(self):
        assert reconcile(None, {"execution": {"dryRun": False}}).dry_run is False

    def test_daily_trades_pass_through(self):
        """Counts over the limit are shown as reported"""
        state = reconcile(_status(auto_trader={"dailyTrades": 12, "dailyTradeLimit": 10}))
        assert state.daily_trades == 12

    def test_pure(self):
        """Same inputs, same output; inputs are not modified"""
        status = _status(wallet={"connected": True, "canSign": True}, daemon={"isRunning": True})
        before = repr(status)
        assert reconcile(status) == reconcile(status)
        assert repr(status) == before

    def test_to_dict(self):
        d = reconcile(_status(wallet={"connected": True, "canSign": True})).to_dict()
        assert d["connectionLabel"] == "LIVE TRADING"
        assert d["dryRun"] is True
