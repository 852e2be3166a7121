"""
Status reconciliation

Merges the daemon, auto-trader, wallet and config snapshots into one
TradingState. Pure: no I/O, no clock, no cached state.

Connection precedence (highest first):
1. wallet not connected  -> DISCONNECTED (daemon/auto-trader ignored)
2. wallet can sign       -> LIVE
3. otherwise             -> READ_ONLY

Defaults for absent or malformed fields:
    daemon.isRunning            False
    autoTrader.enabled          False
    autoTrader.dailyTrades      0
    autoTrader.successRate      0.0
    autoTrader.dailyTradeLimit  config riskManagement.maxDailyTrades, else 10
    execution.dryRun            True
    wallet.publicKey            None
"""

from typing import Optional

from src.core.models import ConnectionState, TradingState, safe_bool, safe_dict, safe_float, safe_int

DEFAULT_DAILY_TRADE_LIMIT = 10


def connection_state(wallet) -> ConnectionState:
    wallet = safe_dict(wallet)
    if not safe_bool(wallet.get("connected"), False):
        return ConnectionState.DISCONNECTED
    if safe_bool(wallet.get("canSign"), False):
        return ConnectionState.LIVE
    return ConnectionState.READ_ONLY


def reconcile(status: Optional[dict] = None, config: Optional[dict] = None) -> TradingState:
    """Build the display state from a /trading/status payload and the settings.

    status is {"daemon": {...}, "autoTrader": {...}, "wallet": {...}}; any
    part (or the whole thing) may be missing.
    """
    status = safe_dict(status)
    config = safe_dict(config)
    daemon = safe_dict(status.get("daemon"))
    auto_trader = safe_dict(status.get("autoTrader"))
    wallet = safe_dict(status.get("wallet"))

    risk = safe_dict(config.get("riskManagement"))
    execution = safe_dict(config.get("execution"))

    limit = safe_int(risk.get("maxDailyTrades"), DEFAULT_DAILY_TRADE_LIMIT)
    limit = safe_int(auto_trader.get("dailyTradeLimit"), limit)

    public_key = wallet.get("publicKey")
    if not isinstance(public_key, str) or not public_key:
        public_key = None

    return TradingState(
        connection=connection_state(wallet),
        daemon_running=safe_bool(daemon.get("isRunning"), False),
        auto_trading_enabled=safe_bool(auto_trader.get("enabled"), False),
        daily_trades=safe_int(auto_trader.get("dailyTrades"), 0),
        success_rate_percent=safe_float(auto_trader.get("successRate"), 0.0),
        daily_trade_limit=limit,
        dry_run=safe_bool(execution.get("dryRun"), True),
        public_key=public_key,
    )
