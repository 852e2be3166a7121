"""
In-process trading daemon

Holds daemon, auto-trader and wallet state in memory and persists its
trading settings like the real daemon does. Used when the gateway runs
without an external daemon, and by the test suite.
"""

import copy
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ..core.config import default_trading_settings, load_trading_settings, merge_settings, save_trading_settings
from ..core.models import TradeRecord, safe_float, safe_int
from .base import DaemonBackend, DaemonResult, OpportunityNotFound


def _empty_portfolio() -> dict:
    return {
        "totalValue": 0.0,
        "totalUnrealizedPnL": 0.0,
        "totalUnrealizedPnLPercent": 0.0,
        "solBalance": 0.0,
        "positions": [],
    }


class LocalDaemon(DaemonBackend):
    """
    Memory-backed daemon.

    start/stop are idempotent: repeating either reports success with a
    message saying nothing changed. Trades run against the current
    opportunity list and are recorded in the execution history.
    """

    def __init__(self, settings_path: Optional[str] = None, persist: bool = False,
                 wallet: Optional[dict] = None, portfolio_provider: Optional[Callable[[], dict]] = None):
        self._lock = threading.Lock()
        self._settings_path = settings_path
        self._persist = persist or settings_path is not None
        self.settings = load_trading_settings(settings_path) if self._persist else default_trading_settings()

        self.running = False
        self.auto_trading = False
        self.start_time: Optional[float] = None
        self.last_activity: Optional[float] = None

        self.wallet = {"connected": False, "canSign": False, "publicKey": None}
        if wallet:
            self.wallet.update(wallet)

        self._portfolio_provider = portfolio_provider
        self.portfolio = _empty_portfolio()
        self.opportunities: list = []
        self.history: list[TradeRecord] = []
        self.valuations = 0  # How many times the expensive valuation ran

    # === Wiring ===

    def set_wallet(self, connected: bool, can_sign: bool = False, public_key: Optional[str] = None):
        with self._lock:
            self.wallet = {"connected": connected, "canSign": can_sign, "publicKey": public_key}

    def set_portfolio(self, snapshot: dict):
        with self._lock:
            self.portfolio = copy.deepcopy(snapshot)

    def set_opportunities(self, opportunities: list):
        with self._lock:
            self.opportunities = copy.deepcopy(opportunities)

    def _save(self, settings: dict):
        # Called outside the lock (disk I/O should not hold it)
        if self._persist:
            save_trading_settings(settings, self._settings_path)

    # === Queries ===

    def get_portfolio_snapshot(self) -> dict:
        with self._lock:
            self.valuations += 1
            provider = self._portfolio_provider
            snapshot = copy.deepcopy(self.portfolio)
        if provider is not None:
            return provider()
        return snapshot

    def get_daemon_status(self) -> dict:
        with self._lock:
            now = time.time()
            return {
                "isRunning": self.running,
                "startTime": datetime.fromtimestamp(self.start_time, timezone.utc).isoformat() if self.start_time else None,
                "uptime": int((now - self.start_time) * 1000) if self.running and self.start_time else 0,
                "autoTraderEnabled": self.auto_trading,
                "lastActivity": datetime.fromtimestamp(self.last_activity, timezone.utc).isoformat() if self.last_activity else None,
            }

    def _daily_trades(self) -> int:
        today = datetime.now(timezone.utc).date()
        return sum(1 for r in self.history if r.success and r.timestamp.date() == today)

    def _success_rate(self) -> float:
        if not self.history:
            return 0.0
        ok = sum(1 for r in self.history if r.success)
        return round(ok / len(self.history) * 100, 1)

    def get_auto_trader_status(self) -> dict:
        with self._lock:
            return {
                "enabled": self.auto_trading,
                "dailyTrades": self._daily_trades(),
                "dailyTradeLimit": safe_int(self.settings["riskManagement"].get("maxDailyTrades"), 10),
                "successRate": self._success_rate(),
                "totalExecutions": len(self.history),
            }

    def get_wallet_status(self) -> dict:
        with self._lock:
            return dict(self.wallet)

    def get_config(self) -> dict:
        with self._lock:
            return copy.deepcopy(self.settings)

    def get_opportunities(self) -> list:
        with self._lock:
            return copy.deepcopy(self.opportunities)

    def get_trade_history(self) -> list:
        with self._lock:
            return [r.to_dict() for r in reversed(self.history)]

    # === Commands ===

    def start(self) -> DaemonResult:
        with self._lock:
            if self.running:
                print("[DAEMON] Trading daemon is already running")
                return DaemonResult(True, "Trading daemon is already running")
            self.running = True
            self.start_time = time.time()
            self.last_activity = self.start_time
            if self.settings["profitTaking"].get("enabled"):
                self.auto_trading = True
            mode = "DRY RUN" if self.settings["execution"].get("dryRun", True) else "LIVE"
        print(f"[DAEMON] Started ({mode} MODE)")
        return DaemonResult(True, "Trading daemon started")

    def stop(self) -> DaemonResult:
        with self._lock:
            if not self.running:
                print("[DAEMON] Trading daemon is not running")
                return DaemonResult(True, "Trading daemon is not running")
            self.running = False
            self.auto_trading = False
        print("[DAEMON] Stopped")
        return DaemonResult(True, "Trading daemon stopped")

    def set_auto_trading(self, enabled: bool) -> DaemonResult:
        with self._lock:
            self.auto_trading = bool(enabled)
        state = "enabled" if enabled else "disabled"
        print(f"[DAEMON] Auto trading {state}")
        return DaemonResult(True, f"Auto trading {state}", {"autoTraderEnabled": bool(enabled)})

    def set_dry_run(self, enabled: bool) -> DaemonResult:
        with self._lock:
            self.settings["execution"]["dryRun"] = bool(enabled)
            snapshot = copy.deepcopy(self.settings)
        self._save(snapshot)
        return DaemonResult(True, f"Dry run {'enabled' if enabled else 'disabled'}")

    def update_config(self, partial: dict) -> DaemonResult:
        with self._lock:
            self.settings = merge_settings(self.settings, partial or {})
            snapshot = copy.deepcopy(self.settings)
        self._save(snapshot)
        return DaemonResult(True, "Configuration updated")

    def execute_trade(self, token_mint: str, sell_percent: Optional[float] = None) -> DaemonResult:
        with self._lock:
            opportunity = next(
                (op for op in self.opportunities if (op.get("token") or {}).get("mintAddress") == token_mint),
                None,
            )
            if opportunity is None:
                raise OpportunityNotFound("Trading opportunity not found")

            limit = safe_int(self.settings["riskManagement"].get("maxDailyTrades"), 10)
            if self._daily_trades() >= limit:
                return DaemonResult(False, f"Daily trade limit reached ({limit})")

            dry_run = bool(self.settings["execution"].get("dryRun", True))
            if not dry_run and not self.wallet.get("canSign"):
                return DaemonResult(False, "Wallet cannot sign transactions")

            pct = safe_float(sell_percent if sell_percent else opportunity.get("recommendedSellPercent"), 0.0)
            token = opportunity.get("token") or {}
            record = TradeRecord(
                token_mint=token_mint,
                token_symbol=token.get("symbol") or "Unknown",
                action="sell",
                amount=safe_float(opportunity.get("balance")) * pct / 100,
                price=safe_float(opportunity.get("currentPrice")),
                success=True,
                sell_percent=pct,
                dry_run=dry_run,
                message="Simulated" if dry_run else "Executed",
            )
            self.history.append(record)
            self.opportunities.remove(opportunity)
            self.last_activity = time.time()

        print(f"[DAEMON] {record.message} sell of {pct:g}% {record.token_symbol}")
        return DaemonResult(True, f"{record.message} sell of {pct:g}% {record.token_symbol}",
                            {"executions": [record.to_dict()]})
