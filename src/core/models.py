"""
Core data models for the trading control surface
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from enum import Enum


class ResourceKey(Enum):
    """Independently cached data resources"""
    PORTFOLIO = "portfolio"
    TRADING_STATUS = "trading-status"
    CONFIG = "config"
    OPPORTUNITIES = "opportunities"
    TRADE_HISTORY = "trade-history"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    READ_ONLY = "read-only"
    LIVE = "live"

    @property
    def label(self) -> str:
        return {
            ConnectionState.DISCONNECTED: "DISCONNECTED",
            ConnectionState.READ_ONLY: "READ-ONLY",
            ConnectionState.LIVE: "LIVE TRADING",
        }[self]


class CommandKind(Enum):
    START = "start"
    STOP = "stop"
    TOGGLE_AUTO_TRADING = "toggle-auto-trading"
    SET_DRY_RUN = "set-dry-run"
    EXECUTE_TRADE = "execute-trade"
    SAVE_CONFIG = "save-config"
    REFRESH_PORTFOLIO = "refresh-portfolio"


class FailureKind(Enum):
    """Categories of command failures"""
    NETWORK = "network"    # Request never got a response
    HTTP = "http"          # Non-2xx status
    DAEMON = "daemon"      # 2xx with success=false
    ABORTED = "aborted"    # Confirmation declined, nothing sent


def safe_float(val, default=0.0) -> float:
    """Convert a loosely-typed JSON value to float, falling back to default"""
    if val is None or isinstance(val, bool):
        return default
    try:
        result = float(val)
    except (ValueError, TypeError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(val, default=0) -> int:
    return int(safe_float(val, float(default)))


def safe_bool(val, default=False) -> bool:
    if isinstance(val, bool):
        return val
    if val is None:
        return default
    if isinstance(val, (int, float)):
        return val != 0
    if isinstance(val, str):
        lowered = val.strip().lower()
        if lowered in ("true", "yes", "1", "on"):
            return True
        if lowered in ("false", "no", "0", "off", ""):
            return False
    return default


def safe_dict(val) -> dict:
    return val if isinstance(val, dict) else {}


@dataclass
class TradingState:
    """Display-ready status merged from daemon, wallet and config snapshots.

    Always derived from already-cached inputs, never stored on its own.
    """
    connection: ConnectionState
    daemon_running: bool = False
    auto_trading_enabled: bool = False
    daily_trades: int = 0
    success_rate_percent: float = 0.0
    daily_trade_limit: int = 10
    dry_run: bool = True
    public_key: Optional[str] = None

    @property
    def connection_label(self) -> str:
        return self.connection.label

    @property
    def can_trade(self) -> bool:
        return self.connection == ConnectionState.LIVE and not self.dry_run

    def to_dict(self) -> dict:
        return {
            "connection": self.connection.value,
            "connectionLabel": self.connection_label,
            "daemonRunning": self.daemon_running,
            "autoTradingEnabled": self.auto_trading_enabled,
            "dailyTrades": self.daily_trades,
            "dailyTradeLimit": self.daily_trade_limit,
            "successRatePercent": self.success_rate_percent,
            "dryRun": self.dry_run,
            "publicKey": self.public_key,
        }


@dataclass
class Command:
    """A named daemon command plus the cache entries it makes stale"""
    kind: CommandKind
    target_keys: frozenset = field(default_factory=frozenset)
    requires_confirmation: bool = False
    payload: dict = field(default_factory=dict)

    @property
    def prompt(self) -> str:
        """Question shown to the user before a confirmation-gated command is sent"""
        if self.kind == CommandKind.EXECUTE_TRADE:
            sell = self.payload.get("sellPercent")
            suffix = f" (Sell {sell}%)" if sell else ""
            return f"Are you sure you want to execute this trade?{suffix}"
        return f"Confirm {self.kind.value}?"


@dataclass
class CommandResult:
    """Outcome of a dispatched command: an ack or a normalised failure"""
    command: Command
    ok: bool
    message: str = ""
    data: Optional[dict] = None
    failure: Optional[FailureKind] = None
    status_code: Optional[int] = None
    invalidated: frozenset = field(default_factory=frozenset)

    @property
    def aborted(self) -> bool:
        return self.failure == FailureKind.ABORTED


@dataclass
class Notification:
    """Transient user-facing message, auto-dismissed after its TTL"""
    message: str
    level: str = "info"   # info / success / warning / error
    created_at: float = 0.0
    expires_at: float = 0.0


@dataclass
class TradeRecord:
    """Single executed (or attempted) trade in the daemon's history"""
    token_mint: str
    token_symbol: str
    action: str
    amount: float
    price: float
    success: bool
    sell_percent: Optional[float] = None
    dry_run: bool = True
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "tokenMint": self.token_mint,
            "tokenSymbol": self.token_symbol,
            "action": self.action,
            "amount": self.amount,
            "price": self.price,
            "success": self.success,
            "sellPercent": self.sell_percent,
            "dryRun": self.dry_run,
            "message": self.message,
        }
