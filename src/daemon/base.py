"""Abstract interface to the trading daemon the gateway fronts."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


class DaemonError(Exception):
    """Daemon call failed outright (gateway answers HTTP 500)"""


class OpportunityNotFound(DaemonError):
    """No current trading opportunity for the requested token (HTTP 404)"""


@dataclass
class DaemonResult:
    """Verdict of a daemon command"""
    success: bool
    message: str = ""
    data: dict = field(default_factory=dict)


class DaemonBackend(ABC):
    """Query and command surface of the trading daemon.

    Queries return JSON-ready snapshots using the daemon's camelCase keys.
    Commands return a DaemonResult; they raise DaemonError only when the
    call itself could not be carried out.
    """

    # === Queries ===

    @abstractmethod
    def get_portfolio_snapshot(self) -> dict:
        """
        Recompute portfolio valuation. Expensive.

        Returns:
            Dict with totalValue, totalUnrealizedPnL, totalUnrealizedPnLPercent,
            solBalance and positions[]
        """
        pass

    @abstractmethod
    def get_daemon_status(self) -> dict:
        """Dict with at least isRunning"""
        pass

    @abstractmethod
    def get_auto_trader_status(self) -> dict:
        """Dict with enabled, dailyTrades, dailyTradeLimit, successRate"""
        pass

    @abstractmethod
    def get_wallet_status(self) -> dict:
        """Dict with connected, canSign, publicKey"""
        pass

    @abstractmethod
    def get_config(self) -> dict:
        """Trading settings (execution, profitTaking, riskManagement, monitoring)"""
        pass

    @abstractmethod
    def get_opportunities(self) -> list:
        """List of {token, currentProfitPercent, recommendedSellPercent}"""
        pass

    @abstractmethod
    def get_trade_history(self) -> list:
        """List of {timestamp, tokenSymbol, action, amount, price, success}"""
        pass

    # === Commands ===

    @abstractmethod
    def start(self) -> DaemonResult:
        pass

    @abstractmethod
    def stop(self) -> DaemonResult:
        pass

    @abstractmethod
    def set_auto_trading(self, enabled: bool) -> DaemonResult:
        pass

    @abstractmethod
    def set_dry_run(self, enabled: bool) -> DaemonResult:
        pass

    @abstractmethod
    def update_config(self, partial: dict) -> DaemonResult:
        pass

    @abstractmethod
    def execute_trade(self, token_mint: str, sell_percent: Optional[float] = None) -> DaemonResult:
        pass
