"""
Command dispatch

Commands go straight to the gateway, never through a cache. A successful
command invalidates the client cache entries it declares and triggers an
immediate re-fetch of them; a failed one touches no cache and is surfaced
as a transient notification. Nothing is retried.

Trades need an explicit yes/no before anything is sent, either through
the two-step propose()/confirm() protocol or a confirm callable passed to
execute().
"""

import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from src.core.cache import TTLCache
from src.core.client import GatewayClient, GatewayError
from src.core.models import Command, CommandKind, CommandResult, FailureKind, ResourceKey
from .notifications import Notifier

# Cache entries each command kind makes stale
COMMAND_TARGETS = {
    CommandKind.START: frozenset({ResourceKey.TRADING_STATUS}),
    CommandKind.STOP: frozenset({ResourceKey.TRADING_STATUS}),
    CommandKind.TOGGLE_AUTO_TRADING: frozenset({ResourceKey.TRADING_STATUS}),
    CommandKind.SET_DRY_RUN: frozenset({ResourceKey.CONFIG}),
    CommandKind.EXECUTE_TRADE: frozenset({ResourceKey.PORTFOLIO, ResourceKey.OPPORTUNITIES}),
    CommandKind.SAVE_CONFIG: frozenset({ResourceKey.CONFIG}),
    CommandKind.REFRESH_PORTFOLIO: frozenset({ResourceKey.PORTFOLIO}),
}


def _command(kind: CommandKind, payload: dict = None, requires_confirmation: bool = False) -> Command:
    return Command(kind=kind, target_keys=COMMAND_TARGETS[kind],
                   requires_confirmation=requires_confirmation, payload=payload or {})


def start_command() -> Command:
    return _command(CommandKind.START)


def stop_command() -> Command:
    return _command(CommandKind.STOP)


def auto_trading_command(enabled: bool) -> Command:
    return _command(CommandKind.TOGGLE_AUTO_TRADING, {"enabled": bool(enabled)})


def dry_run_command(enabled: bool) -> Command:
    return _command(CommandKind.SET_DRY_RUN, {"enabled": bool(enabled)})


def execute_trade_command(token_mint: str, sell_percent: Optional[float] = None) -> Command:
    return _command(CommandKind.EXECUTE_TRADE, {"tokenMint": token_mint, "sellPercent": sell_percent},
                    requires_confirmation=True)


def save_config_command(partial: dict) -> Command:
    return _command(CommandKind.SAVE_CONFIG, {"settings": dict(partial or {})})


def refresh_portfolio_command() -> Command:
    return _command(CommandKind.REFRESH_PORTFOLIO)


@dataclass
class PendingCommand:
    """A proposed command waiting for the user's yes/no"""
    id: str
    command: Command
    prompt: str
    created_at: float


class CommandDispatcher:
    """Sends commands to the gateway and keeps the client cache consistent afterwards"""

    def __init__(self, client: GatewayClient, cache: TTLCache,
                 refresh: Optional[Callable[[Iterable[ResourceKey]], object]] = None,
                 notifier: Optional[Notifier] = None):
        self.client = client
        self.cache = cache
        self.refresh = refresh
        self.notifier = notifier or Notifier()
        self._pending: dict[str, PendingCommand] = {}
        self._lock = threading.Lock()

    # === Two-step confirmation ===

    def propose(self, command: Command) -> PendingCommand:
        """Register a command and return the question to put to the user"""
        pending = PendingCommand(id=uuid.uuid4().hex, command=command,
                                 prompt=command.prompt, created_at=time.time())
        with self._lock:
            self._pending[pending.id] = pending
        return pending

    def confirm(self, pending_id: str, approved: bool) -> CommandResult:
        """Answer a proposal. Declining aborts with no network call."""
        with self._lock:
            pending = self._pending.pop(pending_id, None)
        if pending is None:
            raise KeyError(f"Unknown or already answered command: {pending_id}")
        if not approved:
            return self._aborted(pending.command)
        return self._send(pending.command)

    def pending(self) -> list[PendingCommand]:
        with self._lock:
            return list(self._pending.values())

    # === Dispatch ===

    def execute(self, command: Command, confirm: Optional[Callable[[Command], bool]] = None) -> CommandResult:
        """Send command and report the daemon's verdict.

        Commands requiring confirmation are only sent if confirm(command)
        returns True; without a confirm callable they are aborted.
        """
        if command.requires_confirmation and (confirm is None or not confirm(command)):
            return self._aborted(command)
        return self._send(command)

    def _aborted(self, command: Command) -> CommandResult:
        print(f"[DISPATCH] {command.kind.value} cancelled by user")
        return CommandResult(command=command, ok=False, message="Cancelled", failure=FailureKind.ABORTED)

    def _call(self, command: Command):
        payload = command.payload
        kind = command.kind
        if kind == CommandKind.START:
            return self.client.start()
        if kind == CommandKind.STOP:
            return self.client.stop()
        if kind == CommandKind.TOGGLE_AUTO_TRADING:
            return self.client.set_auto_trading(payload["enabled"])
        if kind == CommandKind.SET_DRY_RUN:
            return self.client.set_dry_run(payload["enabled"])
        if kind == CommandKind.EXECUTE_TRADE:
            return self.client.execute_trade(payload["tokenMint"], payload.get("sellPercent"))
        if kind == CommandKind.SAVE_CONFIG:
            return self.client.update_config(payload["settings"])
        if kind == CommandKind.REFRESH_PORTFOLIO:
            return self.client.refresh_portfolio()
        raise ValueError(f"Unknown command: {kind}")

    def _send(self, command: Command) -> CommandResult:
        try:
            ack = self._call(command)
        except GatewayError as e:
            print(f"[DISPATCH] {command.kind.value} failed ({e.kind.value}): {e.message}")
            self.notifier.error(e.message)
            return CommandResult(command=command, ok=False, message=e.message,
                                 failure=e.kind, status_code=e.status)

        ack = ack if isinstance(ack, dict) else {"data": ack}
        message = str(ack.get("message") or f"{command.kind.value} succeeded")
        invalidated = self.cache.invalidate_many(command.target_keys)
        print(f"[DISPATCH] {command.kind.value} ok: {message} "
              f"(invalidated {sorted(k.value for k in invalidated)})")
        self.notifier.success(message)

        if self.refresh is not None and invalidated:
            try:
                self.refresh(invalidated)
            except Exception as e:
                # The command itself succeeded; the next tick will catch up
                print(f"[DISPATCH] Re-fetch after {command.kind.value} failed: {e}")

        return CommandResult(command=command, ok=True, message=message, data=ack, invalidated=invalidated)
