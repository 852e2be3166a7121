"""
Dashboard controller

One controller for every tab, driven by the VIEWS table (resources each
view needs + the function that renders it). It owns the session's client
cache and hands it to the dispatcher, tab loader and scheduler.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from src.core.cache import TTLCache
from src.core.client import GatewayClient, GatewayError
from src.core.config import ControlConfig, get_control_config
from src.core.models import CommandResult, ResourceKey, TradingState
from . import views
from .dispatcher import (
    CommandDispatcher, PendingCommand, auto_trading_command, dry_run_command, execute_trade_command,
    refresh_portfolio_command, save_config_command, start_command, stop_command,
)
from .notifications import Notifier
from .reconciler import reconcile
from .scheduler import RefreshScheduler
from .tab_loader import TabLoader


@dataclass(frozen=True)
class View:
    keys: frozenset
    render: Callable[[dict, TradingState], dict]


VIEWS = {
    "overview": View(frozenset({ResourceKey.PORTFOLIO, ResourceKey.TRADING_STATUS, ResourceKey.OPPORTUNITIES}),
                     views.render_overview),
    "portfolio": View(frozenset({ResourceKey.PORTFOLIO}), views.render_portfolio),
    "trading": View(frozenset({ResourceKey.TRADING_STATUS, ResourceKey.OPPORTUNITIES}), views.render_trading),
    "history": View(frozenset({ResourceKey.TRADE_HISTORY}), views.render_history),
    "settings": View(frozenset({ResourceKey.CONFIG}), views.render_settings),
}

DEFAULT_VIEW = "overview"

# Loaded together at session start
INITIAL_KEYS = (ResourceKey.PORTFOLIO, ResourceKey.TRADING_STATUS, ResourceKey.CONFIG, ResourceKey.OPPORTUNITIES)

# Re-requested on every scheduler tick (through the cache)
SCHEDULED_KEYS = (ResourceKey.PORTFOLIO, ResourceKey.TRADING_STATUS, ResourceKey.OPPORTUNITIES)


class DashboardController:
    """
    Client session against one gateway.

    Usage:
        ctl = DashboardController(GatewayClient(url))
        ctl.init()                 # initial load + auto-refresh
        ctl.switch_tab("history")  # lazy load
        ctl.start_trading()
        ctl.teardown()
    """

    def __init__(self, client: GatewayClient, cache: Optional[TTLCache] = None,
                 config: Optional[ControlConfig] = None, view_table: Optional[dict] = None,
                 notifier: Optional[Notifier] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or get_control_config()
        self.client = client
        self.cache = cache if cache is not None else TTLCache(name="client", clock=clock)
        self.notifier = notifier or Notifier(ttl_seconds=self.config.notification_ttl_seconds, clock=clock)
        self.views = view_table or VIEWS

        self.fetchers = {
            ResourceKey.PORTFOLIO: client.get_portfolio,
            ResourceKey.TRADING_STATUS: client.get_trading_status,
            ResourceKey.CONFIG: client.get_config,
            ResourceKey.OPPORTUNITIES: client.get_opportunities,
            ResourceKey.TRADE_HISTORY: client.get_trade_history,
        }

        self.dispatcher = CommandDispatcher(client, self.cache, refresh=self.load, notifier=self.notifier)
        self.scheduler = RefreshScheduler(self.refresh_tick, interval_seconds=self.config.refresh_interval_seconds)
        self.tabs = TabLoader({name: view.keys for name, view in self.views.items()}, self.load)

        self.active_view: Optional[str] = None
        self.errors: dict[ResourceKey, str] = {}  # key -> last load error
        self._executor = ThreadPoolExecutor(max_workers=max(1, self.config.max_parallel_loads),
                                            thread_name_prefix="loader")
        self._lifecycle_lock = threading.Lock()
        self._initialized = False
        self._torn_down = False

    # === Loading ===

    def fetch(self, key: ResourceKey, force: bool = False):
        """One resource through the cache (force marks the entry stale first)"""
        if force:
            self.cache.invalidate(key)
        return self.cache.get(key, self.config.ttl_for(key), self.fetchers[key])

    def load(self, keys: Iterable[ResourceKey], notify_errors: bool = False) -> dict:
        """Fetch keys in parallel. Each result lands independently; failures
        are recorded and absorbed. Returns {key: value} for keys that loaded."""
        keys = list(dict.fromkeys(keys))
        results = {}
        if not keys:
            return results

        futures = {self._executor.submit(self.fetch, key): key for key in keys}
        for future in as_completed(futures):
            key = futures[future]
            try:
                results[key] = future.result()
                self.errors.pop(key, None)
            except GatewayError as e:
                self.errors[key] = e.message
                print(f"[LOAD] {key.value} failed: {e.message}")
                if notify_errors:
                    self.notifier.error(f"API Error: {e.message}")
        return results

    def refresh_tick(self) -> dict:
        return self.load(SCHEDULED_KEYS)

    # === Lifecycle ===

    def init(self) -> bool:
        """Initial load and start auto-refresh. Repeat calls are no-ops."""
        with self._lifecycle_lock:
            if self._initialized:
                return False
            self._initialized = True

        print("[CONTROL] Initializing dashboard session...")
        loaded = self.load(INITIAL_KEYS, notify_errors=True)
        if len(loaded) < len(INITIAL_KEYS):
            self.notifier.error("Failed to load dashboard data")
        self.active_view = DEFAULT_VIEW
        self.tabs.mark_loaded(DEFAULT_VIEW)
        self.scheduler.start()
        print(f"[CONTROL] Dashboard initialized ({len(loaded)}/{len(INITIAL_KEYS)} resources)")
        return True

    def teardown(self) -> bool:
        with self._lifecycle_lock:
            if self._torn_down:
                return False
            self._torn_down = True
        self.scheduler.stop()
        self._executor.shutdown(wait=False)
        print("[CONTROL] Dashboard session closed")
        return True

    # === Views ===

    def switch_tab(self, view: str) -> dict:
        self.tabs.activate(view)
        self.active_view = view
        return self.render(view)

    def trading_state(self) -> TradingState:
        """Recomputed on every call from whatever is cached"""
        return reconcile(self.cache.peek(ResourceKey.TRADING_STATUS), self.cache.peek(ResourceKey.CONFIG))

    def render(self, view: Optional[str] = None) -> dict:
        view = view or self.active_view or DEFAULT_VIEW
        if view not in self.views:
            raise KeyError(f"Unknown view: {view}")
        data = {key: self.cache.peek(key) for key in ResourceKey}
        state = self.trading_state()
        return {
            "view": view,
            "header": views.header(data[ResourceKey.PORTFOLIO], state),
            "state": state.to_dict(),
            "body": self.views[view].render(data, state),
            "notifications": [{"message": n.message, "level": n.level} for n in self.notifier.active()],
            "errors": {key.value: msg for key, msg in self.errors.items()},
        }

    # === Commands ===

    def start_trading(self) -> CommandResult:
        return self.dispatcher.execute(start_command())

    def stop_trading(self) -> CommandResult:
        return self.dispatcher.execute(stop_command())

    def toggle_auto_trading(self) -> CommandResult:
        """Flip auto trading based on a fresh read of the daemon status"""
        try:
            status = self.fetch(ResourceKey.TRADING_STATUS, force=True)
        except GatewayError as e:
            self.notifier.error("Failed to toggle auto trading")
            return CommandResult(command=auto_trading_command(True), ok=False, message=e.message,
                                 failure=e.kind, status_code=e.status)
        enabled = reconcile(status).auto_trading_enabled
        return self.dispatcher.execute(auto_trading_command(not enabled))

    def toggle_dry_run(self, enabled: bool) -> CommandResult:
        return self.dispatcher.execute(dry_run_command(enabled))

    def save_config(self, partial: dict) -> CommandResult:
        return self.dispatcher.execute(save_config_command(partial))

    def propose_trade(self, token_mint: str, sell_percent: Optional[float] = None) -> PendingCommand:
        return self.dispatcher.propose(execute_trade_command(token_mint, sell_percent))

    def confirm_trade(self, pending_id: str, approved: bool) -> CommandResult:
        return self.dispatcher.confirm(pending_id, approved)

    def execute_trade(self, token_mint: str, sell_percent: Optional[float] = None,
                      confirm: Optional[Callable] = None) -> CommandResult:
        return self.dispatcher.execute(execute_trade_command(token_mint, sell_percent), confirm=confirm)

    def refresh_portfolio(self) -> CommandResult:
        return self.dispatcher.execute(refresh_portfolio_command())

    def refresh_all(self) -> dict:
        """Mark every cached resource stale and reload the initial set"""
        self.cache.clear()
        loaded = self.load(INITIAL_KEYS, notify_errors=True)
        if len(loaded) == len(INITIAL_KEYS):
            self.notifier.success("Dashboard refreshed")
        return loaded
