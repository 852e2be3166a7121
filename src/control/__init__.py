from .reconciler import reconcile, connection_state
from .dispatcher import (
    CommandDispatcher,
    PendingCommand,
    COMMAND_TARGETS,
    start_command,
    stop_command,
    auto_trading_command,
    dry_run_command,
    execute_trade_command,
    save_config_command,
    refresh_portfolio_command,
)
from .scheduler import RefreshScheduler
from .tab_loader import TabLoader, ViewState
from .notifications import Notifier
from .controller import DashboardController, VIEWS, INITIAL_KEYS, SCHEDULED_KEYS

__all__ = [
    "reconcile",
    "connection_state",
    "CommandDispatcher",
    "PendingCommand",
    "COMMAND_TARGETS",
    "start_command",
    "stop_command",
    "auto_trading_command",
    "dry_run_command",
    "execute_trade_command",
    "save_config_command",
    "refresh_portfolio_command",
    "RefreshScheduler",
    "TabLoader",
    "ViewState",
    "Notifier",
    "DashboardController",
    "VIEWS",
    "INITIAL_KEYS",
    "SCHEDULED_KEYS",
]
