"""
Centralized Configuration for the Trading Control Surface

Contains gateway/client settings, per-resource cache TTLs and the daemon's
persisted trading settings (profit taking, risk management, execution).
"""

import copy
import json
import os
import threading
from dataclasses import dataclass, field
from typing import Optional

from .models import ResourceKey

_TRADING_CONFIG_FILE = os.path.join(os.path.dirname(__file__), "..", "..", "data", "trading-config.json")


@dataclass
class ControlConfig:
    """Gateway and client session configuration"""

    gateway_url: str = "http://localhost:3000"
    port: int = 3000
    dashboard_secret: str = ""                  # Empty = mutating endpoints are open (local dev)

    refresh_interval_seconds: float = 30.0      # Auto-refresh tick period
    gateway_cache_ttl_seconds: float = 30.0     # Shared server-side portfolio cache
    notification_ttl_seconds: float = 5.0       # Transient notifications auto-dismiss after this
    request_timeout_seconds: float = 15.0       # Transport timeout for gateway calls
    max_parallel_loads: int = 4                 # Threads used for batch loads

    # Client-side TTL per resource (0 = always fetch)
    resource_ttl_seconds: dict = field(default_factory=lambda: {
        ResourceKey.PORTFOLIO: 120.0,
        ResourceKey.OPPORTUNITIES: 120.0,
        ResourceKey.TRADING_STATUS: 0.0,
        ResourceKey.CONFIG: 300.0,
        ResourceKey.TRADE_HISTORY: 60.0,
    })

    def ttl_for(self, key: ResourceKey) -> float:
        return float(self.resource_ttl_seconds.get(key, 0.0))


def load_control_config(env: Optional[dict] = None) -> ControlConfig:
    """Build a ControlConfig from environment variables over the defaults"""
    env = os.environ if env is None else env
    cfg = ControlConfig()

    if env.get("GATEWAY_URL", "").strip():
        cfg.gateway_url = env["GATEWAY_URL"].strip().rstrip("/")

    port = env.get("PORT") or env.get("WEB_PORT")
    if port:
        try:
            cfg.port = int(port)
        except ValueError:
            print(f"[CONFIG] Ignoring invalid port {port!r}, using {cfg.port}")

    cfg.dashboard_secret = env.get("DASHBOARD_SECRET", "").strip()

    for name, attr in (
        ("REFRESH_INTERVAL_SECONDS", "refresh_interval_seconds"),
        ("GATEWAY_CACHE_TTL_SECONDS", "gateway_cache_ttl_seconds"),
        ("REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"),
    ):
        raw = env.get(name)
        if raw:
            try:
                setattr(cfg, attr, float(raw))
            except ValueError:
                print(f"[CONFIG] Ignoring invalid {name}={raw!r}")
    return cfg


# Global configuration instance
_control_config: Optional[ControlConfig] = None
_config_lock = threading.Lock()


def get_control_config() -> ControlConfig:
    """Get global control configuration (read from the environment on first call)"""
    global _control_config
    if _control_config is None:
        with _config_lock:
            if _control_config is None:
                _control_config = load_control_config()
    return _control_config


# === Daemon trading settings ===

_DEFAULT_TRADING_SETTINGS = {
    "profitTaking": {
        "enabled": True,
        "targets": [
            {"id": "quick-profit", "name": "25% Quick Profit", "triggerPercent": 25, "sellPercent": 30, "enabled": True},
            {"id": "good-profit", "name": "50% Good Profit", "triggerPercent": 50, "sellPercent": 40, "enabled": True},
            {"id": "excellent-profit", "name": "100% Excellent Profit", "triggerPercent": 100, "sellPercent": 60, "enabled": True},
            {"id": "moon-profit", "name": "200% Moon Profit", "triggerPercent": 200, "sellPercent": 80, "enabled": True},
        ],
        "stopLoss": {
            "enabled": False,       # Risky in volatile markets
            "percentage": -30,
        },
    },
    "riskManagement": {
        "maxPositionSizePercent": 20,
        "maxDailyTrades": 10,
        "requireMinimumProfit": 5,
    },
    "monitoring": {
        "checkIntervalMs": 60000,
        "priceUpdateIntervalMs": 30000,
        "enableNotifications": True,
    },
    "execution": {
        "dryRun": True,             # No real trades until explicitly enabled
        "slippagePercent": 1.0,
        "maxPriceImpactPercent": 5.0,
        "retryAttempts": 3,
    },
}

# Bounds validation for POST /api/config - (section, field) -> (lo, hi)
SETTINGS_BOUNDS = {
    ("execution", "slippagePercent"): (0.1, 50.0),
    ("execution", "maxPriceImpactPercent"): (0.1, 50.0),
    ("riskManagement", "maxDailyTrades"): (1, 1000),
    ("riskManagement", "maxPositionSizePercent"): (1, 100),
}


def default_trading_settings() -> dict:
    return copy.deepcopy(_DEFAULT_TRADING_SETTINGS)


def merge_settings(base: dict, partial: dict) -> dict:
    """Deep-merge partial over base, returning a new dict.

    Nested dicts merge key by key; lists and scalars replace wholesale.
    """
    merged = copy.deepcopy(base)
    for key, value in (partial or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# Expected JSON type of structural fields; a partial update may not change them
SETTINGS_SHAPES = {
    ("profitTaking",): dict,
    ("riskManagement",): dict,
    ("monitoring",): dict,
    ("execution",): dict,
    ("profitTaking", "targets"): list,
    ("profitTaking", "stopLoss"): dict,
    ("profitTaking", "enabled"): bool,
    ("execution", "dryRun"): bool,
}


def _lookup(partial: dict, path: tuple):
    node = partial
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node


def validate_settings(partial: dict) -> Optional[str]:
    """Return an error message if partial would reshape a section or holds an out-of-bounds value"""
    for path, expected in SETTINGS_SHAPES.items():
        found, value = _lookup(partial or {}, path)
        if found and not isinstance(value, expected):
            return f"{'.'.join(path)} must be {'an object' if expected is dict else 'a ' + expected.__name__}"
    for (section, name), (lo, hi) in SETTINGS_BOUNDS.items():
        block = (partial or {}).get(section)
        if not isinstance(block, dict) or name not in block:
            continue
        try:
            val = float(block[name])
        except (ValueError, TypeError):
            return f"{section}.{name} must be a number"
        if not (lo <= val <= hi):
            return f"{section}.{name} must be between {lo} and {hi}"
    return None


def save_trading_settings(settings: dict, path: Optional[str] = None):
    """Persist trading settings using an atomic tmp+replace write"""
    config_path = os.path.abspath(path or _TRADING_CONFIG_FILE)
    os.makedirs(os.path.dirname(config_path), exist_ok=True)
    tmp_path = config_path + ".tmp"
    with open(tmp_path, "w") as f:
        json.dump(settings, f, indent=2)
    os.replace(tmp_path, config_path)
    print(f"[CONFIG] Saved trading config to {config_path}")


def load_trading_settings(path: Optional[str] = None) -> dict:
    """Load persisted trading settings merged over the defaults.

    A missing file yields the defaults; an unreadable or malformed one is
    reported and also yields the defaults.
    """
    config_path = os.path.abspath(path or _TRADING_CONFIG_FILE)
    if not os.path.exists(config_path):
        return default_trading_settings()

    try:
        with open(config_path, "r") as f:
            data = json.load(f)
        data = data if isinstance(data, dict) else {}
        problem = validate_settings(data)
        if problem:
            print(f"[CONFIG] Ignoring {config_path}: {problem}")
            return default_trading_settings()
        print(f"[CONFIG] Loaded trading config from {config_path}")
        return merge_settings(default_trading_settings(), data)
    except (OSError, ValueError) as e:
        print(f"[CONFIG] Failed to load config: {e}")
        return default_trading_settings()
