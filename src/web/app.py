"""
Trading Gateway - HTTP surface between dashboard clients and the daemon

Design principles:
- Thin: every route is one daemon call plus JSON shaping
- One shared cache in front of the expensive portfolio valuation
- Commands always bypass the cache
- Errors are {"error": str} with a non-2xx status
"""

import functools
import hmac
import time
from datetime import datetime, timezone
from flask import Flask, jsonify, request

from src.core.cache import GatewayCache
from src.core.config import ControlConfig, get_control_config, validate_settings
from src.core.models import ResourceKey, safe_bool, safe_float
from src.daemon.base import DaemonBackend, DaemonError, DaemonResult, OpportunityNotFound
from src.daemon.local import LocalDaemon

# Entries a successful trade makes stale on the gateway
TRADE_INVALIDATES = frozenset({ResourceKey.PORTFOLIO, ResourceKey.OPPORTUNITIES})

RECENT_ACTIVITY_LIMIT = 20


def _authorized(secret: str) -> bool:
    """No secret configured, or a read, or the secret supplied as Bearer token / ?token="""
    if not secret or request.method in ("GET", "HEAD", "OPTIONS"):
        return True
    header = request.headers.get("Authorization", "")
    supplied = header[len("Bearer "):] if header.startswith("Bearer ") else request.args.get("token", "")
    return hmac.compare_digest(supplied.encode(), secret.encode())


def create_app(daemon: DaemonBackend = None, config: ControlConfig = None, cache: GatewayCache = None):
    app = Flask(__name__)

    config = config or get_control_config()

    def require_auth(f):
        """Guard a route's mutating methods with the gateway secret"""
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            if _authorized(config.dashboard_secret):
                return f(*args, **kwargs)
            print(f"[AUTH] Rejected {request.method} {request.path}")
            return jsonify({"error": "Unauthorized"}), 401
        return decorated

    def json_body():
        """Request body as a dict; None if it is JSON but not an object"""
        data = request.get_json(silent=True)
        if data is None:
            return {}
        return data if isinstance(data, dict) else None

    def toggle_flag():
        """Parse {"enabled": flag}, returning (value, error_response)"""
        data = json_body()
        if data is None:
            return None, (jsonify({"error": "Request body must be a JSON object"}), 400)
        if "enabled" not in data:
            return None, (jsonify({"error": "Missing 'enabled'"}), 400)
        enabled = safe_bool(data["enabled"], None)
        if enabled is None:
            return None, (jsonify({"error": f"'enabled' must be a boolean, got {data['enabled']!r}"}), 400)
        return enabled, None

    daemon = daemon or LocalDaemon()
    cache = cache or GatewayCache(ttl_seconds=config.gateway_cache_ttl_seconds)
    started_at = time.time()

    app.extensions["daemon"] = daemon
    app.extensions["gateway_cache"] = cache

    def fail(action: str, e: Exception):
        """Map a daemon failure onto the {error} response shape"""
        if isinstance(e, OpportunityNotFound):
            return jsonify({"error": str(e)}), 404
        if isinstance(e, DaemonError):
            print(f"[GATEWAY] Daemon error trying to {action}: {e}")
            return jsonify({"error": str(e)}), 500
        print(f"[GATEWAY] Error trying to {action}: {e}")
        return jsonify({"error": f"Failed to {action}"}), 500

    def command_response(result: DaemonResult, **extra):
        if not result.success:
            return jsonify({"success": False, "error": result.message or "Command rejected by daemon"})
        body = {"success": True, "message": result.message}
        body.update(result.data)
        body.update(extra)
        return jsonify(body)

    def cached_portfolio():
        snapshot = cache.fetch(ResourceKey.PORTFOLIO, daemon.get_portfolio_snapshot)
        if not snapshot:
            raise DaemonError("No portfolio data available")
        return snapshot

    # === Portfolio ===

    @app.route('/api/portfolio', methods=['GET', 'POST'])
    @require_auth
    def api_portfolio():
        """GET serves the shared cached valuation; POST forces a fresh one"""
        try:
            if request.method == 'POST':
                cache.invalidate(ResourceKey.PORTFOLIO)
                print("[GATEWAY] Forced portfolio revaluation")
            return jsonify(cached_portfolio())
        except Exception as e:
            return fail("get portfolio", e)

    @app.route('/api/portfolio/opportunities')
    def api_opportunities():
        try:
            opportunities = cache.fetch(ResourceKey.OPPORTUNITIES, daemon.get_opportunities)
            return jsonify(opportunities if isinstance(opportunities, list) else [])
        except Exception as e:
            return fail("get opportunities", e)

    # === Trading control ===

    @app.route('/api/trading/status')
    def api_trading_status():
        try:
            return jsonify({
                "daemon": daemon.get_daemon_status(),
                "autoTrader": daemon.get_auto_trader_status(),
                "wallet": daemon.get_wallet_status(),
            })
        except Exception as e:
            return fail("get trading status", e)

    @app.route('/api/trading/start', methods=['POST'])
    @require_auth
    def api_trading_start():
        """Start the daemon (succeeds if it is already running)"""
        try:
            return command_response(daemon.start())
        except Exception as e:
            return fail("start trading daemon", e)

    @app.route('/api/trading/stop', methods=['POST'])
    @require_auth
    def api_trading_stop():
        """Stop the daemon (succeeds if it is already stopped)"""
        try:
            return command_response(daemon.stop())
        except Exception as e:
            return fail("stop trading daemon", e)

    @app.route('/api/trading/execute/<token_mint>', methods=['POST'])
    @require_auth
    def api_trading_execute(token_mint):
        data = json_body()
        if data is None:
            return jsonify({"error": "Request body must be a JSON object"}), 400
        sell_percent = data.get("sellPercent")
        if sell_percent is not None:
            pct = safe_float(sell_percent, -1.0)
            if not (0 < pct <= 100):
                return jsonify({"error": "sellPercent must be between 0 and 100"}), 400
            sell_percent = pct

        try:
            result = daemon.execute_trade(token_mint, sell_percent)
        except Exception as e:
            return fail("execute trade", e)

        if result.success:
            cache.invalidate_many(TRADE_INVALIDATES)
            print(f"[GATEWAY] Trade on {token_mint} executed, portfolio cache invalidated")
        return command_response(result)

    @app.route('/api/trading/history')
    def api_trading_history():
        try:
            return jsonify(daemon.get_trade_history())
        except Exception as e:
            return fail("get trade history", e)

    @app.route('/api/recent-activity')
    def api_recent_activity():
        try:
            history = daemon.get_trade_history()
            return jsonify({"success": True, "data": history[:RECENT_ACTIVITY_LIMIT]})
        except Exception as e:
            print(f"[GATEWAY] Recent activity error: {e}")
            return jsonify({"success": False, "error": "Failed to get recent activity"}), 500

    # === Configuration ===

    def apply_config(partial):
        if not isinstance(partial, dict):
            return jsonify({"error": "Configuration must be a JSON object"}), 400
        problem = validate_settings(partial)
        if problem:
            return jsonify({"error": problem}), 400
        return command_response(daemon.update_config(partial))

    @app.route('/api/config', methods=['GET', 'POST'])
    @require_auth
    def api_config():
        """GET returns current settings; POST deep-merges a partial update"""
        try:
            if request.method == 'POST':
                return apply_config(request.get_json(silent=True))
            return jsonify(daemon.get_config())
        except Exception as e:
            return fail("update configuration" if request.method == 'POST' else "get configuration", e)

    @app.route('/api/settings', methods=['GET', 'POST'])
    @require_auth
    def api_settings():
        """Enveloped variant of /api/config"""
        try:
            if request.method == 'POST':
                return apply_config(request.get_json(silent=True))
            return jsonify({"success": True, "data": daemon.get_config()})
        except Exception as e:
            print(f"[GATEWAY] Settings error: {e}")
            return jsonify({"success": False, "error": "Failed to access settings"}), 500

    @app.route('/api/config/dry-run', methods=['POST'])
    @require_auth
    def api_config_dry_run():
        enabled, problem = toggle_flag()
        if problem:
            return problem
        try:
            return command_response(daemon.set_dry_run(enabled))
        except Exception as e:
            return fail("toggle dry run mode", e)

    @app.route('/api/config/auto-trading', methods=['POST'])
    @require_auth
    def api_config_auto_trading():
        """Toggle auto trading without starting or stopping the daemon"""
        enabled, problem = toggle_flag()
        if problem:
            return problem
        try:
            return command_response(daemon.set_auto_trading(enabled))
        except Exception as e:
            return fail("toggle auto trading mode", e)

    # === Health ===

    @app.route('/api/health')
    def api_health():
        try:
            running = bool(daemon.get_daemon_status().get("isRunning"))
        except Exception as e:
            print(f"[GATEWAY] Health check could not reach daemon: {e}")
            running = None
        return jsonify({
            "status": "ok",
            "uptime": round(time.time() - started_at, 1),
            "daemonRunning": running,
            "cache": cache.stats(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return app
