"""
View models for each dashboard tab

Renderers turn already-cached resources plus the reconciled TradingState
into plain dicts. They never fetch.
"""

from src.core.models import ResourceKey, TradingState, safe_dict, safe_float

MIN_POSITION_VALUE = 0.01   # Hide dust below one cent
TOP_POSITIONS = 10


def _position_value(pos: dict) -> float:
    return safe_float(pos.get("balanceUiAmount")) * safe_float(pos.get("currentPrice"))


def header(portfolio, state: TradingState) -> dict:
    portfolio = safe_dict(portfolio)
    pnl = safe_float(portfolio.get("totalUnrealizedPnL"))
    return {
        "totalValue": safe_float(portfolio.get("totalValue")),
        "unrealizedPnL": pnl,
        "pnlPositive": pnl >= 0,
        "solBalance": round(safe_float(portfolio.get("solBalance")), 4),
        "connection": state.connection.value,
        "connectionLabel": state.connection_label,
        "dryRun": state.dry_run,
    }


def top_positions(portfolio, limit: int = TOP_POSITIONS) -> list:
    """Largest positions by current value, dust excluded, with allocation %"""
    portfolio = safe_dict(portfolio)
    positions = [p for p in portfolio.get("positions") or [] if isinstance(p, dict)]
    total = safe_float(portfolio.get("totalValue"))

    significant = [
        p for p in positions
        if safe_float(p.get("balanceUiAmount")) > 0 and _position_value(p) >= MIN_POSITION_VALUE
    ]
    significant.sort(key=_position_value, reverse=True)

    rows = []
    for p in significant[:limit]:
        value = _position_value(p)
        token = safe_dict(p.get("tokenInfo"))
        rows.append({
            "mintAddress": p.get("mintAddress"),
            "symbol": token.get("symbol") or "Unknown",
            "name": token.get("name") or "Unknown Token",
            "balance": safe_float(p.get("balanceUiAmount")),
            "value": value,
            "pnl": safe_float(p.get("unrealizedPnL")),
            "pnlPercent": safe_float(p.get("unrealizedPnLPercent")),
            "allocationPercent": min(value / total * 100, 100.0) if total > 0 else 0.0,
        })
    return rows


def quick_stats(portfolio) -> dict:
    portfolio = safe_dict(portfolio)
    positions = [p for p in portfolio.get("positions") or [] if isinstance(p, dict)]
    return {
        "profitable": sum(1 for p in positions if safe_float(p.get("unrealizedPnLPercent")) > 0),
        "losing": sum(1 for p in positions if safe_float(p.get("unrealizedPnLPercent")) < 0),
        "totalPositions": sum(1 for p in positions if safe_float(p.get("balanceUiAmount")) > 0),
        "totalPnLPercent": round(safe_float(portfolio.get("totalUnrealizedPnLPercent")), 2),
    }


def status_panel(state: TradingState) -> dict:
    return {
        "daemon": "Running" if state.daemon_running else "Stopped",
        "autoTrader": "Enabled" if state.auto_trading_enabled else "Disabled",
        "dailyTrades": f"{state.daily_trades} / {state.daily_trade_limit}",
        "successRate": f"{state.success_rate_percent:g}%",
        "autoTradingButton": "Disable Auto Trading" if state.auto_trading_enabled else "Enable Auto Trading",
    }


def opportunity_rows(opportunities) -> list:
    rows = []
    for op in opportunities or []:
        if not isinstance(op, dict):
            continue
        token = safe_dict(op.get("token"))
        rows.append({
            "mintAddress": token.get("mintAddress"),
            "symbol": token.get("symbol") or "Unknown",
            "currentProfitPercent": safe_float(op.get("currentProfitPercent")),
            "recommendedSellPercent": safe_float(op.get("recommendedSellPercent")),
        })
    return rows


def history_rows(history) -> list:
    rows = []
    for rec in history or []:
        if not isinstance(rec, dict):
            continue
        rows.append({
            "timestamp": rec.get("timestamp"),
            "tokenSymbol": rec.get("tokenSymbol") or "Unknown",
            "action": (rec.get("action") or "").upper(),
            "amount": safe_float(rec.get("amount")),
            "price": safe_float(rec.get("price")),
            "success": bool(rec.get("success")),
        })
    return rows


# === Per-tab renderers: (data, state) -> dict ===

def render_overview(data: dict, state: TradingState) -> dict:
    portfolio = data.get(ResourceKey.PORTFOLIO)
    return {
        "topPositions": top_positions(portfolio),
        "quickStats": quick_stats(portfolio),
        "status": status_panel(state),
        "opportunities": opportunity_rows(data.get(ResourceKey.OPPORTUNITIES)),
    }


def render_portfolio(data: dict, state: TradingState) -> dict:
    portfolio = data.get(ResourceKey.PORTFOLIO)
    return {
        "positions": top_positions(portfolio, limit=len(safe_dict(portfolio).get("positions") or [])),
        "quickStats": quick_stats(portfolio),
    }


def render_trading(data: dict, state: TradingState) -> dict:
    return {
        "status": status_panel(state),
        "canTrade": state.can_trade,
        "opportunities": opportunity_rows(data.get(ResourceKey.OPPORTUNITIES)),
    }


def render_history(data: dict, state: TradingState) -> dict:
    return {"trades": history_rows(data.get(ResourceKey.TRADE_HISTORY))}


def render_settings(data: dict, state: TradingState) -> dict:
    config = safe_dict(data.get(ResourceKey.CONFIG))
    execution = safe_dict(config.get("execution"))
    profit = safe_dict(config.get("profitTaking"))
    risk = safe_dict(config.get("riskManagement"))
    return {
        "dryRun": state.dry_run,
        "slippagePercent": safe_float(execution.get("slippagePercent")),
        "maxPriceImpactPercent": safe_float(execution.get("maxPriceImpactPercent")),
        "profitTakingEnabled": bool(profit.get("enabled")),
        "targets": [t for t in profit.get("targets") or [] if isinstance(t, dict)],
        "maxDailyTrades": risk.get("maxDailyTrades", state.daily_trade_limit),
    }
