"""
Gateway HTTP client for the trading control surface
"""

from typing import Optional
from urllib.parse import quote

import requests

from .models import FailureKind


class GatewayError(Exception):
    """Base class for every failure talking to the gateway"""
    kind = FailureKind.NETWORK

    def __init__(self, message: str, status: Optional[int] = None, body=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


class TransportError(GatewayError):
    """Request failed before any response arrived"""
    kind = FailureKind.NETWORK


class HTTPStatusError(GatewayError):
    """Gateway answered with a non-2xx status"""
    kind = FailureKind.HTTP


class DaemonRejectedError(GatewayError):
    """Gateway answered 2xx but the daemon reported success=false"""
    kind = FailureKind.DAEMON


def unwrap_envelope(body):
    """Return the payload of a gateway response.

    The gateway answers either with a bare payload or with
    {"success": bool, "data": ..., "message": ...}. Enveloped failures raise
    DaemonRejectedError; enveloped acks without data return the envelope
    itself so callers can read its message.
    """
    if isinstance(body, dict) and "success" in body:
        if not body.get("success"):
            message = body.get("error") or body.get("message") or "Request rejected by daemon"
            raise DaemonRejectedError(str(message), body=body)
        if "data" in body:
            return body["data"]
    return body


def _error_message(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if message:
            return str(message)
    return f"HTTP {resp.status_code}"


class GatewayClient:
    """
    Thin client over the gateway's /api surface.

    Every call returns the unwrapped payload or raises a GatewayError
    subclass. Nothing is retried; timeouts are the transport's.
    """

    def __init__(self, base_url: str, secret: str = "", timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["Authorization"] = f"Bearer {self.secret}"
        return headers

    def _request(self, method: str, path: str, data: dict = None):
        url = f"{self.base_url}/api{path}"
        try:
            resp = self.session.request(method, url, json=data, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if not 200 <= resp.status_code < 300:
            raise HTTPStatusError(_error_message(resp), status=resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            raise HTTPStatusError(f"Invalid JSON from {path}", status=resp.status_code)
        return unwrap_envelope(body)

    # === Queries ===

    def get_portfolio(self) -> dict:
        return self._request("GET", "/portfolio")

    def refresh_portfolio(self) -> dict:
        """Ask the gateway to bypass its cache and revalue the portfolio"""
        return self._request("POST", "/portfolio")

    def get_trading_status(self) -> dict:
        return self._request("GET", "/trading/status")

    def get_config(self) -> dict:
        return self._request("GET", "/config")

    def get_settings(self) -> dict:
        return self._request("GET", "/settings")

    def get_opportunities(self) -> list:
        result = self._request("GET", "/portfolio/opportunities")
        return result if isinstance(result, list) else []

    def get_trade_history(self) -> list:
        result = self._request("GET", "/trading/history")
        return result if isinstance(result, list) else []

    def get_recent_activity(self) -> list:
        result = self._request("GET", "/recent-activity")
        return result if isinstance(result, list) else []

    # === Commands ===

    def start(self) -> dict:
        return self._request("POST", "/trading/start")

    def stop(self) -> dict:
        return self._request("POST", "/trading/stop")

    def set_auto_trading(self, enabled: bool) -> dict:
        return self._request("POST", "/config/auto-trading", {"enabled": bool(enabled)})

    def set_dry_run(self, enabled: bool) -> dict:
        return self._request("POST", "/config/dry-run", {"enabled": bool(enabled)})

    def update_config(self, partial: dict) -> dict:
        return self._request("POST", "/config", partial)

    def execute_trade(self, token_mint: str, sell_percent: Optional[float] = None) -> dict:
        body = {"sellPercent": sell_percent} if sell_percent is not None else {}
        return self._request("POST", f"/trading/execute/{quote(token_mint, safe='')}", body)
