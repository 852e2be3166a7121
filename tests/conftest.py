"""
Shared fixtures: a controllable clock, a gateway backed by the in-process
daemon, and a requests-like session that routes into Flask's test client.
"""

import json

import pytest

from src.core.cache import GatewayCache
from src.core.client import GatewayClient
from src.core.config import ControlConfig
from src.daemon.local import LocalDaemon
from src.web.app import create_app

GATEWAY_URL = "http://gateway.test"


class FakeClock:
    """Monotonic clock the test advances by hand"""

    def __init__(self, start: float = 0.0):
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float):
        self.t += seconds


class FakeResponse:
    def __init__(self, status_code: int, text: str):
        self.status_code = status_code
        self.text = text

    def json(self):
        return json.loads(self.text)


class FlaskSession:
    """Stands in for requests.Session, answering from a Flask test client"""

    def __init__(self, flask_client, base_url: str = GATEWAY_URL):
        self.flask_client = flask_client
        self.base_url = base_url
        self.requests = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.requests.append((method, path))
        resp = self.flask_client.open(path, method=method, json=json, headers=headers or {})
        return FakeResponse(resp.status_code, resp.get_data(as_text=True))


SAMPLE_PORTFOLIO = {
    "totalValue": 15.89,
    "totalUnrealizedPnL": 2.5,
    "totalUnrealizedPnLPercent": 18.7,
    "solBalance": 0.123456,
    "positions": [
        {"mintAddress": "BONKmint", "balanceUiAmount": 1000, "currentPrice": 0.01,
         "unrealizedPnL": 3.0, "unrealizedPnLPercent": 42.0, "tokenInfo": {"symbol": "BONK", "name": "Bonk"}},
        {"mintAddress": "WIFmint", "balanceUiAmount": 2, "currentPrice": 2.5,
         "unrealizedPnL": -0.5, "unrealizedPnLPercent": -9.0, "tokenInfo": {"symbol": "WIF", "name": "dogwifhat"}},
        {"mintAddress": "DUSTmint", "balanceUiAmount": 1, "currentPrice": 0.001,
         "unrealizedPnL": 0.0, "unrealizedPnLPercent": 0.0, "tokenInfo": {"symbol": "DUST"}},
    ],
}

SAMPLE_OPPORTUNITIES = [
    {"token": {"mintAddress": "BONKmint", "symbol": "BONK"}, "currentProfitPercent": 42.0,
     "recommendedSellPercent": 30, "balance": 1000, "currentPrice": 0.01},
    {"token": {"mintAddress": "JUPmint", "symbol": "JUP"}, "currentProfitPercent": 55.0,
     "recommendedSellPercent": 40, "balance": 10, "currentPrice": 0.8},
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def daemon():
    d = LocalDaemon()
    d.set_wallet(True, can_sign=True, public_key="So1anaPubKey111")
    d.set_portfolio(SAMPLE_PORTFOLIO)
    d.set_opportunities(SAMPLE_OPPORTUNITIES)
    return d


@pytest.fixture
def gateway_cache(clock):
    return GatewayCache(ttl_seconds=30.0, clock=clock)


@pytest.fixture
def app(daemon, gateway_cache):
    return create_app(daemon=daemon, config=ControlConfig(), cache=gateway_cache)


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def session(http):
    return FlaskSession(http)


@pytest.fixture
def client(session):
    return GatewayClient(GATEWAY_URL, session=session)
