#!/usr/bin/env python3
"""
Terminal control session against a running gateway

Usage:
    python control.py                          # Gateway from $GATEWAY_URL
    python control.py --url http://host:3000   # Explicit gateway
    python control.py --start                  # Start the daemon, then watch
"""

import sys
import os
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from src.control.controller import DashboardController
from src.core.client import GatewayClient
from src.core.config import get_control_config


def print_header(ctl: DashboardController):
    view = ctl.render()
    h = view["header"]
    s = view["body"].get("status", {})
    print(f"[{time.strftime('%H:%M:%S')}] {h['connectionLabel']:<13} "
          f"value=${h['totalValue']:.2f} pnl=${h['unrealizedPnL']:+.2f} sol={h['solBalance']:.4f} "
          f"daemon={s.get('daemon', '-')} auto={s.get('autoTrader', '-')} trades={s.get('dailyTrades', '-')}")
    for n in view["notifications"]:
        print(f"    {n['level'].upper()}: {n['message']}")


def main():
    config = get_control_config()
    url = config.gateway_url
    for i, arg in enumerate(sys.argv):
        if arg == '--url' and i + 1 < len(sys.argv):
            url = sys.argv[i + 1]

    client = GatewayClient(url, secret=config.dashboard_secret, timeout=config.request_timeout_seconds)
    ctl = DashboardController(client, config=config)
    ctl.init()
    if '--start' in sys.argv:
        ctl.start_trading()

    try:
        while True:
            print_header(ctl)
            time.sleep(config.refresh_interval_seconds)
    except KeyboardInterrupt:
        pass
    finally:
        ctl.teardown()


if __name__ == '__main__':
    main()
