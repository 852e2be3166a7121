#!/usr/bin/env python3
"""
Trading Gateway - Main Entry Point

Usage:
    python app.py              # Start gateway on port 3000 (or $PORT / $WEB_PORT)
    python app.py --port 8080  # Custom port
"""

import atexit
import signal
import subprocess
import sys
import os
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# One worker: the gateway cache and in-process daemon are per-process state
GUNICORN_OPTIONS = {
    'workers': 1,
    'threads': 4,
    'timeout': 120,
}


def port_from_args(argv, default: int) -> int:
    """--port N on the command line wins over the environment"""
    if '--port' in argv:
        idx = argv.index('--port')
        if idx + 1 < len(argv):
            return int(argv[idx + 1])
    return default


def listening_pids(port: int) -> list:
    """PIDs (other than ours) holding the port, via lsof"""
    out = subprocess.run(["lsof", "-ti", f":{port}"], capture_output=True, text=True, timeout=5).stdout
    return [int(pid) for pid in out.split() if pid.isdigit() and int(pid) != os.getpid()]


def free_port(port: int):
    """SIGTERM a previous gateway still bound to the port"""
    try:
        pids = listening_pids(port)
    except (OSError, subprocess.SubprocessError) as e:
        print(f"[STARTUP] Port {port} check skipped: {e}")
        return
    for pid in pids:
        print(f"[STARTUP] Port {port} held by PID {pid}, sending SIGTERM")
        os.kill(pid, signal.SIGTERM)
    if pids:
        time.sleep(0.5)


def build_app():
    """Gateway wired to the in-process daemon (settings persisted under data/)"""
    from src.core.config import get_control_config
    from src.daemon.local import LocalDaemon
    from src.web.app import create_app

    daemon = LocalDaemon(persist=True)
    public_key = os.environ.get("WALLET_PUBLIC_KEY", "").strip()
    if public_key:
        daemon.set_wallet(True, can_sign=os.environ.get("WALLET_CAN_SIGN", "").lower() == "true",
                          public_key=public_key)

    def _shutdown_handler(signum=None, frame=None):
        print("\n[SHUTDOWN] Stopping trading daemon...")
        try:
            daemon.stop()
        except Exception as e:
            print(f"[SHUTDOWN] Error stopping daemon: {e}")
        if signum is not None:
            sys.exit(0)

    atexit.register(_shutdown_handler)
    signal.signal(signal.SIGTERM, _shutdown_handler)

    wallet = daemon.get_wallet_status()
    mode = "LIVE TRADING" if wallet["canSign"] else ("READ-ONLY" if wallet["connected"] else "DISCONNECTED")
    print(f"[STARTUP] Wallet: {wallet['publicKey'] or '-'} | Mode: {mode}")
    return create_app(daemon=daemon, config=get_control_config())


def serve_gunicorn(port: int):
    """Run build_app under gunicorn; the app is built in the worker, not the arbiter"""
    from gunicorn.app.base import BaseApplication

    class GatewayServer(BaseApplication):
        def __init__(self, factory, options):
            self.factory = factory
            self.options = options
            super().__init__()

        def load_config(self):
            for key, value in self.options.items():
                self.cfg.set(key, value)

        def load(self):
            return self.factory()

    GatewayServer(build_app, dict(GUNICORN_OPTIONS, bind=f'0.0.0.0:{port}')).run()


def main():
    from src.core.config import get_control_config

    port = port_from_args(sys.argv[1:], get_control_config().port)
    free_port(port)

    print(f"""
    ╔═══════════════════════════════════════════════════════╗
    ║           TRADING CONTROL GATEWAY                     ║
    ╠═══════════════════════════════════════════════════════╣
    ║  Starting server on http://localhost:{port}             ║
    ║  Press Ctrl+C to stop                                 ║
    ╚═══════════════════════════════════════════════════════╝
    """)

    try:
        import gunicorn  # noqa: F401
    except ImportError:
        print("[STARTUP] gunicorn unavailable, serving with the Flask dev server")
        build_app().run(host='0.0.0.0', port=port, debug=False, threaded=True)
        return
    print(f"[STARTUP] gunicorn: {GUNICORN_OPTIONS['workers']} worker, {GUNICORN_OPTIONS['threads']} threads")
    serve_gunicorn(port)


if __name__ == '__main__':
    main()
