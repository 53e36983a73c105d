#!/usr/bin/env python3
"""
Container entrypoint: migrate the audit table, then exec gunicorn.

Usage:
    python scripts/start.py

Env:
    PORT          listen port (default 8080)
    WEB_WORKERS   gunicorn worker count (default 2)
    WEB_THREADS   threads per worker (default 4); verification requests are I/O bound
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _int_env(name: str, default: int, *, low: int, high: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"ERROR: {name}={raw!r} is not an integer.", flush=True)
        sys.exit(1)
    if value < low or value > high:
        print(f"ERROR: {name}={value} out of range {low}-{high}.", flush=True)
        sys.exit(1)
    return value


def main() -> None:
    port = _int_env("PORT", 8080, low=1, high=65535)
    workers = _int_env("WEB_WORKERS", 2, low=1, high=64)
    threads = _int_env("WEB_THREADS", 4, low=1, high=64)

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== Starting gunicorn on 0.0.0.0:{port} ({workers}x{threads}) ===", flush=True)

    # exec so gunicorn is PID 1 and receives signals directly.
    # No --preload: each worker loads its own copy of the registry at import.
    os.execvp(
        "gunicorn",
        [
            "gunicorn",
            "app.wsgi:app",
            "--bind", f"0.0.0.0:{port}",
            "--workers", str(workers),
            "--threads", str(threads),
            "--timeout", "30",
            "--access-logfile", "-",
            "--error-logfile", "-",
        ],
    )


if __name__ == "__main__":
    main()
