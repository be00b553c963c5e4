#!/usr/bin/env python3
"""
Production entrypoint: migrate + seed, then hand the process over to gunicorn.

    python scripts/start.py

Environment:
    PORT             listen port (default 8080)
    WEB_CONCURRENCY  gunicorn workers (default 2)
    WEB_TIMEOUT      worker timeout in seconds (default 60)
    SKIP_RELEASE     "1" when migrations already ran in a separate release step
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _positive_int(env: dict, name: str, default: int, *, upper: int | None = None) -> int:
    raw = (env.get(name) or "").strip() or str(default)
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit(f"ERROR: {name} must be an integer (got '{raw}').")
    if value < 1 or (upper is not None and value > upper):
        raise SystemExit(f"ERROR: {name} out of range (got {value}).")
    return value


def gunicorn_argv(env: dict) -> list[str]:
    port = _positive_int(env, "PORT", 8080, upper=65535)
    workers = _positive_int(env, "WEB_CONCURRENCY", 2)
    timeout = _positive_int(env, "WEB_TIMEOUT", 60)
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    argv = gunicorn_argv(dict(os.environ))

    if os.environ.get("SKIP_RELEASE", "").strip() != "1":
        print("=== Running release phase ===", flush=True)
        from scripts.release import run_release

        try:
            run_release()
        except Exception as e:
            print(f"Release failed: {e}", flush=True)
            sys.exit(1)

    print(f"=== Starting gunicorn: {' '.join(argv[2:6])} ===", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
