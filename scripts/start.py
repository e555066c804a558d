#!/usr/bin/env python3
"""
Container entrypoint.

Runs the release phase (migrations + seed), then hands the process over to
gunicorn serving app.wsgi:app.

Environment:
    PORT             listen port (default 3000)
    WEB_CONCURRENCY  gunicorn worker count (default 2)
    SKIP_RELEASE=1   start gunicorn without migrating/seeding
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _port() -> str:
    port = (os.environ.get("PORT") or "").strip() or "3000"
    try:
        if not 1 <= int(port) <= 65535:
            raise ValueError(port)
    except ValueError:
        print(f"ERROR: Invalid PORT value '{port}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)
    return port


def gunicorn_argv(port: str) -> list[str]:
    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--threads", "4",
        "--timeout", "60",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _port()

    if (os.environ.get("SKIP_RELEASE") or "").strip() != "1":
        from scripts.release import run_release

        try:
            run_release()
        except Exception as e:
            print(f"Release failed: {e}", flush=True)
            sys.exit(1)

    print(f"Village CMS listening on 0.0.0.0:{port} (admin at /admin)", flush=True)
    os.execvp("gunicorn", gunicorn_argv(port))


if __name__ == "__main__":
    main()
