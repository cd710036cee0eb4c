#!/usr/bin/env python3
"""
Foundation site dev launcher.

    ./run.py                         development, reloader on
    ./run.py --env testing --port 5050
    ./run.py --no-reload --routes    print the URL map and serve

Production runs under gunicorn instead:  gunicorn "wsgi:app"
"""
from __future__ import annotations

import argparse
import errno
import logging
import os
import socket
import sys
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

log = logging.getLogger("foundation.run")

ENVIRONMENTS = ("development", "testing", "production")


@dataclass(frozen=True)
class LaunchOptions:
    env: str
    host: str
    port: int
    debug: bool
    reload: bool
    show_routes: bool
    force: bool

    @classmethod
    def from_argv(cls, argv: Optional[List[str]] = None) -> "LaunchOptions":
        p = argparse.ArgumentParser(description="Serve the Foundation content API locally.")
        p.add_argument("--env", choices=ENVIRONMENTS, default=os.getenv("APP_ENV") or "development")
        p.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
        p.add_argument("--port", type=int, default=int(os.getenv("PORT", "5000")))
        p.add_argument("--debug", action=argparse.BooleanOptionalAction, default=None)
        p.add_argument("--no-reload", dest="reload", action="store_false")
        p.add_argument("--routes", dest="show_routes", action="store_true", help="Print the URL map on start.")
        p.add_argument("--force", action="store_true", help="Start even if the port looks busy.")
        a = p.parse_args(argv)

        debug = a.env != "production" if a.debug is None else a.debug
        return cls(
            env=a.env,
            host=a.host,
            port=a.port,
            debug=debug,
            reload=debug and a.reload,
            show_routes=a.show_routes,
            force=a.force,
        )


def _port_busy(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("127.0.0.1" if host in {"0.0.0.0", "::"} else host, port))
        except OSError as e:
            return e.errno == errno.EADDRINUSE
    return False


def _print_routes(app) -> None:
    for rule in sorted(app.url_map.iter_rules(), key=str):
        methods = ",".join(sorted((rule.methods or set()) - {"HEAD", "OPTIONS"}))
        print(f"  {methods:<12} {rule}  → {rule.endpoint}")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(override=False)
    opts = LaunchOptions.from_argv(argv)
    os.environ["APP_ENV"] = opts.env

    if not opts.force and _port_busy(opts.host, opts.port):
        log.error("Port %s is already in use on %s (use --force to try anyway)", opts.port, opts.host)
        return 2

    from foundation import create_app

    app = create_app(opts.env)

    # the reloader imports this module twice; print once
    if opts.show_routes and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        _print_routes(app)

    app.run(host=opts.host, port=opts.port, debug=opts.debug, use_reloader=opts.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
