"""CLI entrypoint for visibility-saga."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from visibility_saga import __version__
from visibility_saga.config import BridgeSettings
from visibility_saga.logging import configure_logging
from visibility_saga.runtime import build_runtime
from visibility_saga.visibility.source import VISIBILITY_VALUES

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="visibility-saga",
        description="Page visibility tracking over a cooperative saga runtime",
    )
    parser.add_argument("--version", action="version", version=f"visibility-saga {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    simulate = subparsers.add_parser(
        "simulate",
        help="Feed visibility reports through the bridge and print the resulting states",
    )
    simulate.add_argument(
        "states",
        nargs="+",
        choices=VISIBILITY_VALUES,
        help="Visibility reports, in order",
    )
    simulate.add_argument(
        "--stop-after",
        type=int,
        default=None,
        help="Stop watching after this many reports (later reports are ignored)",
    )

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default=None, help="Bind address (default: VISIBILITY_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: VISIBILITY_PORT)")

    return parser


def _simulate(settings: BridgeSettings, states: list[str], stop_after: int | None) -> int:
    runtime = build_runtime(settings)
    try:
        for index, state in enumerate(states):
            if stop_after is not None and index == stop_after:
                runtime.stop_watching()
            runtime.report(state)  # type: ignore[arg-type]
        history = [s.visibility.visible for s in runtime.store.history]
    finally:
        runtime.shutdown()

    print(json.dumps({"states": [{"visible": v} for v in history]}))
    return 0


def _serve(settings: BridgeSettings, host: str | None, port: int | None) -> int:
    import uvicorn

    from visibility_saga.server.app import create_app

    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = BridgeSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    if args.command == "simulate":
        return _simulate(settings, list(args.states), args.stop_after)
    if args.command == "serve":
        return _serve(settings, args.host, args.port)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
