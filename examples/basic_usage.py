#!/usr/bin/env python3
"""Programmatic usage example.

This demonstrates using the runtime components directly:

* build a store and scheduler
* run the visibility saga against an in-process page signal
* add a saga of your own that reacts to visibility changes

Reports are passed as arguments, e.g. ``hidden visible hidden``.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from visibility_saga.config import BridgeSettings
from visibility_saga.logging import configure_logging
from visibility_saga.runtime import build_runtime
from visibility_saga.saga import Saga, take_every
from visibility_saga.visibility import SetVisibility
from visibility_saga.visibility.source import VISIBILITY_VALUES


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Feed visibility reports through the saga runtime.")
    parser.add_argument("states", nargs="+", choices=VISIBILITY_VALUES, help="Reports, in order")
    return parser.parse_args(argv)


def announce(event: SetVisibility) -> None:
    print("page is now", "visible" if event.payload else "hidden")


def announcer() -> Saga[None]:
    yield from take_every(SetVisibility, announce)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = BridgeSettings()
    configure_logging(settings.log_level, settings.log_format)

    runtime = build_runtime(settings)
    runtime.scheduler.run(announcer)
    try:
        for state in args.states:
            runtime.report(state)
    finally:
        runtime.shutdown()

    print("history:", [s.visibility.visible for s in runtime.store.history])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
