from __future__ import annotations

import json
import sys
import time
from typing import Any

from tunegrab.core.jobs import JobRunner
from tunegrab.core.log import configure_logging
from tunegrab.core.settings import (
    apply_tool_overrides,
    default_save_directory,
    load_settings,
    log_level,
    thumbnail_timeout,
)

POLL_INTERVAL_SEC = 0.05


def get_runner(settings_path: str | None = None) -> JobRunner:
    settings = load_settings(settings_path)
    configure_logging(log_level(settings))
    apply_tool_overrides(settings)
    return JobRunner(
        save_directory=default_save_directory(settings),
        thumbnail_timeout_sec=thumbnail_timeout(settings),
    )


def _print_events(runner: JobRunner) -> None:
    for event in runner.progress.drain():
        stream = sys.stderr if event.level == "error" else sys.stdout
        print(f"[{event.level}] {event.caption}", file=stream)


def run_until_done(runner: JobRunner, slot: str) -> Any:
    """Foreground loop: print captions as they arrive until the job in ``slot`` resolves."""
    while True:
        _print_events(runner)
        outcome = runner.poll(slot)
        if outcome is not None:
            _print_events(runner)
            if not outcome.ok:
                raise SystemExit(1)
            return outcome.value
        time.sleep(POLL_INTERVAL_SEC)


def print_json(data: Any) -> None:
    if hasattr(data, "summary"):
        print(json.dumps(data.summary(), indent=2))
        return
    if hasattr(data, "model_dump"):
        print(json.dumps(data.model_dump(mode="json"), indent=2))
        return
    print(json.dumps(data, indent=2, default=str))
