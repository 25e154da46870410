"""Background jobs polled from a foreground loop.

Every operation runs on its own worker thread. The foreground keeps at most
one handle per slot and checks it once per loop iteration with ``poll``.
Starting a new job in an occupied slot replaces the handle; the old thread is
not interrupted, it finishes on its own and its result is never read.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Literal, TypeVar

from . import orchestrator
from .command import ToolPaths, registry
from .errors import PersistError, TuneGrabError
from .models import ProgressEvent, Song, TagPolicy
from .origin import Origin, classify

logger = logging.getLogger(__name__)

T = TypeVar("T")

SONG_SLOT = "song"
SAVE_SLOT = "save"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobOutcome(Generic[T]):
    def __init__(self, value: T | None = None, error: BaseException | None = None):
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        if self.ok:
            return f"JobOutcome(ok, {type(self.value).__name__})"
        return f"JobOutcome(error={self.error!r})"


class ProgressChannel:
    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[ProgressEvent] = queue.SimpleQueue()

    def send(self, caption: str, level: Literal["info", "success", "error"] = "info") -> None:
        self._queue.put(ProgressEvent(caption=caption, level=level))

    def drain(self) -> list[ProgressEvent]:
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class Job(Generic[T]):
    def __init__(
        self,
        name: str,
        work: Callable[[Callable[[str], None]], T],
        progress: ProgressChannel,
        success_caption: str = "done",
    ):
        self.name = name
        self._work = work
        self._progress = progress
        self._success_caption = success_caption
        self._done = threading.Event()
        self._outcome: JobOutcome[T] | None = None
        self._taken = False
        self._thread = threading.Thread(target=self._run, daemon=True, name=f"tunegrab-{name}")

    def start(self) -> Job[T]:
        self._progress.send("initializing...")
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            value = self._work(self._progress.send)
        except TuneGrabError as exc:
            logger.error(f"Job {self.name} failed [{exc.code}]: {exc.message}")
            self._progress.send(f"failed: {exc.message}", level="error")
            self._outcome = JobOutcome(error=exc)
        except Exception as exc:
            logger.error(f"Job {self.name} failed: {exc}", exc_info=True)
            self._progress.send(f"failed: {exc}", level="error")
            self._outcome = JobOutcome(error=exc)
        else:
            logger.info(f"Job {self.name} completed")
            self._progress.send(self._success_caption, level="success")
            self._outcome = JobOutcome(value=value)
        finally:
            self._done.set()

    @property
    def state(self) -> JobState:
        if not self._done.is_set():
            return JobState.RUNNING
        if self._taken or self._outcome is None:
            return JobState.IDLE
        return JobState.SUCCEEDED if self._outcome.ok else JobState.FAILED

    def is_finished(self) -> bool:
        return self._done.is_set()

    def poll(self) -> JobOutcome[T] | None:
        """Non-blocking; returns the outcome exactly once, then ``None``."""
        if not self._done.is_set() or self._taken:
            return None
        self._taken = True
        return self._outcome

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)


class JobRunner:
    def __init__(
        self,
        stop_playback: Callable[[], Any] | None = None,
        save_directory: str | Path | None = None,
        tag_policy: TagPolicy | None = None,
        thumbnail_timeout_sec: int = 30,
    ):
        self.song = Song()
        self.source = ""
        self.origin = Origin.UNKNOWN
        self._classified_source = ""
        self.save_directory = Path(save_directory).expanduser() if save_directory else None
        self.tag_policy = tag_policy or TagPolicy()
        self.thumbnail_timeout_sec = thumbnail_timeout_sec
        self.progress = ProgressChannel()
        self._stop_playback = stop_playback
        self._slots: dict[str, Job[Any] | None] = {SONG_SLOT: None, SAVE_SLOT: None}

    def _tools(self) -> ToolPaths:
        return registry.snapshot()

    def _halt_playback(self) -> None:
        if self._stop_playback is None:
            return
        try:
            self._stop_playback()
        except Exception as exc:
            logger.warning(f"Unable to stop playback: {exc}")

    def _spawn(self, slot: str, job: Job[Any]) -> Job[Any]:
        previous = self._slots[slot]
        if previous is not None and not previous.is_finished():
            logger.info(f"Abandoning running {previous.name} job; its result will be discarded")
        self._slots[slot] = job
        return job.start()

    def is_busy(self, slot: str = SONG_SLOT) -> bool:
        return self._slots[slot] is not None

    def is_song_loaded(self) -> bool:
        return self.song.is_loaded

    def _reclassify(self) -> Origin:
        self.origin = classify(self.source)
        self._classified_source = self.source
        return self.origin

    def set_source(self, source: str) -> Origin:
        """Record an edited source; it is only reclassified while no song job is in flight."""
        self.source = source
        if not self.is_busy(SONG_SLOT):
            self._reclassify()
        return self.origin

    def start_query(self, source: str | None = None) -> Job[Song]:
        if source is not None:
            self.source = source
        # The origin is fixed per source string; edits made mid-job are classified here.
        if source is not None or self.source != self._classified_source:
            self._reclassify()
        source_ref = self.source
        origin = self.origin
        tools = self._tools()
        timeout_sec = self.thumbnail_timeout_sec
        self._halt_playback()

        def work(report: Callable[[str], None]) -> Song:
            return orchestrator.query(
                source_ref, origin, tools=tools, report=report, thumbnail_timeout_sec=timeout_sec
            )

        return self._spawn(SONG_SLOT, Job("query", work, self.progress))

    def start_volume_offset(self, offset_db: float) -> Job[Song]:
        song = self.song.clone()
        tools = self._tools()
        self._halt_playback()

        def work(report: Callable[[str], None]) -> Song:
            return orchestrator.adjust_volume(song, offset_db, tools=tools, report=report)

        return self._spawn(SONG_SLOT, Job("volume", work, self.progress))

    def start_save(self, song: Song | None = None, destination: str | Path | None = None) -> Job[Path]:
        working = (song if song is not None else self.song).clone()
        target = destination if destination is not None else self.save_directory
        policy = self.tag_policy.model_copy()
        tools = self._tools()

        def work(report: Callable[[str], None]) -> Path:
            if target is None:
                raise PersistError("PERSIST_DIR_MISSING", "No save directory configured")
            return orchestrator.save(working, target, policy=policy, tools=tools, report=report)

        return self._spawn(SAVE_SLOT, Job("save", work, self.progress, success_caption="saved"))

    def poll(self, slot: str = SONG_SLOT) -> JobOutcome[Any] | None:
        job = self._slots[slot]
        if job is None:
            return None
        outcome = job.poll()
        if outcome is None:
            return None
        self._slots[slot] = None
        if slot == SONG_SLOT and outcome.ok:
            self.song = outcome.value
        return outcome

    def update(self) -> dict[str, JobOutcome[Any]]:
        """Poll every slot once; call from each iteration of the foreground loop."""
        outcomes: dict[str, JobOutcome[Any]] = {}
        for slot in (SONG_SLOT, SAVE_SLOT):
            outcome = self.poll(slot)
            if outcome is not None:
                outcomes[slot] = outcome
        return outcomes
