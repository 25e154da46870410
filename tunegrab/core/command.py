from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .errors import ToolInvocationError

logger = logging.getLogger(__name__)

YT_DLP = "yt-dlp"
FFMPEG = "ffmpeg"

AUDIO_FORMAT = "mp3"
AUDIO_FORMAT_EXT = ".mp3"

CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0)

# Placeholder argument replaced with the temp file holding `input_bytes`.
INPUT = "{input}"


class ToolOutput(BaseModel):
    args: list[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_text(self, max_chars: int = 800) -> str:
        text = self.stderr.decode("utf-8", errors="replace").strip()
        return text if len(text) <= max_chars else text[-max_chars:]


class ToolPaths(BaseModel):
    """Immutable snapshot of tool overrides, captured when a job is spawned."""

    model_config = ConfigDict(frozen=True)

    overrides: dict[str, str] = Field(default_factory=dict)
    timeout_sec: float | None = None

    def resolve(self, name: str) -> str:
        return self.overrides.get(name) or name


class ToolRegistry:
    """Process-wide mapping from logical tool name to executable path.

    Written by the foreground when settings change and read by every worker,
    so each access holds the lock for a single lookup or insert only.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._paths: dict[str, str] = {}
        self._timeout_sec: float | None = None

    def set_tool_path(self, name: str, path: str | None) -> None:
        with self._lock:
            if path:
                self._paths[name] = path
            else:
                self._paths.pop(name, None)

    def resolve(self, name: str) -> str:
        with self._lock:
            return self._paths.get(name, name)

    def set_timeout(self, timeout_sec: float | None) -> None:
        with self._lock:
            self._timeout_sec = timeout_sec

    def snapshot(self) -> ToolPaths:
        with self._lock:
            overrides = dict(self._paths)
            timeout_sec = self._timeout_sec
        return ToolPaths(overrides=overrides, timeout_sec=timeout_sec)


registry = ToolRegistry()


def set_tool_path(name: str, path: str | None) -> None:
    registry.set_tool_path(name, path)


def resolve(name: str) -> str:
    return registry.resolve(name)


@contextmanager
def temp_file(contents: bytes = b"", suffix: str = "") -> Iterator[Path]:
    """Write ``contents`` to a fresh temporary file and yield its path.

    The file is removed when the block exits, including on error.
    """
    fd, name = tempfile.mkstemp(prefix="tunegrab-", suffix=suffix)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(contents)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def invoke(
    name: str,
    args: Sequence[str],
    input_bytes: bytes | None = None,
    tools: ToolPaths | None = None,
    timeout: float | None = None,
) -> ToolOutput:
    if input_bytes is not None:
        with temp_file(input_bytes) as input_path:
            substituted = [str(input_path) if arg == INPUT else arg for arg in args]
            return invoke(name, substituted, tools=tools, timeout=timeout)

    if tools is None:
        tools = registry.snapshot()
    executable = tools.resolve(name)
    if timeout is None:
        timeout = tools.timeout_sec
    cmd = [executable, *[str(arg) for arg in args]]
    logger.debug(f"Running {' '.join(cmd)}")

    try:
        proc = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            creationflags=CREATE_NO_WINDOW,
        )
    except FileNotFoundError as exc:
        raise ToolInvocationError("TOOL_NOT_FOUND", f"{name} is not installed or not found at '{executable}'") from exc
    except subprocess.TimeoutExpired as exc:
        raise ToolInvocationError("TOOL_TIMEOUT", f"{name} timed out after {timeout}s") from exc
    except OSError as exc:
        raise ToolInvocationError("TOOL_SPAWN_FAILED", f"Unable to start {name}: {exc}") from exc

    return ToolOutput(
        args=cmd,
        returncode=proc.returncode,
        stdout=proc.stdout or b"",
        stderr=proc.stderr or b"",
    )
