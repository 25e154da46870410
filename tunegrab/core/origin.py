from __future__ import annotations

from enum import Enum
from pathlib import Path


class Origin(str, Enum):
    YOUTUBE = "youtube"
    SOUNDCLOUD = "soundcloud"
    LOCAL = "local"
    UNKNOWN = "unknown"

    @property
    def is_remote(self) -> bool:
        return self in (Origin.YOUTUBE, Origin.SOUNDCLOUD)


# Checked in order; the first fragment found in the source wins.
_HOST_FRAGMENTS: tuple[tuple[Origin, str], ...] = (
    (Origin.YOUTUBE, "youtube."),
    (Origin.YOUTUBE, "youtu.be/"),
    (Origin.SOUNDCLOUD, "soundcloud."),
)


def _is_existing_file(source: str) -> bool:
    if not source.strip():
        return False
    try:
        return Path(source).expanduser().is_file()
    except (OSError, ValueError):
        return False


def classify(source: str) -> Origin:
    for origin, fragment in _HOST_FRAGMENTS:
        if fragment in source:
            return origin
    if _is_existing_file(source):
        return Origin.LOCAL
    return Origin.UNKNOWN
