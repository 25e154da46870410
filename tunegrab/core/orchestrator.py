from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .analysis import analyze
from .command import ToolPaths
from .cover import to_jpeg
from .errors import PersistError
from .metadata import update_song_metadata
from .models import Song, TagPolicy
from .origin import Origin, classify
from .retrieval import (
    convert_audio,
    download_audio,
    extract_cover,
    extract_metadata,
    fetch_thumbnail,
    read_local_file,
)
from .tagging import update_bytes_from_metadata, write_to_disk
from .volume import apply_offset, measure_mean_volume

logger = logging.getLogger(__name__)

Report = Callable[[str], None]


def _noop(caption: str) -> None:
    return None


def refresh_analysis(song: Song, tools: ToolPaths | None = None) -> Song:
    """Rebuild decoded audio, waveform and volume from the current audio bytes."""
    decoded, waveform = analyze(song.audio_bytes)
    volume = measure_mean_volume(song.audio_bytes, tools=tools)
    song.decoded_audio = decoded
    song.waveform = waveform
    song.volume = volume
    return song


def _query_local(song: Song, source: str, report: Report, tools: ToolPaths | None) -> None:
    report("reading...")
    audio_bytes = read_local_file(source)

    report("converting audio...")
    converted = convert_audio(audio_bytes, tools=tools)

    report("extracting thumbnail...")
    cover_bytes = extract_cover(audio_bytes, tools=tools)

    report("parsing metadata...")
    update_song_metadata(song, extract_metadata(audio_bytes, tools=tools))

    song.cover_bytes = cover_bytes
    song.audio_bytes = converted


def _query_remote(song: Song, source: str, report: Report, tools: ToolPaths | None, thumbnail_timeout_sec: int) -> None:
    report("downloading audio...")
    audio_bytes, info = download_audio(source, tools=tools)

    report("converting audio...")
    converted = convert_audio(audio_bytes, tools=tools)

    report("downloading thumbnail...")
    thumbnail = fetch_thumbnail(str(info.get("thumbnail") or ""), timeout_sec=thumbnail_timeout_sec)

    report("parsing metadata...")
    update_song_metadata(song, info)

    report("loading cover...")
    song.cover_bytes = to_jpeg(thumbnail)
    song.audio_bytes = converted


def query(
    source: str,
    origin: Origin | None = None,
    tools: ToolPaths | None = None,
    report: Report | None = None,
    thumbnail_timeout_sec: int = 30,
) -> Song:
    report = report or _noop
    origin = origin or classify(source)
    logger.info(f"Querying {source} ({origin.value})")

    song = Song()
    if origin == Origin.LOCAL:
        _query_local(song, source, report, tools)
    else:
        # Unknown references are handed to yt-dlp, which reports its own error.
        _query_remote(song, source, report, tools, thumbnail_timeout_sec)
    song.source_url = source

    report("reading song...")
    return refresh_analysis(song, tools=tools)


def save(
    song: Song,
    destination: str | Path,
    policy: TagPolicy | None = None,
    tools: ToolPaths | None = None,
    report: Report | None = None,
) -> Path:
    report = report or _noop
    target_dir = Path(destination).expanduser()
    if not target_dir.is_dir():
        raise PersistError("PERSIST_DIR_MISSING", f"Save directory does not exist: {target_dir}")

    if policy is not None:
        song.apply_tag_policy(policy)

    report("updating song metadata...")
    update_bytes_from_metadata(song, tools=tools)

    report("writing song to disk...")
    return write_to_disk(song, target_dir)


def adjust_volume(
    song: Song,
    offset_db: float,
    tools: ToolPaths | None = None,
    report: Report | None = None,
) -> Song:
    report = report or _noop
    report("setting volume...")
    song.audio_bytes = apply_offset(song.audio_bytes, offset_db, tools=tools)

    report("reading song...")
    return refresh_analysis(song, tools=tools)
