from __future__ import annotations

import logging
import re
from pathlib import Path

from .command import AUDIO_FORMAT, AUDIO_FORMAT_EXT, FFMPEG, ToolPaths, invoke, temp_file
from .errors import PersistError, TagWriteError, ToolInvocationError
from .models import Song

logger = logging.getLogger(__name__)

_HAZARDOUS_CHARS = re.compile(r"[/\\*:?\"'<>|\x00-\x1f]")


def _metadata_args(tags: list[tuple[str, str]]) -> list[str]:
    args: list[str] = []
    for key, value in tags:
        args.extend(["-metadata", f"{key}={value}"])
    return args


def write_tags(audio_bytes: bytes, tags: list[tuple[str, str]], tools: ToolPaths | None = None) -> bytes:
    """Replace all container metadata with ``tags``; the audio stream is copied."""
    with temp_file(audio_bytes) as source, temp_file() as target:
        try:
            result = invoke(
                FFMPEG,
                [
                    "-hide_banner",
                    "-loglevel",
                    "error",
                    "-y",
                    "-i",
                    str(source),
                    "-map",
                    "0:a",
                    "-map_metadata",
                    "-1",
                    "-c",
                    "copy",
                    *_metadata_args(tags),
                    "-f",
                    AUDIO_FORMAT,
                    str(target),
                ],
                tools=tools,
            )
        except ToolInvocationError as exc:
            raise TagWriteError("TAG_WRITE_FAILED", f"Unable to write tags: {exc.message}") from exc
        tagged = target.read_bytes() if result.ok else b""

    if not tagged:
        raise TagWriteError("TAG_WRITE_FAILED", f"Unable to write tags: {result.stderr_text() or 'no output'}")
    return tagged


def embed_cover(audio_bytes: bytes, cover_bytes: bytes, tools: ToolPaths | None = None) -> bytes:
    if not cover_bytes:
        return audio_bytes

    with temp_file(audio_bytes) as audio, temp_file(cover_bytes) as cover, temp_file() as target:
        try:
            result = invoke(
                FFMPEG,
                [
                    "-hide_banner",
                    "-loglevel",
                    "error",
                    "-y",
                    "-i",
                    str(audio),
                    "-i",
                    str(cover),
                    "-map",
                    "0:a",
                    "-map",
                    "1:0",
                    "-c",
                    "copy",
                    "-id3v2_version",
                    "3",
                    "-metadata:s:v",
                    "title=Album cover",
                    "-metadata:s:v",
                    "comment=Cover (front)",
                    "-disposition:v",
                    "attached_pic",
                    "-f",
                    AUDIO_FORMAT,
                    str(target),
                ],
                tools=tools,
            )
        except ToolInvocationError as exc:
            raise TagWriteError("COVER_WRITE_FAILED", f"Unable to embed cover: {exc.message}") from exc
        with_cover = target.read_bytes() if result.ok else b""

    if not with_cover:
        raise TagWriteError("COVER_WRITE_FAILED", f"Unable to embed cover: {result.stderr_text() or 'no output'}")
    return with_cover


def update_bytes_from_metadata(song: Song, tools: ToolPaths | None = None) -> Song:
    """Remux tags and cover into ``song.audio_bytes``; untouched on failure."""
    tagged = write_tags(song.audio_bytes, song.metadata_tags(), tools=tools)
    song.audio_bytes = embed_cover(tagged, song.cover_bytes, tools=tools)
    return song


def derive_filename(title: str, artist: str, ext: str = AUDIO_FORMAT_EXT) -> str:
    name = f"{title.strip()}_{artist.strip()}{ext}".lower().replace(" ", "_")
    return _HAZARDOUS_CHARS.sub("", name)


def write_to_disk(song: Song, directory: str | Path) -> Path:
    target_dir = Path(directory).expanduser()
    if not target_dir.is_dir():
        raise PersistError("PERSIST_DIR_MISSING", f"Save directory does not exist: {target_dir}")

    target = target_dir / derive_filename(song.title, song.artist)
    try:
        target.write_bytes(song.audio_bytes)
    except OSError as exc:
        raise PersistError("PERSIST_WRITE_FAILED", f"Unable to write {target}: {exc}") from exc
    logger.info(f"Wrote {len(song.audio_bytes)} bytes to {target}")
    return target
