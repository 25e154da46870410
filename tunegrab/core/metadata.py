from __future__ import annotations

import json
import re
from typing import Any

from .errors import MetadataParseError
from .models import Song

# Keys in a yt-dlp info document that balloon its size without carrying tags.
NOISY_KEYS = (
    "requested_formats",
    "formats",
    "thumbnails",
    "url",
    "urls",
    "fragments",
    "automatic_captions",
    "subtitles",
    "heatmap",
)

_FFMETADATA_LINE = re.compile(r"^((?:[^\\=]|\\.)+)=(.*)$", re.DOTALL)
_FFMETADATA_ESCAPE = re.compile(r"\\(.)", re.DOTALL)

# Source key -> Song field. Later populated entries win, so `uploader` beats `artist`.
_FIELD_SOURCES: tuple[tuple[str, str], ...] = (
    ("track", "title"),
    ("title", "title"),
    ("artist", "artist"),
    ("uploader", "artist"),
    ("album", "album"),
    ("album_artist", "album_artist"),
    ("composer", "composer"),
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_as_text(v) for v in value if _as_text(v))
    return str(value).strip()


def strip_noisy_keys(info: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in info.items() if key not in NOISY_KEYS}


def parse_info_json(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    if isinstance(raw, dict):
        info = raw
    else:
        try:
            info = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise MetadataParseError("METADATA_JSON_INVALID", f"Unable to parse metadata JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise MetadataParseError("METADATA_JSON_INVALID", "Metadata JSON is not an object")
    return strip_noisy_keys(info)


def _unescape(text: str) -> str:
    return _FFMETADATA_ESCAPE.sub(r"\1", text)


def _logical_lines(text: str) -> list[str]:
    """Join lines whose trailing backslash escapes the newline."""
    lines: list[str] = []
    pending: list[str] = []
    for line in text.split("\n"):
        line = line.rstrip("\r")
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2:
            pending.append(line[:-1])
            continue
        pending.append(line)
        lines.append("\n".join(pending))
        pending = []
    if pending:
        lines.append("\n".join(pending))
    return lines


def parse_ffmetadata(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in _logical_lines(text):
        if line.startswith((";", "#", "[")):
            continue
        match = _FFMETADATA_LINE.match(line)
        if match:
            value = _unescape(match.group(2)).strip()
            if value:
                fields[_unescape(match.group(1)).strip().lower()] = value
    return fields


def normalize(raw: str | bytes | dict[str, Any]) -> dict[str, str]:
    """Reduce an info document or ffmetadata dump to canonical Song fields.

    JSON (object, or text starting with ``{``) is read as a yt-dlp info
    document; anything else is parsed as ``key=value`` lines. Empty values
    are dropped so they never overwrite populated fields on merge.
    """
    if isinstance(raw, dict):
        source = parse_info_json(raw)
    else:
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        if text.lstrip().startswith("{"):
            source = parse_info_json(text)
        else:
            source = parse_ffmetadata(text)

    normalized: dict[str, str] = {}
    for source_key, field in _FIELD_SOURCES:
        value = _as_text(source.get(source_key))
        if value:
            normalized[field] = value
    return normalized


def merge_into(song: Song, fields: dict[str, str]) -> Song:
    for field, value in fields.items():
        if value and hasattr(song, field):
            setattr(song, field, value)
    return song


def update_song_metadata(song: Song, raw: str | bytes | dict[str, Any]) -> Song:
    return merge_into(song, normalize(raw))
