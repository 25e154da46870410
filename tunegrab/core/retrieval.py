from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import requests

from .command import AUDIO_FORMAT, FFMPEG, INPUT, YT_DLP, ToolPaths, invoke, temp_file
from .errors import EmptyOutputError, MetadataParseError, ToolInvocationError

logger = logging.getLogger(__name__)


def read_local_file(path: str) -> bytes:
    try:
        audio_bytes = Path(path).expanduser().read_bytes()
    except OSError as exc:
        raise EmptyOutputError("READ_FAILED", f"read error: {exc}") from exc
    if not audio_bytes:
        raise EmptyOutputError("READ_FAILED", f"read error: {path} is empty")
    return audio_bytes


def download_audio(url: str, tools: ToolPaths | None = None) -> tuple[bytes, dict[str, Any]]:
    """Fetch best-audio bytes and the info document in a single yt-dlp call."""
    logger.info(f"Downloading audio from {url}")
    with temp_file() as target:
        result = invoke(
            YT_DLP,
            [
                "-j",
                "-f",
                "bestaudio",
                "--no-playlist",
                "--no-simulate",
                "--ignore-config",
                "--no-warnings",
                "--no-part",
                "--force-overwrites",
                "-o",
                str(target),
                url,
            ],
            tools=tools,
        )
        if not result.ok:
            raise ToolInvocationError("DOWNLOAD_FAILED", f"yt-dlp failed: {result.stderr_text()}")
        audio_bytes = target.read_bytes()

    if not audio_bytes:
        raise EmptyOutputError("DOWNLOAD_EMPTY", "download error: yt-dlp produced no audio")

    try:
        info = json.loads(result.stdout.decode("utf-8", errors="replace").strip().splitlines()[0])
    except (IndexError, json.JSONDecodeError) as exc:
        raise MetadataParseError("METADATA_JSON_INVALID", f"yt-dlp info document is not valid JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise MetadataParseError("METADATA_JSON_INVALID", "yt-dlp info document is not a JSON object")
    return audio_bytes, info


def convert_audio(audio_bytes: bytes, tools: ToolPaths | None = None) -> bytes:
    logger.info(f"Converting {len(audio_bytes)} bytes to {AUDIO_FORMAT}")
    with temp_file() as target:
        result = invoke(
            FFMPEG,
            ["-hide_banner", "-loglevel", "error", "-y", "-i", INPUT, "-vn", "-f", AUDIO_FORMAT, str(target)],
            input_bytes=audio_bytes,
            tools=tools,
        )
        converted = target.read_bytes() if result.ok else b""

    if not converted:
        detail = result.stderr_text() or "no output"
        raise EmptyOutputError("CONVERT_EMPTY", f"audio conversion error: {detail}")
    return converted


def extract_cover(audio_bytes: bytes, tools: ToolPaths | None = None) -> bytes:
    """Return the embedded cover image, or empty bytes when the file has none."""
    with temp_file() as target:
        result = invoke(
            FFMPEG,
            ["-hide_banner", "-loglevel", "error", "-y", "-i", INPUT, "-an", "-c:v", "copy", "-frames:v", "1", "-update", "1", "-f", "image2", str(target)],
            input_bytes=audio_bytes,
            tools=tools,
        )
        cover_bytes = target.read_bytes() if result.ok else b""

    if not cover_bytes:
        logger.info("No embedded cover found")
    return cover_bytes


def extract_metadata(audio_bytes: bytes, tools: ToolPaths | None = None) -> str:
    """Dump container metadata in ffmetadata ``key=value`` form."""
    with temp_file() as target:
        invoke(
            FFMPEG,
            ["-hide_banner", "-loglevel", "error", "-y", "-i", INPUT, "-f", "ffmetadata", str(target)],
            input_bytes=audio_bytes,
            tools=tools,
        )
        return target.read_bytes().decode("utf-8", errors="replace")


def fetch_thumbnail(url: str, timeout_sec: int = 30) -> bytes:
    if not url:
        return b""
    logger.info(f"Downloading thumbnail {url}")
    try:
        resp = requests.get(url, timeout=timeout_sec)
    except requests.Timeout as exc:
        raise ToolInvocationError("THUMBNAIL_FETCH_FAILED", f"Thumbnail download timed out after {timeout_sec}s") from exc
    except requests.RequestException as exc:
        raise ToolInvocationError("THUMBNAIL_FETCH_FAILED", f"Thumbnail download failed: {exc}") from exc

    if resp.status_code != 200:
        logger.warning(f"Thumbnail request returned {resp.status_code}; continuing without cover")
        return b""
    return resp.content or b""
