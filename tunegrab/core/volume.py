from __future__ import annotations

import logging
import re

from .command import AUDIO_FORMAT, FFMPEG, INPUT, ToolPaths, invoke, temp_file
from .errors import EmptyOutputError, VolumeDetectionError

logger = logging.getLogger(__name__)

_MEAN_VOLUME = re.compile(r"mean_volume:\s*(-?inf|-?\d+(?:\.\d+)?)\s*dB", re.IGNORECASE)


def parse_mean_volume(report: str) -> float:
    match = _MEAN_VOLUME.search(report)
    if not match:
        raise VolumeDetectionError("VOLUME_NOT_DETECTED", "volumedetect report has no mean_volume")
    return float(match.group(1))


def parse_volume_offset(text: str) -> float:
    try:
        offset = float(text.strip().lower().removesuffix("db").strip())
    except ValueError as exc:
        raise ValueError(f"'{text}' is not a volume offset in dB") from exc
    if offset != offset or offset in (float("inf"), float("-inf")):
        raise ValueError(f"'{text}' is not a finite volume offset")
    return offset


def measure_mean_volume(audio_bytes: bytes, tools: ToolPaths | None = None) -> float:
    result = invoke(
        FFMPEG,
        ["-hide_banner", "-nostats", "-i", INPUT, "-af", "volumedetect", "-vn", "-sn", "-dn", "-f", "null", "-"],
        input_bytes=audio_bytes,
        tools=tools,
    )
    volume = parse_mean_volume(result.stderr.decode("utf-8", errors="replace"))
    logger.info(f"Mean volume {volume} dB")
    return volume


def apply_offset(audio_bytes: bytes, offset_db: float, tools: ToolPaths | None = None) -> bytes:
    logger.info(f"Applying {offset_db:+.2f} dB gain")
    with temp_file() as target:
        result = invoke(
            FFMPEG,
            [
                "-hide_banner",
                "-loglevel",
                "error",
                "-y",
                "-i",
                INPUT,
                "-map",
                "0:a",
                "-af",
                f"volume={offset_db}dB",
                "-f",
                AUDIO_FORMAT,
                str(target),
            ],
            input_bytes=audio_bytes,
            tools=tools,
        )
        adjusted = target.read_bytes() if result.ok else b""

    if not adjusted:
        raise EmptyOutputError("CONVERT_EMPTY", f"volume adjustment produced no audio: {result.stderr_text() or 'no output'}")
    return adjusted
