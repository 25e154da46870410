from __future__ import annotations

import io
import logging

import numpy as np
import soundfile as sf

from .errors import AudioDecodeError
from .models import WAVEFORM_LENGTH, DecodedAudio, Waveform

logger = logging.getLogger(__name__)


def decode_audio(audio_bytes: bytes) -> DecodedAudio:
    if not audio_bytes:
        raise AudioDecodeError("AUDIO_EMPTY", "Audio payload is empty")
    try:
        frames, sample_rate = sf.read(io.BytesIO(audio_bytes), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError, ValueError) as exc:
        raise AudioDecodeError("AUDIO_DECODE_FAILED", f"Unable to decode audio: {exc}") from exc
    return DecodedAudio(frames=frames, sample_rate=int(sample_rate))


def downmix(frames: np.ndarray) -> np.ndarray:
    if frames.ndim == 1:
        return frames.astype(np.float32, copy=False)
    return frames.mean(axis=1, dtype=np.float32)


def compute_waveform(mono: np.ndarray, length: int = WAVEFORM_LENGTH) -> list[float]:
    """Peak absolute amplitude of ``length`` equal chunks, scaled by the loudest chunk.

    The trailing ``len(mono) % length`` samples are dropped. Inputs shorter
    than ``length`` samples, and silent inputs, give an all-zero result.
    """
    chunk = mono.shape[0] // length
    if chunk == 0:
        return [0.0] * length

    peaks = np.abs(mono[: chunk * length]).reshape(length, chunk).max(axis=1)
    peaks = np.nan_to_num(peaks, nan=0.0, posinf=0.0, neginf=0.0)
    top = float(peaks.max())
    if top <= 0.0:
        return [0.0] * length
    return [float(v) for v in np.clip(peaks / top, 0.0, 1.0)]


def analyze(audio_bytes: bytes) -> tuple[DecodedAudio, Waveform]:
    decoded = decode_audio(audio_bytes)
    waveform = Waveform(values=compute_waveform(downmix(decoded.frames)))
    logger.info(
        f"Decoded {decoded.frame_count} frames x {decoded.channels} channels "
        f"at {decoded.sample_rate} Hz ({decoded.duration:.1f}s)"
    )
    return decoded, waveform
