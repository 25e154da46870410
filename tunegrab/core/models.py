from __future__ import annotations

from typing import Any, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

WAVEFORM_LENGTH = 230


def _silent_waveform() -> list[float]:
    return [0.0] * WAVEFORM_LENGTH


class Waveform(BaseModel):
    values: list[float] = Field(default_factory=_silent_waveform)

    @field_validator("values")
    @classmethod
    def _fixed_length(cls, values: list[float]) -> list[float]:
        if len(values) != WAVEFORM_LENGTH:
            raise ValueError(f"waveform must have {WAVEFORM_LENGTH} values, got {len(values)}")
        return values

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]


class DecodedAudio(BaseModel):
    """Decoded PCM frames, shape ``(n_frames, n_channels)``, used for playback and seeking."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    frames: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.frames.shape[1]) if self.frames.ndim == 2 else 1

    @property
    def frame_count(self) -> int:
        return int(self.frames.shape[0])

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)

    def seek_position(self, ratio: float) -> float:
        ratio = min(max(ratio, 0.0), 1.0)
        return self.duration * ratio

    def position_ratio(self, position_sec: float) -> float:
        if self.duration <= 0:
            return 0.0
        return min(max(position_sec / self.duration, 0.0), 1.0)


class TagPolicy(BaseModel):
    separate_album: bool = False
    separate_album_artist: bool = False
    separate_composer: bool = False


class Song(BaseModel):
    title: str = ""
    artist: str = ""
    album: str = ""
    album_artist: str = ""
    composer: str = ""

    audio_bytes: bytes = b""
    cover_bytes: bytes = b""

    source_url: str = ""
    volume: float = 0.0

    waveform: Waveform = Field(default_factory=Waveform)
    decoded_audio: DecodedAudio | None = Field(default=None, exclude=True, repr=False)

    @property
    def is_loaded(self) -> bool:
        return bool(self.audio_bytes)

    def trim(self) -> None:
        self.title = self.title.strip()
        self.artist = self.artist.strip()
        self.album = self.album.strip()
        self.album_artist = self.album_artist.strip()
        self.composer = self.composer.strip()

    def apply_tag_policy(self, policy: TagPolicy) -> None:
        if not policy.separate_album:
            self.album = self.title
        if not policy.separate_album_artist:
            self.album_artist = self.artist
        if not policy.separate_composer:
            self.composer = self.artist

    def metadata_tags(self) -> list[tuple[str, str]]:
        self.trim()
        return [
            ("title", self.title),
            ("artist", self.artist),
            ("album", self.album),
            ("album_artist", self.album_artist),
            ("composer", self.composer),
        ]

    def clone(self) -> Song:
        return self.model_copy(deep=True)

    def summary(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "album_artist": self.album_artist,
            "composer": self.composer,
            "source_url": self.source_url,
            "volume_db": round(self.volume, 2),
            "audio_bytes": len(self.audio_bytes),
            "cover_bytes": len(self.cover_bytes),
            "waveform_length": len(self.waveform),
            "duration_sec": round(self.decoded_audio.duration, 3) if self.decoded_audio else None,
        }


class ProgressEvent(BaseModel):
    caption: str
    level: Literal["info", "success", "error"] = "info"
