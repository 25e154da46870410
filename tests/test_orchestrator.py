from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from tunegrab.core.errors import EmptyOutputError, PersistError, TagWriteError, ToolInvocationError
from tunegrab.core.models import DecodedAudio, Song, TagPolicy, Waveform
from tunegrab.core.orchestrator import adjust_volume, query, save
from tunegrab.core.origin import Origin


def _analysis():
    return DecodedAudio(frames=np.zeros((10, 2), dtype=np.float32), sample_rate=10), Waveform(values=[0.5] * 230)


@pytest.fixture
def stages(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []

    def record(name, value):
        def fn(*args, **kwargs):
            calls.append(name)
            return value
        return fn

    monkeypatch.setattr("tunegrab.core.orchestrator.read_local_file", record("read", b"flac"))
    monkeypatch.setattr("tunegrab.core.orchestrator.convert_audio", record("convert", b"mp3"))
    monkeypatch.setattr("tunegrab.core.orchestrator.extract_cover", record("cover", b"jpeg"))
    monkeypatch.setattr(
        "tunegrab.core.orchestrator.extract_metadata",
        record("metadata", ";FFMETADATA1\ntitle=Local Title\nartist=Local Artist\n"),
    )
    monkeypatch.setattr(
        "tunegrab.core.orchestrator.download_audio",
        record("download", (b"webm", {"title": "Remote", "uploader": "Channel", "thumbnail": "https://img"})),
    )
    monkeypatch.setattr("tunegrab.core.orchestrator.fetch_thumbnail", record("thumbnail", b"webp"))
    monkeypatch.setattr("tunegrab.core.orchestrator.to_jpeg", record("jpeg", b"jpeg-from-webp"))
    monkeypatch.setattr("tunegrab.core.orchestrator.analyze", record("analyze", _analysis()))
    monkeypatch.setattr("tunegrab.core.orchestrator.measure_mean_volume", record("volume", -14.5))
    return calls


def test_local_query(stages: list[str]) -> None:
    captions: list[str] = []
    song = query("/music/a.flac", Origin.LOCAL, report=captions.append)

    assert stages == ["read", "convert", "cover", "metadata", "analyze", "volume"]
    assert captions == ["reading...", "converting audio...", "extracting thumbnail...", "parsing metadata...", "reading song..."]
    assert song.audio_bytes == b"mp3"
    assert song.cover_bytes == b"jpeg"
    assert song.title == "Local Title"
    assert song.artist == "Local Artist"
    assert song.source_url == "/music/a.flac"
    assert song.volume == -14.5
    assert len(song.waveform) == 230
    assert song.decoded_audio is not None


def test_remote_query(stages: list[str]) -> None:
    captions: list[str] = []
    song = query("https://www.youtube.com/watch?v=a", Origin.YOUTUBE, report=captions.append)

    assert stages == ["download", "convert", "thumbnail", "jpeg", "analyze", "volume"]
    assert captions[0] == "downloading audio..."
    assert song.title == "Remote"
    assert song.artist == "Channel"
    assert song.cover_bytes == b"jpeg-from-webp"


def test_unknown_origin_attempts_download(stages: list[str]) -> None:
    query("ytsearch:some song", Origin.UNKNOWN)
    assert stages[0] == "download"


def test_stage_failure_aborts_remaining(monkeypatch: pytest.MonkeyPatch, stages: list[str]) -> None:
    def boom(*args, **kwargs):
        raise EmptyOutputError("CONVERT_EMPTY", "audio conversion error")

    monkeypatch.setattr("tunegrab.core.orchestrator.convert_audio", boom)
    with pytest.raises(EmptyOutputError):
        query("/music/a.flac", Origin.LOCAL)
    assert stages == ["read"]


def test_unknown_origin_surfaces_tool_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args, **kwargs):
        raise ToolInvocationError("DOWNLOAD_FAILED", "yt-dlp failed: ERROR: 'nonsense' is not a valid URL")

    monkeypatch.setattr("tunegrab.core.orchestrator.download_audio", boom)
    with pytest.raises(ToolInvocationError) as exc:
        query("nonsense")
    assert "not a valid URL" in exc.value.message


def test_save_applies_policy_and_writes(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict = {}

    def fake_remux(song, tools=None):
        seen["tags"] = song.metadata_tags()
        song.audio_bytes = b"tagged"
        return song

    monkeypatch.setattr("tunegrab.core.orchestrator.update_bytes_from_metadata", fake_remux)
    captions: list[str] = []
    song = Song(title=" Test Song ", artist="A/B", album="ignored", audio_bytes=b"raw")

    path = save(song, tmp_path, policy=TagPolicy(), report=captions.append)

    assert path == tmp_path / "test_song_ab.mp3"
    assert path.read_bytes() == b"tagged"
    assert captions == ["updating song metadata...", "writing song to disk..."]
    assert dict(seen["tags"]) == {
        "title": "Test Song",
        "artist": "A/B",
        "album": "Test Song",
        "album_artist": "A/B",
        "composer": "A/B",
    }


def test_save_separate_album_keeps_value(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("tunegrab.core.orchestrator.update_bytes_from_metadata", lambda song, tools=None: song)
    song = Song(title="T", artist="A", album="Real Album", audio_bytes=b"raw")
    save(song, tmp_path, policy=TagPolicy(separate_album=True))
    assert song.album == "Real Album"


def test_save_missing_directory_fails_before_remux(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("remux should not run")

    monkeypatch.setattr("tunegrab.core.orchestrator.update_bytes_from_metadata", fail)
    with pytest.raises(PersistError):
        save(Song(audio_bytes=b"raw"), tmp_path / "missing")


def test_save_remux_failure_writes_nothing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fail(*args, **kwargs):
        raise TagWriteError("TAG_WRITE_FAILED", "bad")

    monkeypatch.setattr("tunegrab.core.orchestrator.update_bytes_from_metadata", fail)
    with pytest.raises(TagWriteError):
        save(Song(title="T", artist="A", audio_bytes=b"raw"), tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_adjust_volume_remeasures_and_rebuilds(monkeypatch: pytest.MonkeyPatch, stages: list[str]) -> None:
    monkeypatch.setattr("tunegrab.core.orchestrator.apply_offset", lambda audio_bytes, offset_db, tools=None: b"louder")
    song = Song(audio_bytes=b"quiet", volume=-20.0)

    out = adjust_volume(song, 3.0)

    assert out.audio_bytes == b"louder"
    assert out.volume == -14.5
    assert stages == ["analyze", "volume"]
    assert out.decoded_audio is not None
