from __future__ import annotations

from pathlib import Path

from tunegrab.core.origin import Origin, classify


def test_classify_youtube_links() -> None:
    assert classify("https://www.youtube.com/watch?v=abc123") == Origin.YOUTUBE
    assert classify("https://music.youtube.com/watch?v=abc123") == Origin.YOUTUBE
    assert classify("https://youtu.be/abc123") == Origin.YOUTUBE


def test_classify_soundcloud_link() -> None:
    assert classify("https://soundcloud.com/artist/track") == Origin.SOUNDCLOUD


def test_youtube_wins_over_soundcloud() -> None:
    assert classify("https://soundcloud.com/redirect?to=youtube.com/x") == Origin.YOUTUBE


def test_classify_existing_local_file(tmp_path: Path) -> None:
    song = tmp_path / "song.flac"
    song.write_bytes(b"fLaC")
    assert classify(str(song)) == Origin.LOCAL


def test_classify_missing_path_and_garbage_is_unknown(tmp_path: Path) -> None:
    assert classify(str(tmp_path / "missing.mp3")) == Origin.UNKNOWN
    assert classify("") == Origin.UNKNOWN
    assert classify("not a link at all") == Origin.UNKNOWN
    assert classify("bad\x00path") == Origin.UNKNOWN


def test_directory_is_not_local(tmp_path: Path) -> None:
    assert classify(str(tmp_path)) == Origin.UNKNOWN


def test_remote_flag() -> None:
    assert Origin.YOUTUBE.is_remote
    assert Origin.SOUNDCLOUD.is_remote
    assert not Origin.LOCAL.is_remote
    assert not Origin.UNKNOWN.is_remote
