from __future__ import annotations

from pathlib import Path
from subprocess import CompletedProcess

import pytest

from tunegrab.core.errors import EmptyOutputError, VolumeDetectionError
from tunegrab.core.volume import apply_offset, measure_mean_volume, parse_mean_volume, parse_volume_offset

REPORT = """
[Parsed_volumedetect_0 @ 0x600003d3c000] n_samples: 2646000
[Parsed_volumedetect_0 @ 0x600003d3c000] mean_volume: -17.4 dB
[Parsed_volumedetect_0 @ 0x600003d3c000] max_volume: -1.2 dB
"""


def test_parse_mean_volume() -> None:
    assert parse_mean_volume(REPORT) == pytest.approx(-17.4)
    assert parse_mean_volume("mean_volume: -inf dB") == float("-inf")


def test_parse_mean_volume_missing_marker() -> None:
    with pytest.raises(VolumeDetectionError) as exc:
        parse_mean_volume("Invalid data found when processing input")
    assert exc.value.code == "VOLUME_NOT_DETECTED"


def test_parse_volume_offset() -> None:
    assert parse_volume_offset("3") == 3.0
    assert parse_volume_offset(" -2.5 dB ") == -2.5
    with pytest.raises(ValueError):
        parse_volume_offset("loud")
    with pytest.raises(ValueError):
        parse_volume_offset("nan")


def test_measure_mean_volume_reads_stderr(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["input"] = Path(cmd[cmd.index("-i") + 1]).read_bytes()
        return CompletedProcess(args=cmd, returncode=0, stdout=b"", stderr=REPORT.encode())

    monkeypatch.setattr("tunegrab.core.command.subprocess.run", fake_run)
    assert measure_mean_volume(b"mp3") == pytest.approx(-17.4)
    assert "volumedetect" in seen["cmd"]
    assert seen["input"] == b"mp3"


def test_measure_mean_volume_on_crash(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "tunegrab.core.command.subprocess.run",
        lambda cmd, **kwargs: CompletedProcess(args=cmd, returncode=1, stdout=b"", stderr=b"moov atom not found"),
    )
    with pytest.raises(VolumeDetectionError):
        measure_mean_volume(b"junk")


def test_apply_offset_uses_volume_filter(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        Path(cmd[-1]).write_bytes(b"louder")
        return CompletedProcess(args=cmd, returncode=0, stdout=b"", stderr=b"")

    monkeypatch.setattr("tunegrab.core.command.subprocess.run", fake_run)
    assert apply_offset(b"quiet", 3.0) == b"louder"
    assert "volume=3.0dB" in seen["cmd"]


def test_apply_offset_empty_output(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "tunegrab.core.command.subprocess.run",
        lambda cmd, **kwargs: CompletedProcess(args=cmd, returncode=1, stdout=b"", stderr=b"bad"),
    )
    with pytest.raises(EmptyOutputError):
        apply_offset(b"quiet", -1.0)


def test_apply_offset_rejects_partial_output_on_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, **kwargs):
        Path(cmd[-1]).write_bytes(b"half")
        return CompletedProcess(args=cmd, returncode=1, stdout=b"", stderr=b"Conversion failed!")

    monkeypatch.setattr("tunegrab.core.command.subprocess.run", fake_run)
    with pytest.raises(EmptyOutputError):
        apply_offset(b"quiet", 3.0)
