from __future__ import annotations

import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional

import pytest

import classroom.processing.video as video_module
from classroom.processing import (
    CompressionCancelledError,
    CompressionDependencyError,
    CompressionError,
    CompressionTimeoutError,
    FFmpegVideoCompressor,
)


class FakeProcess:
    def __init__(
        self,
        command: List[str],
        *,
        returncode: int = 0,
        stderr: bytes = b"",
        hang: bool = False,
    ) -> None:
        self.command = command
        self.returncode: Optional[int] = None
        self.pid = 4242
        self.terminated = False
        self.killed = False
        self._final_code = returncode
        self._stderr = stderr
        self._hang = hang

    def communicate(self, timeout: Optional[float] = None):
        if self._hang and not self.terminated:
            time.sleep(timeout or 0)
            raise subprocess.TimeoutExpired(self.command, timeout)
        output = Path(self.command[-1])
        output.write_bytes(b"partial" if self.terminated or self._final_code else b"h264")
        self.returncode = -15 if self.terminated else self._final_code
        return b"", self._stderr

    def terminate(self) -> None:
        self.terminated = True

    def kill(self) -> None:
        self.killed = True


@pytest.fixture()
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(video_module.shutil, "which", lambda name: f"/usr/bin/{Path(name).name}")
    spawned: List[FakeProcess] = []
    behaviour = {"returncode": 0, "stderr": b"", "hang": False}

    def fake_popen(command, stdout=None, stderr=None):
        process = FakeProcess(command, **behaviour)
        spawned.append(process)
        return process

    monkeypatch.setattr(video_module.subprocess, "Popen", fake_popen)
    return spawned, behaviour


def test_command_uses_fixed_480p_profile(tmp_path: Path) -> None:
    command = FFmpegVideoCompressor.build_command(
        "/usr/bin/ffmpeg", tmp_path / "in.mp4", tmp_path / "out.mp4"
    )

    assert command[:7] == [
        "/usr/bin/ffmpeg",
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(tmp_path / "in.mp4"),
    ]
    options = command[7:-1]
    assert options[options.index("-vf") + 1] == "scale=-2:480"
    assert options[options.index("-c:v") + 1] == "libx264"
    assert options[options.index("-crf") + 1] == "28"
    assert options[options.index("-preset") + 1] == "fast"
    assert options[options.index("-c:a") + 1] == "aac"
    assert options[options.index("-b:a") + 1] == "96k"
    assert options[options.index("-movflags") + 1] == "+faststart"
    assert command[-1] == str(tmp_path / "out.mp4")


def test_successful_transcode_writes_output(tmp_path: Path, fake_ffmpeg) -> None:
    spawned, _ = fake_ffmpeg
    source = tmp_path / "lecture.mp4"
    source.write_bytes(b"raw video")
    output = tmp_path / "compressed" / "lecture-compressed.mp4"

    FFmpegVideoCompressor(poll_interval=0.01).compress(source, output)

    assert output.read_bytes() == b"h264"
    assert spawned[0].command[0] == "/usr/bin/ffmpeg"


def test_nonzero_exit_raises_with_first_stderr_line(tmp_path: Path, fake_ffmpeg) -> None:
    _, behaviour = fake_ffmpeg
    behaviour.update(returncode=1, stderr=b"Invalid data found when processing input\nmore")
    source = tmp_path / "broken.mp4"
    source.write_bytes(b"not a video")
    output = tmp_path / "broken-compressed.mp4"

    with pytest.raises(CompressionError) as excinfo:
        FFmpegVideoCompressor(poll_interval=0.01).compress(source, output)

    assert "Invalid data found" in str(excinfo.value)
    assert not output.exists()


def test_timeout_terminates_process(tmp_path: Path, fake_ffmpeg) -> None:
    spawned, behaviour = fake_ffmpeg
    behaviour.update(hang=True)
    source = tmp_path / "long.mp4"
    source.write_bytes(b"video")
    output = tmp_path / "long-compressed.mp4"

    compressor = FFmpegVideoCompressor(timeout_seconds=0.05, poll_interval=0.01)
    with pytest.raises(CompressionTimeoutError):
        compressor.compress(source, output)

    assert spawned[0].terminated
    assert not output.exists()


def test_cancel_event_stops_transcode(tmp_path: Path, fake_ffmpeg) -> None:
    spawned, behaviour = fake_ffmpeg
    behaviour.update(hang=True)
    source = tmp_path / "long.mp4"
    source.write_bytes(b"video")
    output = tmp_path / "long-compressed.mp4"
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(CompressionCancelledError):
        FFmpegVideoCompressor(poll_interval=0.01).compress(source, output, cancel_event=cancel)

    assert spawned[0].terminated
    assert not output.exists()


def test_missing_ffmpeg_is_a_dependency_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(video_module.shutil, "which", lambda name: None)
    source = tmp_path / "lecture.mp4"
    source.write_bytes(b"video")

    with pytest.raises(CompressionDependencyError):
        FFmpegVideoCompressor().compress(source, tmp_path / "out.mp4")
