"""ffmpeg 再エンコードのテスト"""

import asyncio
from pathlib import Path

import pytest

from src.domain.exceptions import (
    ProcessSpawnError,
    TranscodeFailedError,
    TranscodeOutputInvalidError,
)
from src.infrastructure.ffmpeg_normalizer import FfmpegNormalizer, is_non_empty_file


class TestBuildCommand:
    """ffmpeg コマンドライン"""

    def test_compatibility_profile(self, tmp_path: Path) -> None:
        normalizer = FfmpegNormalizer(ffmpeg_path="ffmpeg", audio_bitrate="96k")
        cmd = normalizer.build_command(tmp_path / "in.webm", tmp_path / "out.mp4")

        def value(flag: str) -> str:
            return cmd[cmd.index(flag) + 1]

        assert cmd[0] == "ffmpeg"
        assert value("-i") == str(tmp_path / "in.webm")
        assert value("-c:v") == "libx264"
        assert value("-profile:v") == "high"
        assert value("-level") == "4.0"
        assert value("-pix_fmt") == "yuv420p"
        assert value("-c:a") == "aac"
        assert value("-b:a") == "96k"
        assert value("-movflags") == "+faststart"
        assert "-y" in cmd
        assert "-nostats" in cmd
        assert cmd[-1] == str(tmp_path / "out.mp4")


class TestIsNonEmptyFile:
    def test_cases(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.mp4"
        empty.write_bytes(b"")
        full = tmp_path / "full.mp4"
        full.write_bytes(b"x")

        assert not is_non_empty_file(tmp_path / "missing.mp4")
        assert not is_non_empty_file(empty)
        assert is_non_empty_file(full)
        assert not is_non_empty_file(tmp_path)


class TestNormalize:
    """偽のffmpegを使った再エンコード"""

    @pytest.fixture
    def source(self, tmp_path: Path) -> Path:
        path = tmp_path / "temp-muxed-1.mp4"
        path.write_bytes(b"segment")
        return path

    def test_success(self, make_ffmpeg, source: Path, tmp_path: Path) -> None:
        tool = make_ffmpeg("ok")
        destination = tmp_path / "clip-1.mp4"

        result = asyncio.run(FfmpegNormalizer(ffmpeg_path=str(tool.path)).normalize(source, destination))

        assert result == destination
        assert destination.read_bytes() == b"normalized:segment"
        assert len(tool.calls) == 1

    def test_nonzero_exit(self, make_ffmpeg, source: Path, tmp_path: Path) -> None:
        tool = make_ffmpeg("fail")

        with pytest.raises(TranscodeFailedError) as exc_info:
            asyncio.run(FfmpegNormalizer(ffmpeg_path=str(tool.path)).normalize(source, tmp_path / "clip-1.mp4"))

        assert exc_info.value.returncode == 1
        assert "Invalid data" in exc_info.value.diagnostics

    @pytest.mark.parametrize("mode", ["empty", "missing"])
    def test_exit_zero_without_output(self, make_ffmpeg, source: Path, tmp_path: Path, mode: str) -> None:
        """終了コード0でも出力が空・欠落なら失敗"""
        tool = make_ffmpeg(mode)
        destination = tmp_path / "clip-1.mp4"

        with pytest.raises(TranscodeOutputInvalidError) as exc_info:
            asyncio.run(FfmpegNormalizer(ffmpeg_path=str(tool.path)).normalize(source, destination))

        assert exc_info.value.path == destination

    def test_missing_binary(self, source: Path, tmp_path: Path) -> None:
        normalizer = FfmpegNormalizer(ffmpeg_path=str(tmp_path / "missing-ffmpeg"))

        with pytest.raises(ProcessSpawnError) as exc_info:
            asyncio.run(normalizer.normalize(source, tmp_path / "clip-1.mp4"))

        assert exc_info.value.stage == "transcode"
