"""外部プロセス実行のテスト"""

import asyncio
import os
import sys
from pathlib import Path

import pytest

from src.domain.exceptions import ProcessSpawnError
from src.infrastructure.process_runner import STDERR_TAIL_LINES, run_process, tail


class TestRunProcess:
    """run_process のテスト"""

    def test_captures_output_and_exit_code(self) -> None:
        """stdout / stderr / 終了コードを取得"""
        script = "import sys; print('one'); print('two'); sys.stderr.write('oops'); sys.exit(3)"
        result = asyncio.run(run_process([sys.executable, "-c", script]))

        assert result.returncode == 3
        assert not result.ok
        assert result.stdout_lines == ["one", "two"]
        assert result.stderr == "oops"

    def test_line_callback(self) -> None:
        """stdoutの各行がコールバックに渡る"""
        lines: list[str] = []
        script = "for i in range(3): print(f'line {i}')"
        result = asyncio.run(
            run_process([sys.executable, "-c", script], on_stdout_line=lines.append)
        )

        assert result.ok
        assert lines == ["line 0", "line 1", "line 2"]

    def test_large_output_does_not_block(self) -> None:
        """stdout / stderr の両方が大量でも詰まらない"""
        script = (
            "import sys\n"
            "for i in range(20000):\n"
            "    sys.stdout.write('o' * 50 + '\\n')\n"
            "    sys.stderr.write('e' * 50 + '\\n')\n"
        )
        result = asyncio.run(run_process([sys.executable, "-c", script]))

        assert result.ok
        assert len(result.stdout_lines) == 20000
        # stderrは末尾だけ保持
        assert len(result.stderr.splitlines()) == STDERR_TAIL_LINES

    def test_carriage_return_progress(self) -> None:
        """\\r 区切りの進捗が1MiBを超えても読み切れる"""
        script = (
            "import sys\n"
            "for i in range(25000):\n"
            "    sys.stderr.write(f'frame={i:6d} fps=30 q=28.0 size={i}kB time=00:00:10.00 bitrate=800kbits/s\\r')\n"
            "sys.stderr.write('\\nConversion failed!\\n')\n"
            "sys.exit(1)\n"
        )
        result = asyncio.run(run_process([sys.executable, "-c", script], stage="transcode"))

        assert result.returncode == 1
        lines = result.stderr.splitlines()
        assert lines[-1] == "Conversion failed!"
        assert lines[-2].startswith("frame= 24999")
        assert len(lines) == STDERR_TAIL_LINES

    def test_carriage_return_splits_stdout_lines(self) -> None:
        lines: list[str] = []
        script = "import sys; sys.stdout.write('a\\rb\\r\\nc\\n\\nd')"
        result = asyncio.run(
            run_process([sys.executable, "-c", script], on_stdout_line=lines.append)
        )

        assert lines == ["a", "b", "c", "d"]
        assert result.stdout_lines == ["a", "b", "c", "d"]

    def test_unterminated_output_is_split(self) -> None:
        """改行の無い巨大な出力でも例外にならない"""
        script = "import sys; sys.stderr.write('x' * (3 * 1024 * 1024))"
        result = asyncio.run(run_process([sys.executable, "-c", script]))

        assert result.ok
        assert len(result.stderr.replace("\n", "")) == 3 * 1024 * 1024

    def test_callback_error_kills_process(self) -> None:
        """コールバックの例外でも子プロセスを終了・回収する"""
        pids: list[int] = []

        def on_line(line: str) -> None:
            pids.append(int(line))
            raise RuntimeError("callback failed")

        script = "import os, sys, time; print(os.getpid(), flush=True); time.sleep(30)"

        async def scenario() -> None:
            await run_process([sys.executable, "-c", script], on_stdout_line=on_line)

        with pytest.raises(RuntimeError, match="callback failed"):
            asyncio.run(asyncio.wait_for(scenario(), timeout=10))

        # 回収済みならPIDはもう存在しない
        with pytest.raises(ProcessLookupError):
            os.kill(pids[0], 0)

    def test_missing_executable(self, tmp_path: Path) -> None:
        """存在しない実行ファイルはProcessSpawnError"""
        missing = str(tmp_path / "no-such-tool")
        with pytest.raises(ProcessSpawnError) as exc_info:
            asyncio.run(run_process([missing, "--version"], stage="download"))

        assert exc_info.value.stage == "download"
        assert exc_info.value.executable == missing
        assert "Failed to start" in exc_info.value.message

    def test_cancellation_kills_process(self) -> None:
        """キャンセルされたら子プロセスを終了させる"""

        async def scenario() -> None:
            task = asyncio.create_task(
                run_process([sys.executable, "-c", "import time; time.sleep(30)"])
            )
            await asyncio.sleep(0.5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(asyncio.wait_for(scenario(), timeout=10))


class TestTail:
    """tail のテスト"""

    def test_short_text_is_unchanged(self) -> None:
        assert tail("abc", limit=10) == "abc"

    def test_long_text_keeps_end(self) -> None:
        assert tail("0123456789", limit=4) == "6789"
