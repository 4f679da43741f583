"""外部プロセスの非同期実行"""

import asyncio
import contextlib
import re
from collections import deque
from typing import Callable

from src.domain.entities import ProcessResult
from src.domain.exceptions import ProcessSpawnError
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)

LineCallback = Callable[[str], None]

_READ_CHUNK_SIZE = 64 * 1024

# 改行が来ないまま溜まった出力はこの長さで1行として切り出す
_MAX_LINE_BYTES = 1024 * 1024

# ffmpegの進捗表示は \r だけで区切られる
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")

# stderrは末尾の行だけ保持する
STDERR_TAIL_LINES = 1000

# エラー診断用に保持するstderrの末尾
DIAGNOSTICS_TAIL_CHARS = 2000


def tail(text: str, limit: int = DIAGNOSTICS_TAIL_CHARS) -> str:
    """診断用に長い出力の末尾だけを残す"""
    return text[-limit:] if len(text) > limit else text


async def _drain(
    stream: asyncio.StreamReader,
    sink: list[str] | deque[str],
    on_line: LineCallback | None,
) -> None:
    """ストリームを読み切り、\\n と \\r の両方で行に分ける（空行は捨てる）"""

    def emit(raw: bytes) -> None:
        if not raw:
            return
        line = raw.decode(errors="replace")
        sink.append(line)
        if on_line:
            on_line(line)

    buffer = b""
    while True:
        chunk = await stream.read(_READ_CHUNK_SIZE)
        if not chunk:
            break
        *lines, buffer = _LINE_BREAK.split(buffer + chunk)
        if len(buffer) > _MAX_LINE_BYTES:
            lines.append(buffer)
            buffer = b""
        for raw in lines:
            emit(raw)
    emit(buffer)


async def run_process(
    cmd: list[str],
    on_stdout_line: LineCallback | None = None,
    stage: str | None = None,
) -> ProcessResult:
    """
    外部プロセスを起動し、終了まで待って結果を返す

    stdout / stderr は並行して読み出すため、どちらかのパイプが
    詰まってプロセスが停止することはない。
    キャンセルを含め途中で例外が発生した場合は、子プロセスをkillして
    回収してから例外を再送出する。

    Args:
        cmd: 実行コマンド（先頭が実行ファイル）
        on_stdout_line: stdoutの各行を受け取るコールバック
        stage: ログ・例外用のステージ名（"download" など）

    Returns:
        ProcessResult（終了コード・stdout・stderrの末尾 STDERR_TAIL_LINES 行）

    Raises:
        ProcessSpawnError: 実行ファイルが存在しない・実行権限がない等
    """
    logger.debug(f"[Process] 起動: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"[Process] 起動失敗: {cmd[0]} - {e}")
        raise ProcessSpawnError(cmd[0], str(e), stage=stage) from e

    stdout_lines: list[str] = []
    stderr_lines: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    readers = [
        asyncio.ensure_future(_drain(process.stdout, stdout_lines, on_stdout_line)),
        asyncio.ensure_future(_drain(process.stderr, stderr_lines, None)),
    ]
    try:
        await asyncio.gather(*readers)
        returncode = await process.wait()
    except BaseException as e:
        for reader in readers:
            reader.cancel()
        if process.returncode is None:
            logger.warning(
                f"[Process] 中断のため終了させます: pid={process.pid} ({type(e).__name__})"
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
        raise

    logger.debug(f"[Process] 終了: {cmd[0]} (code={returncode})")

    return ProcessResult(
        returncode=returncode,
        stdout="\n".join(stdout_lines),
        stderr="\n".join(stderr_lines),
    )
