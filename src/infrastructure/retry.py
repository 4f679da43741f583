"""リトライ戦略"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)
from tenacity.wait import wait_base

from src.application.interfaces.segment_downloader import SegmentDownloader
from src.domain.entities import BackoffPolicy, ClipRequest
from src.domain.exceptions import DownloadExhaustedError, DownloadFailedError
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def build_backoff(policy: BackoffPolicy, initial_backoff_ms: int) -> wait_base:
    """
    試行回数に応じて伸びる待機時間を構築

    - EXPONENTIAL: initial, initial*2, initial*4, ...
    - LINEAR: initial, initial*2, initial*3, ...
    """
    initial_sec = initial_backoff_ms / 1000
    if policy == BackoffPolicy.LINEAR:
        return wait_incrementing(start=initial_sec, increment=initial_sec)
    return wait_exponential(multiplier=initial_sec, min=initial_sec)


class RetryingSegmentDownloader:
    """
    SegmentDownloader に回数上限付きのリトライを被せる

    全試行で同じ出力接頭辞を使うため、途中で成功した場合は
    その試行の出力パスがそのまま採用される。
    リトライ対象は DownloadFailedError のみ（起動失敗は即時送出）。
    """

    def __init__(
        self,
        downloader: SegmentDownloader,
        max_attempts: int = 3,
        initial_backoff_ms: int = 1000,
        backoff_policy: BackoffPolicy = BackoffPolicy.EXPONENTIAL,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.downloader = downloader
        self.max_attempts = max_attempts
        self.initial_backoff_ms = initial_backoff_ms
        self.backoff_policy = backoff_policy
        self.sleep = sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=build_backoff(self.backoff_policy, self.initial_backoff_ms),
            retry=retry_if_exception_type(DownloadFailedError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
        )

    async def download(self, request: ClipRequest, output_prefix: Path) -> Path:
        """
        リトライ付きでダウンロード

        Raises:
            DownloadExhaustedError: 全試行が失敗（最後の分類済みエラーを保持）
            ProcessSpawnError: ダウンローダを起動できない
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    logger.info(
                        f"[Retry] ダウンロード試行 {attempt_number}/{self.max_attempts}"
                    )
                    return await self.downloader.download(request, output_prefix)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                f"[Retry] {self.max_attempts}回試行しましたが失敗: {last_error}"
            )
            raise DownloadExhaustedError(last_error, self.max_attempts) from last_error

        # AsyncRetrying は成功で return するか RetryError を送出する
        raise AssertionError("unreachable")
