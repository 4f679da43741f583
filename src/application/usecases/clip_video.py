"""メインユースケース: YouTube動画の指定区間をクリップとして生成"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator

from src.application.interfaces.segment_downloader import SegmentDownloader
from src.application.interfaces.video_normalizer import VideoNormalizer
from src.domain.entities import BackoffPolicy, ClipJob, PipelineState
from src.domain.exceptions import (
    ClipperError,
    DownloadExhaustedError,
    DownloadFailedError,
    InvalidInputError,
    InvalidUrlError,
    ProcessSpawnError,
    TranscodeFailedError,
    TranscodeOutputInvalidError,
)
from src.domain.validation import validate_clip_request

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Failed to process video section"


@dataclass
class ClipPipelineConfig:
    """パイプラインの設定"""

    uploads_dir: Path = Path("uploads")
    max_retries: int = 3  # ダウンロードの最大試行回数
    initial_backoff_ms: int = 1000
    backoff_policy: BackoffPolicy = BackoffPolicy.EXPONENTIAL
    user_agents: list[str] = field(default_factory=list)  # 空ならダウンローダの既定値
    max_height: int = 1080  # 解像度の上限
    stream_chunk_size: int = 64 * 1024


class ClipVideoUseCase:
    """
    メインユースケース: 検証 → 区間ダウンロード → 再エンコード → 送信 → 後片付け

    状態遷移:
        VALIDATING → DOWNLOADING → TRANSCODING → STREAMING → CLEANING → DONE
        どの段階で失敗しても ERRORED → CLEANING → DONE

    ステージをまたいだリトライは行わない（再エンコード失敗で
    ダウンロードをやり直すことはない）。
    """

    def __init__(
        self,
        downloader: SegmentDownloader,
        normalizer: VideoNormalizer,
        cleaner: Callable[[ClipJob], Any],
        streamer: Callable[[Path], Iterator[bytes]],
        config: ClipPipelineConfig | None = None,
    ):
        """
        Args:
            downloader: 区間ダウンローダ（リトライ込み）
            normalizer: 再エンコーダ
            cleaner: ジョブの一時ファイルを削除する関数
            streamer: ファイルをチャンク単位で読み出す関数
            config: パイプライン設定
        """
        self.downloader = downloader
        self.normalizer = normalizer
        self.cleaner = cleaner
        self.streamer = streamer
        self.config = config or ClipPipelineConfig()

    def _transition(self, job: ClipJob, state: PipelineState) -> None:
        logger.info(f"[Pipeline] job={job.job_id}: {job.state.value} → {state.value}")
        job.transition(state)

    def _fail(self, job: ClipJob, error: BaseException) -> None:
        if isinstance(error, ClipperError):
            logger.warning(
                f"[Pipeline] job={job.job_id} 失敗 ({job.state.value}): "
                f"{type(error).__name__}: {error.message}"
            )
        else:
            logger.error(
                f"[Pipeline] job={job.job_id} 予期しないエラー ({job.state.value}): {error!r}",
                exc_info=isinstance(error, Exception),
            )
        self._transition(job, PipelineState.ERRORED)

    async def execute(self, url: Any, start_time: Any, end_time: Any) -> ClipJob:
        """
        クリップを生成し、送信可能な状態のジョブを返す

        失敗した場合は一時ファイルを削除してから例外を再送出する。

        Args:
            url: YouTube動画URL
            start_time: 開始タイムスタンプ
            end_time: 終了タイムスタンプ

        Returns:
            最終出力が検証済みのClipJob（state=TRANSCODING完了後）

        Raises:
            ClipperError: 各ステージの分類済みエラー
        """
        job = ClipJob.create(self.config.uploads_dir)

        try:
            request = validate_clip_request(url, start_time, end_time)
            job.request = request
            logger.info(
                f"[Pipeline] job={job.job_id} 受付: {request.url} "
                f"({request.start_time} - {request.end_time})"
            )

            self._transition(job, PipelineState.DOWNLOADING)
            job.downloaded_path = await self.downloader.download(request, job.download_prefix)

            self._transition(job, PipelineState.TRANSCODING)
            await self.normalizer.normalize(job.downloaded_path, job.output_path)
        except BaseException as e:
            self._fail(job, e)
            self.finish(job)
            raise

        return job

    def stream(self, job: ClipJob) -> Iterator[bytes]:
        """
        最終出力を送信用のチャンク列として返す

        再エンコードが成功したジョブ以外は送信しない。
        送信後の後片付けは finish() で行う。
        """
        if job.state != PipelineState.TRANSCODING:
            raise RuntimeError(f"job {job.job_id} is not ready to stream (state={job.state.value})")

        self._transition(job, PipelineState.STREAMING)
        return self._iter_output(job)

    def _iter_output(self, job: ClipJob) -> Iterator[bytes]:
        try:
            yield from self.streamer(job.output_path)
        except Exception as e:
            self._fail(job, e)
            raise

    def finish(self, job: ClipJob) -> None:
        """
        ジョブの一時ファイルを削除して完了にする

        何度呼ばれても安全。削除の失敗はログに残すだけで送出しない。
        """
        if job.state in (PipelineState.CLEANING, PipelineState.DONE):
            return

        self._transition(job, PipelineState.CLEANING)
        try:
            self.cleaner(job)
        except Exception:
            logger.exception(f"[Pipeline] job={job.job_id} 後片付けに失敗")
        self._transition(job, PipelineState.DONE)


def map_error_to_response(error: BaseException) -> tuple[int, dict[str, str]]:
    """
    例外をHTTPステータスとJSONボディに変換

    - 入力エラー・ダウンロード側の失敗 → 400 {"error"}
    - 再エンコード側の失敗・予期しないエラー → 500 {"error", "details"}
    """
    if isinstance(error, (InvalidInputError, InvalidUrlError)):
        return 400, {"error": error.message}

    if isinstance(error, (DownloadExhaustedError, DownloadFailedError)):
        return 400, {"error": error.message}

    if isinstance(error, ProcessSpawnError):
        if error.stage == "download":
            return 400, {"error": error.message}
        return 500, {"error": GENERIC_SERVER_ERROR, "details": error.message}

    if isinstance(error, TranscodeFailedError):
        details = error.message
        if error.diagnostics:
            details = f"{details}: {error.diagnostics}"
        return 500, {"error": "Failed to transcode video segment", "details": details}

    if isinstance(error, TranscodeOutputInvalidError):
        return 500, {"error": "Transcoded output is missing or empty", "details": error.message}

    if isinstance(error, ClipperError):
        return 500, {"error": GENERIC_SERVER_ERROR, "details": error.message}

    return 500, {"error": GENERIC_SERVER_ERROR, "details": f"{type(error).__name__}: {error}"}
