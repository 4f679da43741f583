"""ドメインエンティティ定義"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PipelineState(str, Enum):
    """クリップ生成パイプラインの状態"""

    VALIDATING = "validating"
    DOWNLOADING = "downloading"
    TRANSCODING = "transcoding"
    STREAMING = "streaming"
    CLEANING = "cleaning"
    DONE = "done"
    ERRORED = "errored"


class BackoffPolicy(str, Enum):
    """ダウンロード再試行の待機時間ポリシー"""

    EXPONENTIAL = "exponential"  # 初期値から倍々
    LINEAR = "linear"  # 初期値 × 試行回数


class DownloadFailureKind(str, Enum):
    """ダウンロード失敗の分類"""

    CONTENT_NOT_AVAILABLE = "content_not_available"
    UNAVAILABLE = "unavailable"
    AGE_RESTRICTED = "age_restricted"
    PRIVATE = "private"
    REGION_LOCKED = "region_locked"
    NO_OUTPUT = "no_output"
    GENERIC = "generic"


@dataclass(frozen=True)
class TimeRange:
    """時間範囲を表す値オブジェクト"""

    start_sec: float
    end_sec: float

    def __post_init__(self) -> None:
        if self.start_sec < 0:
            raise ValueError("start_sec must be non-negative")
        if self.end_sec <= self.start_sec:
            raise ValueError("end_sec must be greater than start_sec")


@dataclass(frozen=True)
class ClipRequest:
    """
    クリップ生成リクエスト

    リクエストボディから生成され、パイプライン実行中は変更されない。
    start_time / end_time は yt-dlp の --download-sections が解釈できる
    形式（"HH:MM:SS" や秒数）の文字列。
    """

    url: str
    start_time: str
    end_time: str

    @property
    def section(self) -> str:
        """yt-dlp の --download-sections 用の区間指定（*start-end）"""
        return f"*{self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class ProcessResult:
    """外部プロセスの実行結果"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stdout_lines(self) -> list[str]:
        return self.stdout.splitlines()


def new_job_id() -> str:
    """
    ジョブIDを生成

    タイムスタンプ（ナノ秒）にランダムな接尾辞を付け、
    同時刻に受け付けたリクエスト同士でも衝突しないようにする。
    """
    return f"{time.time_ns()}-{uuid.uuid4().hex[:8]}"


@dataclass
class ClipJob:
    """
    1リクエスト分のクリップ生成ジョブ

    ジョブが所有する一時ファイルは uploads ディレクトリ内の
    ジョブID付きの名前に限定され、他のジョブのファイルとは衝突しない。
    """

    job_id: str
    download_prefix: Path  # yt-dlp の出力テンプレートの拡張子前まで
    output_path: Path  # ffmpeg の最終出力
    downloaded_path: Path | None = None
    state: PipelineState = PipelineState.VALIDATING
    request: ClipRequest | None = None
    history: list[PipelineState] = field(default_factory=list)

    @classmethod
    def create(cls, uploads_dir: Path, job_id: str | None = None) -> "ClipJob":
        """uploads ディレクトリ配下にジョブ固有のパスを割り当てる"""
        job_id = job_id or new_job_id()
        base_dir = uploads_dir.resolve()
        job = cls(
            job_id=job_id,
            download_prefix=base_dir / f"temp-muxed-{job_id}",
            output_path=base_dir / f"clip-{job_id}.mp4",
        )
        job.history.append(job.state)
        return job

    @property
    def is_finished(self) -> bool:
        return self.state == PipelineState.DONE

    def owns(self, path: Path) -> bool:
        """パスがこのジョブのダウンロード成果物かどうか"""
        return path.name.startswith(f"{self.download_prefix.name}.")

    def transition(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)
