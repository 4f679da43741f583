"""設定管理"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from src.application.usecases.clip_video import ClipPipelineConfig
from src.domain.entities import BackoffPolicy
from src.infrastructure.ytdlp_downloader import DEFAULT_USER_AGENTS


class Settings(BaseSettings):
    """アプリケーション設定"""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    CORS_ORIGINS: list[str] = ["*"]

    # Paths
    UPLOADS_DIR: str = "uploads"
    YTDLP_PATH: str = "yt-dlp"
    FFMPEG_PATH: str = "ffmpeg"

    # Download retry（試行回数の上限と待機時間）
    MAX_RETRIES: int = 3
    INITIAL_BACKOFF_MS: int = 1000
    BACKOFF_POLICY: BackoffPolicy = BackoffPolicy.EXPONENTIAL

    # yt-dlp
    # 呼び出しごとにランダムに選ぶUser-Agent
    USER_AGENTS: list[str] = DEFAULT_USER_AGENTS
    MAX_HEIGHT: int = 1080
    SOCKET_TIMEOUT: int = 30
    # yt-dlp自身のリトライ回数（--retries / --fragment-retries / --extractor-retries）
    YTDLP_RETRIES: int = 3
    # 例: "chrome"
    YTDLP_COOKIES_FROM_BROWSER: str | None = None
    # 例: "youtube:player_client=android"
    YTDLP_EXTRACTOR_ARGS: str | None = None

    # ffmpeg
    AUDIO_BITRATE: str = "128k"

    # Streaming
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def uploads_path(self) -> Path:
        return Path(self.UPLOADS_DIR)

    def to_pipeline_config(self) -> ClipPipelineConfig:
        """パイプラインに渡す設定を生成"""
        return ClipPipelineConfig(
            uploads_dir=self.uploads_path,
            max_retries=self.MAX_RETRIES,
            initial_backoff_ms=self.INITIAL_BACKOFF_MS,
            backoff_policy=self.BACKOFF_POLICY,
            user_agents=list(self.USER_AGENTS),
            max_height=self.MAX_HEIGHT,
            stream_chunk_size=self.STREAM_CHUNK_SIZE,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """シングルトンで設定を取得"""
    return Settings()
