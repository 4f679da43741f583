"""FastAPI アプリケーションエントリーポイント"""

from functools import partial
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

project_root = Path(__file__).parent.parent

# .envファイルを最初に読み込む
load_dotenv(project_root / ".env")

from config.settings import Settings, get_settings
from src.application.usecases.clip_video import (
    ClipVideoUseCase,
    map_error_to_response,
)
from src.infrastructure.cleanup import cleanup_job
from src.infrastructure.ffmpeg_normalizer import FfmpegNormalizer
from src.infrastructure.logging_config import get_logger, parse_log_level, setup_logging
from src.infrastructure.result_streamer import ClipFileResponse, iter_file
from src.infrastructure.retry import RetryingSegmentDownloader
from src.infrastructure.ytdlp_downloader import YtdlpSegmentDownloader

logger = get_logger(__name__)

INVALID_BODY_MESSAGE = "Request body must be a JSON object with url, startTime, and endTime"


class ClipRequestBody(BaseModel):
    """POST /api/clip のリクエストボディ（欠落はユースケース側で400にする）"""

    url: str | None = None
    startTime: str | int | float | None = None
    endTime: str | int | float | None = None


def init_usecase(settings: Settings) -> ClipVideoUseCase:
    """DIでユースケースを組み立て"""
    config = settings.to_pipeline_config()

    downloader = RetryingSegmentDownloader(
        YtdlpSegmentDownloader(
            ytdlp_path=settings.YTDLP_PATH,
            user_agents=config.user_agents,
            max_height=config.max_height,
            socket_timeout=settings.SOCKET_TIMEOUT,
            retries=settings.YTDLP_RETRIES,
            cookies_from_browser=settings.YTDLP_COOKIES_FROM_BROWSER,
            extractor_args=settings.YTDLP_EXTRACTOR_ARGS,
        ),
        max_attempts=config.max_retries,
        initial_backoff_ms=config.initial_backoff_ms,
        backoff_policy=config.backoff_policy,
    )

    return ClipVideoUseCase(
        downloader=downloader,
        normalizer=FfmpegNormalizer(
            ffmpeg_path=settings.FFMPEG_PATH,
            audio_bitrate=settings.AUDIO_BITRATE,
        ),
        cleaner=cleanup_job,
        streamer=partial(iter_file, chunk_size=config.stream_chunk_size),
        config=config,
    )


def create_app(
    settings: Settings | None = None,
    usecase: ClipVideoUseCase | None = None,
) -> FastAPI:
    """
    FastAPIアプリケーションを生成

    Args:
        settings: 設定（省略時は環境変数 / .env から読み込む）
        usecase: ユースケース（省略時は settings から組み立てる）
    """
    settings = settings or get_settings()
    usecase = usecase or init_usecase(settings)

    # 全ジョブの作業ディレクトリ
    settings.uploads_path.mkdir(parents=True, exist_ok=True)
    logger.info(f"[App] uploads ディレクトリ: {settings.uploads_path.resolve()}")

    app = FastAPI(title="YT Clipper")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.usecase = usecase

    @app.exception_handler(RequestValidationError)
    async def handle_invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"[App] 不正なリクエストボディ: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": INVALID_BODY_MESSAGE})

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/clip")
    async def create_clip(body: ClipRequestBody):
        try:
            job = await usecase.execute(body.url, body.startTime, body.endTime)
        except Exception as e:
            status_code, content = map_error_to_response(e)
            return JSONResponse(status_code=status_code, content=content)

        return ClipFileResponse(
            usecase.stream(job),
            on_close=partial(usecase.finish, job),
        )

    return app


def main() -> None:
    settings = get_settings()
    setup_logging(level=parse_log_level(settings.LOG_LEVEL))

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
