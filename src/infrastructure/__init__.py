# Infrastructure Layer
from src.infrastructure.cleanup import cleanup_job
from src.infrastructure.ffmpeg_normalizer import FfmpegNormalizer
from src.infrastructure.process_runner import run_process
from src.infrastructure.result_streamer import ClipFileResponse, iter_file
from src.infrastructure.retry import RetryingSegmentDownloader
from src.infrastructure.ytdlp_downloader import YtdlpSegmentDownloader

__all__ = [
    "YtdlpSegmentDownloader",
    "RetryingSegmentDownloader",
    "FfmpegNormalizer",
    "ClipFileResponse",
    "iter_file",
    "cleanup_job",
    "run_process",
]
