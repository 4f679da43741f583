# Domain Layer
from src.domain.entities import (
    BackoffPolicy,
    ClipJob,
    ClipRequest,
    DownloadFailureKind,
    PipelineState,
    ProcessResult,
    TimeRange,
)
from src.domain.exceptions import (
    ClipperError,
    DownloadExhaustedError,
    DownloadFailedError,
    InvalidInputError,
    InvalidUrlError,
    NoOutputFileFoundError,
    ProcessSpawnError,
    TranscodeFailedError,
    TranscodeOutputInvalidError,
)
from src.domain.validation import validate_clip_request

__all__ = [
    "TimeRange",
    "ClipRequest",
    "ClipJob",
    "PipelineState",
    "BackoffPolicy",
    "DownloadFailureKind",
    "ProcessResult",
    "ClipperError",
    "InvalidInputError",
    "InvalidUrlError",
    "ProcessSpawnError",
    "DownloadFailedError",
    "NoOutputFileFoundError",
    "DownloadExhaustedError",
    "TranscodeFailedError",
    "TranscodeOutputInvalidError",
    "validate_clip_request",
]
