"""ドメイン固有の例外定義"""

from pathlib import Path

from src.domain.entities import DownloadFailureKind


class ClipperError(Exception):
    """基底例外クラス"""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidInputError(ClipperError):
    """必須項目の欠落・不正な値"""

    pass


class InvalidUrlError(ClipperError):
    """YouTube以外のURL"""

    pass


class ProcessSpawnError(ClipperError):
    """外部プロセス（yt-dlp / ffmpeg）を起動できない"""

    def __init__(self, executable: str, reason: str, stage: str | None = None):
        self.executable = executable
        self.stage = stage
        super().__init__(f"Failed to start {executable}: {reason}")


class DownloadFailedError(ClipperError):
    """区間ダウンロードの失敗（分類済み）"""

    def __init__(
        self,
        kind: DownloadFailureKind,
        message: str,
        diagnostics: str = "",
    ):
        self.kind = kind
        self.diagnostics = diagnostics
        super().__init__(message, details=diagnostics or None)


class NoOutputFileFoundError(DownloadFailedError):
    """yt-dlpは成功終了したが出力ファイルが見つからない"""

    def __init__(self, prefix: Path, diagnostics: str = ""):
        self.prefix = prefix
        super().__init__(
            DownloadFailureKind.NO_OUTPUT,
            "yt-dlp succeeded but no output file found.",
            diagnostics,
        )


class DownloadExhaustedError(ClipperError):
    """リトライ上限までダウンロードが失敗"""

    def __init__(self, last_error: DownloadFailedError, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(last_error.message, details=last_error.diagnostics or None)


class TranscodeFailedError(ClipperError):
    """ffmpegが異常終了"""

    def __init__(self, returncode: int, diagnostics: str = ""):
        self.returncode = returncode
        self.diagnostics = diagnostics
        super().__init__(f"FFmpeg failed with code {returncode}", details=diagnostics)


class TranscodeOutputInvalidError(ClipperError):
    """ffmpegは正常終了したが出力が存在しない・空"""

    def __init__(self, path: Path):
        self.path = path
        super().__init__("FFmpeg output file missing or empty.", details=str(path))
