"""ffmpeg による再エンコード（互換性重視のmp4に正規化）"""

from pathlib import Path

from src.domain.exceptions import TranscodeFailedError, TranscodeOutputInvalidError
from src.infrastructure.logging_config import get_logger
from src.infrastructure.process_runner import run_process, tail

logger = get_logger(__name__)


def is_non_empty_file(file_path: Path) -> bool:
    """ファイルが存在し、サイズが0より大きいか"""
    return file_path.is_file() and file_path.stat().st_size > 0


class FfmpegNormalizer:
    """
    H.264 (High, Level 4.0) / yuv420p / AAC の mp4 に再エンコード

    +faststart で moov atom を先頭に置き、ダウンロード途中でも
    再生できるようにする。
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        audio_bitrate: str = "128k",
    ):
        """
        Args:
            ffmpeg_path: ffmpegの実行パス
            audio_bitrate: AACのビットレート
        """
        self.ffmpeg_path = ffmpeg_path
        self.audio_bitrate = audio_bitrate

    def build_command(self, source: Path, destination: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostdin",
            "-nostats",  # \r 区切りの進捗表示を出さない
            "-i", str(source),
            "-c:v", "libx264",
            "-profile:v", "high",
            "-level", "4.0",
            "-pix_fmt", "yuv420p",
            "-c:a", "aac",
            "-b:a", self.audio_bitrate,
            "-movflags", "+faststart",
            "-y",  # 上書き許可
            str(destination),
        ]

    async def normalize(self, source: Path, destination: Path) -> Path:
        """
        再エンコードして出力を検証

        終了コード0だけでは成功とみなさず、出力ファイルの存在と
        サイズも確認する。

        Raises:
            TranscodeFailedError: ffmpegが異常終了
            TranscodeOutputInvalidError: 出力が存在しない・空
            ProcessSpawnError: ffmpegを起動できない
        """
        logger.info(f"[Normalizer] 再エンコード開始: {source.name} → {destination.name}")

        result = await run_process(
            self.build_command(source, destination),
            stage="transcode",
        )

        if not result.ok:
            logger.error(
                f"[Normalizer] ffmpeg失敗 (code={result.returncode}): {tail(result.stderr, 500)}"
            )
            raise TranscodeFailedError(result.returncode, tail(result.stderr))

        if not is_non_empty_file(destination):
            logger.error(f"[Normalizer] 出力ファイルが存在しないか空です: {destination}")
            raise TranscodeOutputInvalidError(destination)

        logger.info(
            f"[Normalizer] 再エンコード完了: {destination.name} "
            f"({destination.stat().st_size} bytes)"
        )
        return destination
