"""ジョブの一時ファイル削除"""

from pathlib import Path

from src.domain.entities import ClipJob
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)

# ffmpeg / yt-dlp が書き込み途中に使う接尾辞
PARTIAL_OUTPUT_SUFFIXES = (".part", ".tmp", ".temp")


def job_temp_paths(job: ClipJob) -> list[Path]:
    """
    ジョブに紐づく削除対象のパスを列挙

    - ダウンロード済みファイル
    - 最終出力とその書き込み途中ファイル
    - ダウンロード接頭辞に一致する残骸（.part や フォーマット別の中間ファイル）
    """
    paths: list[Path] = []
    if job.downloaded_path:
        paths.append(job.downloaded_path)

    paths.append(job.output_path)
    paths.extend(
        job.output_path.with_name(job.output_path.name + suffix)
        for suffix in PARTIAL_OUTPUT_SUFFIXES
    )

    directory = job.download_prefix.parent
    if directory.is_dir():
        try:
            paths.extend(p for p in directory.iterdir() if job.owns(p))
        except OSError as e:
            logger.warning(f"[Cleanup] ディレクトリ走査に失敗: {directory} - {e}")

    # 重複を除いて順序を維持
    return list(dict.fromkeys(paths))


def remove_paths(paths: list[Path]) -> list[Path]:
    """
    パスを1つずつ削除

    1つの削除に失敗しても残りの削除は続行し、例外は送出しない。

    Returns:
        削除できたパスのリスト
    """
    removed = []
    for path in paths:
        try:
            if path.is_file() or path.is_symlink():
                path.unlink()
                removed.append(path)
        except OSError as e:
            logger.warning(f"[Cleanup] 削除失敗: {path} - {e}")
    return removed


def cleanup_job(job: ClipJob) -> list[Path]:
    """ジョブの一時ファイルをすべて削除"""
    removed = remove_paths(job_temp_paths(job))
    logger.info(f"[Cleanup] job={job.job_id}: {len(removed)}件削除")
    return removed
