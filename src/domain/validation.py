"""クリップリクエストの入力検証"""

import re
from typing import Any

from src.domain.entities import ClipRequest
from src.domain.exceptions import InvalidInputError, InvalidUrlError
from src.domain.time_utils import to_time_range

YOUTUBE_URL_PATTERN = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+$")

REQUIRED_FIELDS_MESSAGE = "url, startTime, and endTime are required"


def is_valid_youtube_url(url: str) -> bool:
    """YouTube (youtube.com / youtu.be) のURLかどうか"""
    return bool(YOUTUBE_URL_PATTERN.match(url))


def _normalize_field(value: Any) -> str | None:
    """文字列・数値を前後空白なしの文字列に揃える。空ならNone"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def validate_clip_request(
    url: Any,
    start_time: Any,
    end_time: Any,
) -> ClipRequest:
    """
    リクエストボディの値を検証してClipRequestを生成

    副作用なし。外部プロセスを起動する前に必ず呼ばれる。

    Args:
        url: YouTube動画URL
        start_time: 開始タイムスタンプ
        end_time: 終了タイムスタンプ

    Returns:
        検証済みのClipRequest

    Raises:
        InvalidInputError: 必須項目の欠落、または開始 >= 終了
        InvalidUrlError: YouTubeのURLではない
    """
    url_value = _normalize_field(url)
    start_value = _normalize_field(start_time)
    end_value = _normalize_field(end_time)

    if not url_value or not start_value or not end_value:
        raise InvalidInputError(REQUIRED_FIELDS_MESSAGE)

    if not is_valid_youtube_url(url_value):
        raise InvalidUrlError("Invalid YouTube URL")

    # 両方とも秒数に変換できる場合のみ前後関係をチェック
    try:
        to_time_range(start_value, end_value)
    except ValueError as e:
        raise InvalidInputError("endTime must be after startTime", details=str(e)) from e

    return ClipRequest(url=url_value, start_time=start_value, end_time=end_value)
