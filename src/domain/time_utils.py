"""時間変換ユーティリティ"""

import re

from src.domain.entities import TimeRange

# "SS", "MM:SS", "HH:MM:SS"（小数秒可）
_TIMESTAMP_PATTERN = re.compile(r"^\d+(?::\d{1,2}){0,2}(?:\.\d+)?$")


def parse_timestamp(value: str) -> float | None:
    """
    タイムスタンプ文字列を秒数に変換

    Args:
        value: "90", "1:30", "00:01:30.5" などの文字列

    Returns:
        秒数。解釈できない形式の場合はNone（yt-dlp側の解釈に任せる）

    Example:
        parse_timestamp("01:01:01.5") → 3661.5
    """
    text = value.strip()
    if not _TIMESTAMP_PATTERN.match(text):
        return None

    seconds = 0.0
    for part in text.split(":"):
        seconds = seconds * 60 + float(part)
    return seconds


def to_time_range(start_time: str, end_time: str) -> TimeRange | None:
    """
    開始・終了のタイムスタンプ文字列をTimeRangeに変換

    どちらかが解釈できない場合はNoneを返す。

    Raises:
        ValueError: 両方解釈できたが範囲として不正な場合
    """
    start_sec = parse_timestamp(start_time)
    end_sec = parse_timestamp(end_time)
    if start_sec is None or end_sec is None:
        return None
    return TimeRange(start_sec=start_sec, end_sec=end_sec)
