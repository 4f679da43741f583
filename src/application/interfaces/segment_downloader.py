"""区間ダウンロードインターフェース"""

from pathlib import Path
from typing import Protocol

from src.domain.entities import ClipRequest


class SegmentDownloader(Protocol):
    """動画の指定区間だけを取得するダウンローダのインターフェース"""

    async def download(self, request: ClipRequest, output_prefix: Path) -> Path:
        """
        指定区間を1つの mux 済みファイルとしてダウンロード

        Args:
            request: 検証済みのクリップリクエスト
            output_prefix: 出力ファイル名の接頭辞（ジョブごとに一意）

        Returns:
            実在するダウンロード済みファイルの絶対パス

        Raises:
            DownloadFailedError: ダウンロード失敗（分類済み）
            ProcessSpawnError: ダウンローダを起動できない
        """
        ...
