"""動画正規化（再エンコード）インターフェース"""

from pathlib import Path
from typing import Protocol


class VideoNormalizer(Protocol):
    """互換性の高いコンテナ/コーデックへ再エンコードするインターフェース"""

    async def normalize(self, source: Path, destination: Path) -> Path:
        """
        ダウンロード済みの区間を再エンコード

        Args:
            source: ダウンロード済みファイル
            destination: 出力ファイル（存在する場合は上書き）

        Returns:
            出力ファイルパス（存在し、サイズ > 0 が保証される）

        Raises:
            TranscodeFailedError: 異常終了
            TranscodeOutputInvalidError: 出力が存在しない・空
            ProcessSpawnError: トランスコーダを起動できない
        """
        ...
