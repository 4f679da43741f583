"""クリップファイルのストリーミング送信"""

from pathlib import Path
from typing import Callable, Iterator

from starlette.requests import ClientDisconnect
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024  # 64KB
CLIP_FILENAME = "clip.mp4"
CLIP_MEDIA_TYPE = "video/mp4"


def iter_file(file_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """ファイルをチャンク単位で読み出すジェネレータ"""
    with open(file_path, "rb") as f:
        while True:
            data = f.read(chunk_size)
            if not data:
                break
            yield data


class ClipFileResponse(StreamingResponse):
    """
    添付ファイルとしてクリップを送信するレスポンス

    送信が正常終了しても、クライアント切断やI/Oエラーで中断しても、
    最後に必ず on_close を呼ぶ。
    """

    def __init__(
        self,
        content: Iterator[bytes],
        on_close: Callable[[], None],
        filename: str = CLIP_FILENAME,
    ):
        super().__init__(
            content,
            media_type=CLIP_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (OSError, ClientDisconnect) as e:
            logger.warning(f"[Streamer] 送信中断: {type(e).__name__} {e}")
            raise
        finally:
            self.on_close()
