"""yt-dlp による区間ダウンロード"""

import random
import re
from pathlib import Path
from typing import Protocol

from src.domain.entities import ClipRequest, DownloadFailureKind, ProcessResult
from src.domain.exceptions import DownloadFailedError, NoOutputFileFoundError
from src.infrastructure.logging_config import get_logger
from src.infrastructure.process_runner import run_process, tail

logger = get_logger(__name__)

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

# 書き込み途中のファイル（出力として採用しない）
PARTIAL_SUFFIXES = (".part", ".ytdl", ".temp", ".tmp")


def build_format_selector(max_height: int) -> str:
    """
    フォーマット選択式を構築

    mp4 の映像 + m4a の音声 → mp4 単体 → 何でも最良、の順にフォールバック
    """
    return (
        f"bestvideo[ext=mp4][height<={max_height}]+bestaudio[ext=m4a]"
        f"/best[ext=mp4][height<={max_height}]"
        "/best"
    )


def is_partial_artifact(path: Path) -> bool:
    """yt-dlpの書き込み途中ファイル・断片ファイルかどうか"""
    return path.suffix in PARTIAL_SUFFIXES or ".part-Frag" in path.name


# ---------------------------------------------------------------------------
# 失敗の分類
# ---------------------------------------------------------------------------

# (分類, stderrに含まれるキーワード, ユーザー向けメッセージ) 上から順に判定
FAILURE_RULES: list[tuple[DownloadFailureKind, tuple[str, ...], str]] = [
    (
        DownloadFailureKind.CONTENT_NOT_AVAILABLE,
        ("this content isn't available", "this content isn’t available"),
        "This video is not available. It might be private, age-restricted, or region-locked.",
    ),
    (
        DownloadFailureKind.AGE_RESTRICTED,
        ("sign in to confirm your age", "age-restricted", "age restricted"),
        "This video is age-restricted and cannot be downloaded.",
    ),
    (
        DownloadFailureKind.PRIVATE,
        ("private video", "this video is private"),
        "This video is private and cannot be downloaded.",
    ),
    (
        DownloadFailureKind.REGION_LOCKED,
        ("available in your country", "from your location", "geo restrict", "geo-restrict"),
        "This video is not available in this region.",
    ),
    (
        DownloadFailureKind.UNAVAILABLE,
        ("video unavailable",),
        "This video is unavailable. It might have been removed or made private.",
    ),
]

GENERIC_FAILURE_MESSAGE = "Failed to download video"


def classify_download_failure(stderr: str) -> DownloadFailedError:
    """
    yt-dlpのstderrから失敗を分類

    Args:
        stderr: yt-dlpの診断出力

    Returns:
        分類済みのDownloadFailedError（送出はしない）
    """
    lowered = stderr.lower()
    for kind, keywords, message in FAILURE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return DownloadFailedError(kind, message, tail(stderr))
    return DownloadFailedError(DownloadFailureKind.GENERIC, GENERIC_FAILURE_MESSAGE, tail(stderr))


# ---------------------------------------------------------------------------
# 出力ファイルの特定
# ---------------------------------------------------------------------------


class OutputLocator(Protocol):
    """ダウンロード結果のファイルを特定する戦略"""

    name: str

    def locate(self, prefix: Path, result: ProcessResult) -> Path | None:
        ...


class LogLineLocator:
    """
    yt-dlpの出力ログから保存先を読み取る

    ログ形式は yt-dlp のバージョンで変わり得るため、見つからなければ
    Noneを返して次の戦略に任せる。
    """

    name = "log"

    PATTERNS = [
        re.compile(r"^\[download\] Destination: (?P<path>.+)$"),
        re.compile(r'^\[Merger\] Merging formats into "(?P<path>.+)"$'),
        re.compile(r"^\[download\] (?P<path>.+) has already been downloaded"),
    ]

    def locate(self, prefix: Path, result: ProcessResult) -> Path | None:
        found = None
        for line in result.stdout_lines:
            for pattern in self.PATTERNS:
                match = pattern.match(line.strip())
                if not match:
                    continue
                candidate = Path(match.group("path").strip())
                if str(candidate).startswith(f"{prefix}.") and not is_partial_artifact(candidate):
                    # マージ後のファイルが最後に出るので後勝ち
                    found = candidate

        if found and found.is_file():
            return found
        return None


class PrefixScanLocator:
    """出力ディレクトリから接頭辞が一致するファイルを探す"""

    name = "scan"

    def locate(self, prefix: Path, result: ProcessResult) -> Path | None:
        directory = prefix.parent
        if not directory.is_dir():
            return None

        candidates = [
            path
            for path in directory.iterdir()
            if path.name.startswith(f"{prefix.name}.")
            and path.is_file()
            and not is_partial_artifact(path)
        ]
        if not candidates:
            return None

        # 複数ある場合は最も新しいもの
        return max(candidates, key=lambda p: p.stat().st_mtime)


class YtdlpSegmentDownloader:
    """yt-dlp の --download-sections による区間ダウンロード"""

    def __init__(
        self,
        ytdlp_path: str = "yt-dlp",
        user_agents: list[str] | None = None,
        max_height: int = 1080,
        socket_timeout: int = 30,
        retries: int = 3,
        cookies_from_browser: str | None = None,
        extractor_args: str | None = None,
        locators: list[OutputLocator] | None = None,
    ):
        """
        Args:
            ytdlp_path: yt-dlpの実行パス
            user_agents: 呼び出しごとにランダムに選ぶUser-Agent
            max_height: 解像度の上限
            socket_timeout: ソケットタイムアウト（秒）
            retries: yt-dlp自身のリトライ回数
            cookies_from_browser: --cookies-from-browser に渡すブラウザ名
            extractor_args: --extractor-args に渡す値
            locators: 出力ファイル特定の戦略（先頭から順に試す）
        """
        self.ytdlp_path = ytdlp_path
        self.user_agents = user_agents or DEFAULT_USER_AGENTS
        self.max_height = max_height
        self.socket_timeout = socket_timeout
        self.retries = retries
        self.cookies_from_browser = cookies_from_browser
        self.extractor_args = extractor_args
        self.locators: list[OutputLocator] = locators or [LogLineLocator(), PrefixScanLocator()]

    def pick_user_agent(self) -> str:
        return random.choice(self.user_agents)

    def build_command(self, request: ClipRequest, output_prefix: Path) -> list[str]:
        """yt-dlp のコマンドラインを構築"""
        cmd = [
            self.ytdlp_path,
            request.url,
            "-f", build_format_selector(self.max_height),
            "--download-sections", request.section,
            "-o", f"{output_prefix}.%(ext)s",
            "--merge-output-format", "mp4",
            "--no-playlist",
            "--no-warnings",
            "--newline",  # 進捗を1行ずつ出力
            "--user-agent", self.pick_user_agent(),
            "--socket-timeout", str(self.socket_timeout),
            "--retries", str(self.retries),
            "--fragment-retries", str(self.retries),
            "--extractor-retries", str(self.retries),
            "--force-ipv4",
            "--no-check-certificates",
            "--geo-bypass",
        ]
        if self.cookies_from_browser:
            cmd.extend(["--cookies-from-browser", self.cookies_from_browser])
        if self.extractor_args:
            cmd.extend(["--extractor-args", self.extractor_args])
        return cmd

    def _log_output_line(self, line: str) -> None:
        logger.debug(f"[yt-dlp] {line}")

    async def download(self, request: ClipRequest, output_prefix: Path) -> Path:
        """
        指定区間をダウンロードし、生成されたファイルのパスを返す

        Raises:
            DownloadFailedError: yt-dlpが異常終了（stderrから分類）
            NoOutputFileFoundError: 正常終了したがファイルを特定できない
            ProcessSpawnError: yt-dlpを起動できない
        """
        cmd = self.build_command(request, output_prefix)
        logger.info(f"[Downloader] 区間ダウンロード開始: {request.url} {request.section}")

        result = await run_process(
            cmd,
            on_stdout_line=self._log_output_line,
            stage="download",
        )

        if not result.ok:
            error = classify_download_failure(result.stderr)
            logger.error(
                f"[Downloader] yt-dlp失敗 (code={result.returncode}, kind={error.kind.value}): "
                f"{tail(result.stderr, 500)}"
            )
            raise error

        for locator in self.locators:
            path = locator.locate(output_prefix, result)
            if path:
                logger.info(f"[Downloader] ダウンロード完了 ({locator.name}): {path}")
                return path.resolve()

        logger.error(f"[Downloader] 出力ファイルが見つかりません: {output_prefix}.*")
        raise NoOutputFileFoundError(output_prefix, tail(result.stderr))
