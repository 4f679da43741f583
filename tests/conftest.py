"""テスト共通: yt-dlp / ffmpeg の代わりに動く偽の実行ファイル"""

import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

_FAKE_YTDLP_BODY = '''
CALLS = Path(CALLS)
args = sys.argv[1:]
with CALLS.open("a", encoding="utf-8") as f:
    f.write(" ".join(args) + "\\n")
attempt = len(CALLS.read_text(encoding="utf-8").splitlines())

if FAIL_TIMES < 0 or attempt <= FAIL_TIMES:
    sys.stderr.write("ERROR: " + STDERR + "\\n")
    sys.exit(1)

template = args[args.index("-o") + 1]
output = Path(template.replace("%(ext)s", "mp4"))
if WRITE_OUTPUT:
    output.write_bytes(b"downloaded-segment")
if ANNOUNCE:
    print("[youtube] Extracting URL")
    print("[download] Destination: " + str(output))
    print("[download] 100% of 1.00MiB")
'''

_FAKE_FFMPEG_BODY = '''
CALLS = Path(CALLS)
args = sys.argv[1:]
with CALLS.open("a", encoding="utf-8") as f:
    f.write(" ".join(args) + "\\n")

source = Path(args[args.index("-i") + 1])
output = Path(args[-1])

if MODE == "fail":
    sys.stderr.write("Invalid data found when processing input\\n")
    sys.exit(1)
if MODE == "empty":
    output.write_bytes(b"")
elif MODE == "ok":
    output.write_bytes(b"normalized:" + source.read_bytes())
'''


@dataclass
class FakeTool:
    """偽の外部ツール"""

    path: Path
    calls_file: Path

    @property
    def calls(self) -> list[str]:
        if not self.calls_file.exists():
            return []
        return self.calls_file.read_text(encoding="utf-8").splitlines()


def _write_script(path: Path, constants: dict[str, object], body: str) -> Path:
    header = [f"#!{sys.executable}", "import sys", "from pathlib import Path", ""]
    header += [f"{name} = {value!r}" for name, value in constants.items()]
    path.write_text("\n".join(header) + "\n" + body, encoding="utf-8")
    path.chmod(0o755)
    return path


def make_fake_ytdlp(
    directory: Path,
    fail_times: int = 0,
    stderr: str = "",
    announce: bool = True,
    write_output: bool = True,
) -> FakeTool:
    """
    偽のyt-dlpを作成

    Args:
        fail_times: 最初の何回を失敗させるか（負数なら常に失敗）
        stderr: 失敗時にstderrへ出すメッセージ
        announce: "[download] Destination:" 行を出力するか
        write_output: 出力ファイルを書き込むか
    """
    calls_file = directory / "ytdlp_calls.log"
    path = _write_script(
        directory / "fake-yt-dlp",
        {
            "CALLS": str(calls_file),
            "FAIL_TIMES": fail_times,
            "STDERR": stderr,
            "ANNOUNCE": announce,
            "WRITE_OUTPUT": write_output,
        },
        _FAKE_YTDLP_BODY,
    )
    return FakeTool(path=path, calls_file=calls_file)


def make_fake_ffmpeg(directory: Path, mode: str = "ok") -> FakeTool:
    """
    偽のffmpegを作成

    Args:
        mode: "ok"（入力を元に出力） / "empty"（空ファイル） /
              "missing"（何も書かない） / "fail"（終了コード1）
    """
    calls_file = directory / "ffmpeg_calls.log"
    path = _write_script(
        directory / "fake-ffmpeg",
        {"CALLS": str(calls_file), "MODE": mode},
        _FAKE_FFMPEG_BODY,
    )
    return FakeTool(path=path, calls_file=calls_file)


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "uploads"
    directory.mkdir()
    return directory


@pytest.fixture
def make_ytdlp(tools_dir: Path):
    """偽のyt-dlpを作るファクトリ"""

    def factory(**kwargs) -> FakeTool:
        return make_fake_ytdlp(tools_dir, **kwargs)

    return factory


@pytest.fixture
def make_ffmpeg(tools_dir: Path):
    """偽のffmpegを作るファクトリ"""

    def factory(mode: str = "ok") -> FakeTool:
        return make_fake_ffmpeg(tools_dir, mode=mode)

    return factory
