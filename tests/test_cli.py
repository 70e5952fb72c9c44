"""CLIエントリポイントのテスト"""

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from charconv.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """カレントディレクトリの設定ファイルを拾わないようにするフィクスチャ"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestMainCommand:
    """メインコマンドのテスト"""

    @pytest.mark.parametrize(
        "args,expected_in_output",
        [
            pytest.param(["--help"], "文字コード変換", id="正常系: ヘルプ表示"),
            pytest.param(["--version"], "0.1.0", id="正常系: バージョン表示"),
        ],
    )
    def test_main_options(self, args: list[str], expected_in_output: str) -> None:
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert expected_in_output in result.stdout


class TestConvertCommand:
    """convertコマンドのテスト"""

    def test_converts_file(self, tmp_path: Path) -> None:
        """ファイルを変換して出力ファイルに書き出す"""
        source = tmp_path / "latin1.txt"
        source.write_bytes(b"caf\xe9")
        dest = tmp_path / "out" / "utf8.txt"

        result = runner.invoke(
            app,
            ["convert", str(source), "-f", "ISO-8859-1", "-t", "UTF-8", "-o", str(dest)],
        )

        assert result.exit_code == 0
        assert dest.read_bytes() == b"caf\xc3\xa9"

    def test_converts_stdin_to_stdout(self) -> None:
        """標準入力を変換して標準出力に書き出す"""
        result = runner.invoke(
            app,
            ["convert", "-f", "ISO-8859-1", "-t", "UTF-8", "-q", "--backend", "python"],
            input=b"\xe9",
        )

        assert result.exit_code == 0
        assert result.stdout_bytes == b"\xc3\xa9"

    def test_illegal_sequence_exits_with_error(self, tmp_path: Path) -> None:
        """変換できない文字があればエラー終了し、出力は書き出さない"""
        source = tmp_path / "euro.txt"
        source.write_bytes("a€".encode())
        dest = tmp_path / "latin1.txt"

        result = runner.invoke(
            app,
            ["convert", str(source), "-f", "UTF-8", "-t", "ISO-8859-1", "-o", str(dest)],
        )

        assert result.exit_code == 1
        assert "errno=" in result.output
        assert not dest.exists()

    def test_keep_partial_writes_partial_output(self, tmp_path: Path) -> None:
        """--keep-partialでは途中までの出力を書き出す"""
        source = tmp_path / "euro.txt"
        source.write_bytes("a€".encode())
        dest = tmp_path / "latin1.txt"

        result = runner.invoke(
            app,
            [
                "convert",
                str(source),
                "-f",
                "UTF-8",
                "-t",
                "ISO-8859-1",
                "-o",
                str(dest),
                "--keep-partial",
            ],
        )

        assert result.exit_code == 1
        assert dest.read_bytes() == b"a"

    def test_unknown_encoding_exits_unsupported(self, tmp_path: Path) -> None:
        source = tmp_path / "in.txt"
        source.write_bytes(b"abc")

        result = runner.invoke(app, ["convert", str(source), "-f", "NO-SUCH-ENCODING"])

        assert result.exit_code == 3

    def test_missing_input_exits_invalid_input(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["convert", str(tmp_path / "missing.txt"), "-f", "UTF-8"])

        assert result.exit_code == 2

    def test_unknown_backend_exits_invalid_input(self, tmp_path: Path) -> None:
        source = tmp_path / "in.txt"
        source.write_bytes(b"abc")

        result = runner.invoke(app, ["convert", str(source), "-f", "UTF-8", "--backend", "nope"])

        assert result.exit_code == 2

    def test_detects_source_encoding(self, tmp_path: Path) -> None:
        """-fを省略するとBOM付きUTF-8を検出し、BOMを除去して変換する"""
        source = tmp_path / "bom.txt"
        source.write_bytes(b"\xef\xbb\xbf" + "テスト".encode())
        dest = tmp_path / "out.txt"

        result = runner.invoke(app, ["convert", str(source), "-t", "UTF-16LE", "-o", str(dest)])

        assert result.exit_code == 0
        assert dest.read_bytes() == "テスト".encode("utf-16-le")

    def test_uses_guessed_source_encoding(self, tmp_path: Path) -> None:
        """-fを省略するとEncodingDetector.guessの結果で変換する"""
        source = tmp_path / "latin1.txt"
        source.write_bytes(b"caf\xe9")
        dest = tmp_path / "out.txt"

        with patch("charconv.cli.EncodingDetector.guess", return_value="ISO-8859-1") as guess:
            result = runner.invoke(app, ["convert", str(source), "-o", str(dest)])

        assert result.exit_code == 0
        guess.assert_called_once_with(b"caf\xe9")
        assert dest.read_bytes() == b"caf\xc3\xa9"

    def test_undetectable_source_exits_invalid_input(self, tmp_path: Path) -> None:
        """推定できない場合は終了コード2で終了する"""
        source = tmp_path / "in.txt"
        source.write_bytes(b"\x00\x01")

        with patch("charconv.cli.EncodingDetector.guess", return_value=None):
            result = runner.invoke(app, ["convert", str(source)])

        assert result.exit_code == 2
        assert "検出できません" in result.output

    def test_uses_config_file_in_current_directory(
        self, tmp_path: Path, isolated_cwd: Path
    ) -> None:
        """カレントディレクトリのcharconv.ymlの設定を使う"""
        (isolated_cwd / "charconv.yml").write_text(
            "backend: python\nencoding:\n  source: ISO-8859-1\n  target: UTF-16LE\n"
        )
        source = tmp_path / "in.txt"
        source.write_bytes(b"\xe9")
        dest = tmp_path / "out.txt"

        result = runner.invoke(app, ["convert", str(source), "-o", str(dest)])

        assert result.exit_code == 0
        assert dest.read_bytes() == "é".encode("utf-16-le")

    def test_invalid_config_exits_invalid_input(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yml"
        config_file.write_text("chunk_size: -1\n")
        source = tmp_path / "in.txt"
        source.write_bytes(b"abc")

        result = runner.invoke(app, ["convert", str(source), "--config", str(config_file)])

        assert result.exit_code == 2

    def test_small_chunk_size_gives_same_output(self, tmp_path: Path) -> None:
        source = tmp_path / "in.txt"
        source.write_bytes(("été " * 100).encode("latin-1"))
        dest = tmp_path / "out.txt"

        result = runner.invoke(
            app,
            ["convert", str(source), "-f", "ISO-8859-1", "-o", str(dest), "--chunk-size", "3"],
        )

        assert result.exit_code == 0
        assert dest.read_bytes() == ("été " * 100).encode("utf-8")


class TestListCommand:
    """listコマンドのテスト"""

    def test_lists_python_encodings(self) -> None:
        result = runner.invoke(app, ["list", "--backend", "python"])

        assert result.exit_code == 0
        assert "utf_8" in result.stdout.splitlines()

    def test_unsupported_listing_exits_unsupported(self) -> None:
        with patch("charconv.cli.list_encodings", side_effect=NotImplementedError("no list")):
            result = runner.invoke(app, ["list"])

        assert result.exit_code == 3


class TestDoctorCommand:
    """doctorコマンドのテスト"""

    def test_doctor_shows_table(self) -> None:
        result = runner.invoke(app, ["doctor"])

        assert result.exit_code == 0
        assert "バックエンドチェック結果" in result.stdout
        assert "Python" in result.stdout
