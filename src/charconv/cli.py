"""CLI entry point for charconv."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from charconv import __version__
from charconv.backend import BACKEND_NAMES, list_encodings
from charconv.config import (
    DEFAULT_CONFIG_FILENAME,
    CharconvConfig,
    ConfigError,
    get_default_config,
    load_config,
)
from charconv.detector import EncodingDetector
from charconv.doctor import check_all_dependencies
from charconv.engine import converter
from charconv.logger import ConsoleLogger, LogConfig, VerboseLevel
from charconv.types import ExitCode

app = typer.Typer(help="iconv互換の文字コード変換CLIツール")
console = Console()

_UTF8_BOM = b"\xef\xbb\xbf"


def _resolve_config(config_path: Path | None) -> CharconvConfig:
    """設定ファイルを読み込む（指定がなければカレントディレクトリの既定ファイル）"""
    if config_path is not None:
        return load_config(config_path)
    default_path = Path(DEFAULT_CONFIG_FILENAME)
    if default_path.exists():
        return load_config(default_path)
    return get_default_config()


def _verbose_level(verbose: int, quiet: bool) -> VerboseLevel:
    if quiet:
        return VerboseLevel.QUIET
    return VerboseLevel(min(verbose, VerboseLevel.DEBUG))


@app.command()
def convert(
    input_path: Annotated[str, typer.Argument(help="入力ファイルパス（- で標準入力）")] = "-",
    from_code: Annotated[
        str | None, typer.Option("-f", "--from-code", help="変換元エンコーディング")
    ] = None,
    to_code: Annotated[str | None, typer.Option("-t", "--to-code", help="変換先エンコーディング")] = None,
    output: Annotated[Path | None, typer.Option("-o", "--output", help="出力ファイルパス")] = None,
    backend: Annotated[str | None, typer.Option(help="バックエンド（auto/libc/python）")] = None,
    chunk_size: Annotated[int | None, typer.Option(help="出力チャンクサイズ（バイト）")] = None,
    config_path: Annotated[Path | None, typer.Option("--config", help="設定ファイル")] = None,
    keep_partial: Annotated[
        bool, typer.Option(help="失敗時も途中までの出力を書き出す")
    ] = False,
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="詳細ログ出力")] = 0,
    quiet: Annotated[bool, typer.Option("-q", "--quiet", help="エラー以外を出力しない")] = False,
    log_file: Annotated[Path | None, typer.Option(help="ログファイル出力先")] = None,
) -> None:
    """文字コードを変換する"""
    log_config = LogConfig(verbose_level=_verbose_level(verbose, quiet), log_file=log_file)
    with ConsoleLogger(log_config) as logger:
        try:
            config = _resolve_config(config_path)
        except ConfigError as e:
            logger.error(str(e))
            raise typer.Exit(ExitCode.INVALID_INPUT) from e

        backend_name = backend or config.backend
        if backend_name not in BACKEND_NAMES:
            logger.error(f"未知のバックエンドです: {backend_name}")
            raise typer.Exit(ExitCode.INVALID_INPUT)

        size = chunk_size if chunk_size is not None else config.chunk_size
        if size <= 0:
            logger.error(f"chunk_sizeは正の整数である必要があります: {size}")
            raise typer.Exit(ExitCode.INVALID_INPUT)

        if input_path == "-":
            data = typer.get_binary_stream("stdin").read()
            source_label = "<stdin>"
        else:
            path = Path(input_path)
            if not path.is_file():
                logger.error(f"入力ファイルが見つかりません: {input_path}")
                raise typer.Exit(ExitCode.INVALID_INPUT)
            data = path.read_bytes()
            source_label = path.name

        from_encoding = from_code or config.encoding.source
        if from_encoding is None:
            from_encoding = EncodingDetector(config.detection.min_confidence).guess(data)
            if from_encoding is None:
                logger.error("変換元エンコーディングを検出できません。-f で指定してください")
                raise typer.Exit(ExitCode.INVALID_INPUT)
            logger.debug(f"文字コード検出: {from_encoding}")
            if from_encoding == "UTF-8" and data.startswith(_UTF8_BOM):
                data = data[len(_UTF8_BOM) :]
        to_encoding = to_code or config.encoding.target

        dest_label = str(output) if output is not None else "<stdout>"
        logger.log_conversion(source_label, dest_label, from_encoding, to_encoding)
        logger.debug(f"バックエンド: {backend_name}, チャンクサイズ: {size}")

        opened = converter(to_encoding, from_encoding, backend=backend_name, chunk_size=size)
        if opened.converter is None:
            logger.error(f"{from_encoding} -> {to_encoding} の変換を開始できません: {opened.message}")
            raise typer.Exit(ExitCode.UNSUPPORTED)

        with opened.converter.handle:
            result = opened.converter(data)

        produced = result.output or b""
        if result.is_success or keep_partial:
            if output is not None:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(produced)
            else:
                stdout = typer.get_binary_stream("stdout")
                stdout.write(produced)
                stdout.flush()

        if not result.is_success:
            logger.error(
                f"{result.message} (errno={result.error_code}, "
                f"{len(produced)} bytes converted before failure)"
            )
            logger.log_summary(len(data), len(produced), success=False)
            raise typer.Exit(ExitCode.CONVERSION_ERROR)

        logger.log_summary(len(data), len(produced), success=True)


@app.command("list")
def list_command(
    backend: Annotated[str, typer.Option(help="バックエンド（auto/libc/python）")] = "auto",
) -> None:
    """既知のエンコーディング名を一覧表示する"""
    if backend not in BACKEND_NAMES:
        console.print(f"[red]Error: 未知のバックエンドです: {backend}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT)
    try:
        names = list_encodings(backend)
    except (NotImplementedError, OSError) as e:
        console.print(f"[red]Error: エンコーディング一覧を取得できません: {e}[/red]")
        raise typer.Exit(ExitCode.UNSUPPORTED) from e

    for name in names:
        typer.echo(name)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def doctor() -> None:
    """変換バックエンドをチェックする"""
    results = check_all_dependencies()

    table = Table(title="バックエンドチェック結果")
    table.add_column("ステータス", justify="center")
    table.add_column("名前", justify="left")
    table.add_column("バージョン", justify="left")
    table.add_column("必須", justify="center")
    table.add_column("メッセージ", justify="left")

    has_missing_required = False

    for result in results:
        if result.found:
            status = "[green]✓[/green]"
        else:
            status = "[red]✗[/red]"
            if result.required:
                has_missing_required = True

        required_str = "[yellow]必須[/yellow]" if result.required else "オプション"
        table.add_row(status, result.name, result.version or "-", required_str, result.message or "")

    console.print(table)

    if has_missing_required:
        console.print("\n[red]エラー: 必須のバックエンドが利用できません[/red]")
        raise typer.Exit(ExitCode.UNSUPPORTED)
    console.print("\n[green]変換バックエンドが利用可能です[/green]")
    raise typer.Exit(ExitCode.SUCCESS)


def version_callback(value: bool) -> None:
    """バージョン表示コールバック"""
    if value:
        typer.echo(f"charconv {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="バージョンを表示する",
        ),
    ] = False,
) -> None:
    """charconv CLI - iconv互換の文字コード変換"""
    pass
