"""CLI向けログ出力

VerboseLevel (詳細ログレベル)に応じて出力を制御する。
ライブラリ本体は標準のloggingを使い、このモジュールはCLIの表示にのみ使う。
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import TextIO


class VerboseLevel(IntEnum):
    """詳細ログレベル

    QUIET: エラーのみ出力
    NORMAL: 結果のサマリを出力
    VERBOSE: 変換元・変換先エンコーディングも出力（-vオプション）
    DEBUG: バックエンドやチャンクの情報も出力（-vvオプション）
    """

    QUIET = -1
    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


@dataclass
class LogConfig:
    """ログ設定

    Attributes:
        verbose_level: ログの詳細度レベル
        log_file: ログ出力先ファイルパス（Noneの場合はファイル出力なし）
        stream: 通常メッセージの出力先（Noneの場合は標準エラー出力）
    """

    verbose_level: VerboseLevel = VerboseLevel.NORMAL
    log_file: Path | None = None
    stream: TextIO | None = None


class ConsoleLogger:
    """CLIのログ出力クラス

    変換結果そのものを標準出力に書き出すことがあるため、
    メッセージはすべて標準エラー出力（またはLogConfig.stream）に出す。

    使用例:
        >>> with ConsoleLogger(LogConfig(verbose_level=VerboseLevel.VERBOSE)) as logger:
        ...     logger.verbose("SHIFT_JIS -> UTF-8")
    """

    _ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

    def __init__(self, config: LogConfig) -> None:
        self._config = config
        self._log_file: TextIO | None = None
        if config.log_file:
            # クラス自体がコンテキストマネージャとして動作し、__exit__でファイルを閉じる
            self._log_file = open(config.log_file, "w", encoding="utf-8")  # noqa: SIM115

    def __enter__(self) -> ConsoleLogger:
        return self

    def __exit__(self, *args: object) -> None:
        if self._log_file:
            self._log_file.close()
            self._log_file = None

    @property
    def config(self) -> LogConfig:
        return self._config

    def _print(self, message: str) -> None:
        print(message, file=self._config.stream or sys.stderr)

    def _log_to_file(self, level: str, message: str) -> None:
        if self._log_file:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            clean_message = self._ANSI_ESCAPE_PATTERN.sub("", message)
            self._log_file.write(f"[{timestamp}] {level}: {clean_message}\n")
            self._log_file.flush()

    def info(self, message: str) -> None:
        """情報メッセージを出力する（NORMAL以上）"""
        if self._config.verbose_level >= VerboseLevel.NORMAL:
            self._print(message)
        self._log_to_file("INFO", message)

    def verbose(self, message: str) -> None:
        """詳細メッセージを出力する（VERBOSE以上）"""
        if self._config.verbose_level >= VerboseLevel.VERBOSE:
            self._print(message)
        self._log_to_file("VERBOSE", message)

    def debug(self, message: str) -> None:
        """デバッグメッセージを出力する（DEBUG以上）"""
        if self._config.verbose_level >= VerboseLevel.DEBUG:
            self._print(message)
        self._log_to_file("DEBUG", message)

    def warning(self, message: str) -> None:
        """警告メッセージを出力する（QUIET以上）"""
        if self._config.verbose_level > VerboseLevel.QUIET:
            self._print(f"警告: {message}")
        self._log_to_file("WARNING", message)

    def error(self, message: str) -> None:
        """エラーメッセージを出力する（常に出力）"""
        self._print(f"エラー: {message}")
        self._log_to_file("ERROR", message)

    def log_conversion(self, source: str, dest: str, from_encoding: str, to_encoding: str) -> None:
        """変換内容をログする（VERBOSE以上）

        Args:
            source: 入力の表示名
            dest: 出力の表示名
            from_encoding: 変換元エンコーディング
            to_encoding: 変換先エンコーディング
        """
        self.verbose(f"変換: {source} ({from_encoding}) -> {dest} ({to_encoding})")

    def log_summary(self, bytes_before: int, bytes_after: int, success: bool) -> None:
        """変換サマリを出力する（NORMAL以上）"""
        status = "OK" if success else "FAILED"
        self.info(f"[{status}] {bytes_before} bytes -> {bytes_after} bytes")
