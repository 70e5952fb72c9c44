"""ConsoleLoggerのテスト"""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from charconv.logger import ConsoleLogger, LogConfig, VerboseLevel


def _logger(level: VerboseLevel, log_file: Path | None = None) -> tuple[ConsoleLogger, io.StringIO]:
    stream = io.StringIO()
    return ConsoleLogger(LogConfig(verbose_level=level, log_file=log_file, stream=stream)), stream


class TestLogConfig:
    """LogConfigのテスト"""

    def test_default_values(self) -> None:
        config = LogConfig()
        assert config.verbose_level == VerboseLevel.NORMAL
        assert config.log_file is None
        assert config.stream is None


class TestVerboseLevel:
    """VerboseLevelのテスト"""

    def test_level_ordering(self) -> None:
        assert VerboseLevel.QUIET < VerboseLevel.NORMAL < VerboseLevel.VERBOSE < VerboseLevel.DEBUG


class TestConsoleLoggerFiltering:
    """詳細レベルによる出力制御のテスト"""

    @pytest.mark.parametrize(
        "level, expected",
        [
            pytest.param(VerboseLevel.QUIET, ["エラー: e"], id="QUIETレベル"),
            pytest.param(VerboseLevel.NORMAL, ["i", "警告: w", "エラー: e"], id="NORMALレベル"),
            pytest.param(
                VerboseLevel.VERBOSE, ["i", "v", "警告: w", "エラー: e"], id="VERBOSEレベル"
            ),
            pytest.param(
                VerboseLevel.DEBUG, ["i", "v", "d", "警告: w", "エラー: e"], id="DEBUGレベル"
            ),
        ],
    )
    def test_messages_filtered_by_level(self, level: VerboseLevel, expected: list[str]) -> None:
        logger, stream = _logger(level)

        logger.info("i")
        logger.verbose("v")
        logger.debug("d")
        logger.warning("w")
        logger.error("e")

        assert stream.getvalue().splitlines() == expected

    def test_log_conversion_requires_verbose(self) -> None:
        normal, normal_stream = _logger(VerboseLevel.NORMAL)
        verbose, verbose_stream = _logger(VerboseLevel.VERBOSE)

        normal.log_conversion("in.txt", "out.txt", "SHIFT_JIS", "UTF-8")
        verbose.log_conversion("in.txt", "out.txt", "SHIFT_JIS", "UTF-8")

        assert normal_stream.getvalue() == ""
        assert "in.txt (SHIFT_JIS) -> out.txt (UTF-8)" in verbose_stream.getvalue()

    @pytest.mark.parametrize(
        "success, marker",
        [
            pytest.param(True, "[OK]", id="正常系: 成功"),
            pytest.param(False, "[FAILED]", id="異常系: 失敗"),
        ],
    )
    def test_log_summary(self, success: bool, marker: str) -> None:
        logger, stream = _logger(VerboseLevel.NORMAL)

        logger.log_summary(3, 6, success=success)

        assert stream.getvalue().strip() == f"{marker} 3 bytes -> 6 bytes"


class TestConsoleLoggerFile:
    """ログファイル出力のテスト"""

    def test_writes_all_levels_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "charconv.log"
        logger, _ = _logger(VerboseLevel.QUIET, log_file)

        with logger:
            logger.debug("\x1b[31mdebug message\x1b[0m")
            logger.error("error message")

        content = log_file.read_text(encoding="utf-8")
        assert "DEBUG: debug message" in content
        assert "ERROR: error message" in content
        assert "\x1b[" not in content

    def test_config_property(self) -> None:
        logger, _ = _logger(VerboseLevel.DEBUG)
        assert logger.config.verbose_level == VerboseLevel.DEBUG
