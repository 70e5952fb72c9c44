"""変換バックエンドの利用可否チェッカー"""

from __future__ import annotations

import codecs
import platform
from collections.abc import Callable
from dataclasses import dataclass

import chardet

from charconv.backend import LibcBackend, PythonBackend


@dataclass(frozen=True)
class CheckResult:
    """チェック結果"""

    name: str
    required: bool
    found: bool
    version: str | None
    message: str | None


def check_libc_iconv() -> CheckResult:
    """システムのiconvがロードできるかをチェックする"""
    try:
        backend = LibcBackend()
    except OSError as e:
        return CheckResult(
            name="iconv (libc)",
            required=False,
            found=False,
            version=None,
            message=f"iconvライブラリをロードできません: {e}",
        )
    listing = "iconvlistあり" if backend.supports_listing else "iconvlistなし"
    return CheckResult(
        name="iconv (libc)",
        required=False,
        found=True,
        version=platform.libc_ver()[1] or None,
        message=listing,
    )


def check_python_codecs() -> CheckResult:
    """Pythonのcodecレジストリで基本的な変換ができるかをチェックする"""
    try:
        codecs.lookup("utf-8")
        codecs.lookup("shift_jis")
    except LookupError as e:
        return CheckResult(
            name="Python codecs",
            required=True,
            found=False,
            version=platform.python_version(),
            message=f"codecの検索に失敗しました: {e}",
        )
    count = len(PythonBackend().list_encodings())
    return CheckResult(
        name="Python codecs",
        required=True,
        found=True,
        version=platform.python_version(),
        message=f"{count} encodings",
    )


def check_chardet() -> CheckResult:
    """文字コード検出に使うchardetで実際に検出できるかをチェックする"""
    version = getattr(chardet, "__version__", None)
    try:
        result = chardet.detect("文字コード検出".encode())
    except Exception as e:
        return CheckResult(
            name="chardet",
            required=False,
            found=False,
            version=version,
            message=f"文字コード検出に失敗しました: {e}",
        )
    if not result.get("encoding"):
        return CheckResult(
            name="chardet",
            required=False,
            found=False,
            version=version,
            message="文字コードを検出できませんでした",
        )
    return CheckResult(
        name="chardet",
        required=False,
        found=True,
        version=version,
        message=f"検出結果: {result['encoding']}",
    )


CHECKS: list[Callable[[], CheckResult]] = [
    check_python_codecs,
    check_libc_iconv,
    check_chardet,
]


def check_all_dependencies() -> list[CheckResult]:
    """全てのバックエンドと依存ライブラリをチェックする"""
    return [check() for check in CHECKS]
