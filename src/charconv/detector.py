"""文字コード検出モジュール

変換元エンコーディングが指定されていない入力について、
chardetを使って文字コードを推定する。
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from pathlib import Path

import chardet

# chardetが返す名前とiconvで一般的な名前の対応
_ENCODING_ALIASES: dict[str, str] = {
    "ascii": "UTF-8",  # ASCIIはUTF-8のサブセット
    "utf-8": "UTF-8",
    "utf-8-sig": "UTF-8",
    "shift_jis": "SHIFT_JIS",
    "euc-jp": "EUC-JP",
    "iso-8859-1": "ISO-8859-1",
    "windows-1252": "CP1252",
    "utf-16": "UTF-16",
    "utf-32": "UTF-32",
}

DEFAULT_MIN_CONFIDENCE = 0.5


def _normalize_encoding(encoding: str | None) -> str | None:
    """エンコーディング名を正規化する

    Args:
        encoding: 検出されたエンコーディング名

    Returns:
        正規化されたエンコーディング名
    """
    if encoding is None:
        return None
    lower_encoding = encoding.lower().replace("_", "-")
    if lower_encoding == "shift-jis":
        lower_encoding = "shift_jis"
    return _ENCODING_ALIASES.get(lower_encoding, encoding.upper())


def _is_known_encoding(encoding: str | None) -> bool:
    if encoding is None:
        return False
    try:
        codecs.lookup(encoding)
    except LookupError:
        return False
    return True


@dataclass(frozen=True)
class EncodingDetectionResult:
    """文字コード検出結果

    Attributes:
        encoding: 検出されたエンコーディング名（検出できない場合はNone）
        confidence: 検出の信頼度（0.0〜1.0）
        is_supported: 検出された名前がcodecレジストリで解決できるか
        has_bom: 入力がUTF-8のBOMで始まっているか
    """

    encoding: str | None
    confidence: float
    is_supported: bool
    has_bom: bool = False


class EncodingDetector:
    """文字コード検出クラス

    chardetライブラリを使用して検出を行う。
    """

    def __init__(self, min_confidence: float = DEFAULT_MIN_CONFIDENCE) -> None:
        self._min_confidence = min_confidence

    @property
    def min_confidence(self) -> float:
        return self._min_confidence

    def detect(self, file_path: Path) -> EncodingDetectionResult:
        """ファイルの文字コードを検出する

        Args:
            file_path: 検出対象のファイルパス

        Returns:
            検出結果

        Raises:
            FileNotFoundError: ファイルが存在しない場合
        """
        if not file_path.exists():
            raise FileNotFoundError(f"ファイルが見つかりません: {file_path}")
        return self.detect_bytes(file_path.read_bytes())

    def detect_bytes(self, data: bytes) -> EncodingDetectionResult:
        """バイトデータの文字コードを検出する

        Args:
            data: 検出対象のバイトデータ

        Returns:
            検出結果。空のデータではencodingがNoneになる
        """
        if len(data) == 0:
            return EncodingDetectionResult(encoding=None, confidence=0.0, is_supported=False)

        result = chardet.detect(data)
        encoding = _normalize_encoding(result.get("encoding"))
        confidence = result.get("confidence", 0.0) or 0.0

        return EncodingDetectionResult(
            encoding=encoding,
            confidence=confidence,
            is_supported=_is_known_encoding(encoding),
            has_bom=data.startswith(codecs.BOM_UTF8),
        )

    def guess(self, data: bytes) -> str | None:
        """信頼度が閾値以上の場合のみエンコーディング名を返す

        Args:
            data: 検出対象のバイトデータ

        Returns:
            エンコーディング名。推定できない場合はNone
        """
        result = self.detect_bytes(data)
        if not result.is_supported or result.confidence < self._min_confidence:
            return None
        return result.encoding
