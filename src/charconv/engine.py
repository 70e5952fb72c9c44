"""変換エンジンモジュール

オープン済みのハンドルと入力バイト列から、固定サイズの出力チャンクを
繰り返し使って変換を行う。変換プリミティブのエラーは例外にせず、
途中までの出力とともに構造化された結果として返す。
"""

from __future__ import annotations

import errno
import logging
import os
from dataclasses import dataclass
from enum import Enum

from charconv.backend import Backend, Descriptor, TranscodeStep
from charconv.handle import DEFAULT_CHUNK_SIZE, IconvHandle, open_handle

# 入力末尾が不完全なマルチバイト列で終わっている
ERROR_INCOMPLETE = errno.EINVAL
# 変換元エンコーディングとして不正、または変換先で表現できない文字
ERROR_INVALID = errno.EILSEQ

INVALID_HANDLE_MESSAGE = "invalid iconv handle"

logger = logging.getLogger(__name__)


class ConversionStatus(Enum):
    """変換ステータス"""

    SUCCESS = "success"
    HANDLE_CLOSED = "handle_closed"
    INCOMPLETE_SEQUENCE = "incomplete_sequence"
    ILLEGAL_SEQUENCE = "illegal_sequence"
    LIBRARY_ERROR = "library_error"


@dataclass(frozen=True)
class ConversionResult:
    """変換結果を表すデータクラス

    失敗時もそこまでに変換できた出力を保持するため、
    呼び出し側はどこまで変換が進んだかを確認できる。

    Attributes:
        status: 変換ステータス
        output: 変換後のバイト列（失敗時は途中までの出力、クローズ済みハンドルではNone）
        message: エラーメッセージ（strerror相当）
        error_code: errno値（成功時とクローズ済みハンドルではNone）
        handle: 変換に使ったハンドル
    """

    status: ConversionStatus
    output: bytes | None
    message: str = ""
    error_code: int | None = None
    handle: IconvHandle | None = None

    @property
    def is_success(self) -> bool:
        """変換が成功したかどうかを返す"""
        return self.status == ConversionStatus.SUCCESS


def _status_for(code: int) -> ConversionStatus:
    if code == ERROR_INCOMPLETE:
        return ConversionStatus.INCOMPLETE_SEQUENCE
    if code == ERROR_INVALID:
        return ConversionStatus.ILLEGAL_SEQUENCE
    return ConversionStatus.LIBRARY_ERROR


def _failure(handle: IconvHandle, output: bytearray, code: int) -> ConversionResult:
    logger.debug(f"変換に失敗しました ({handle.from_encoding} -> {handle.to_encoding}): errno={code}")
    return ConversionResult(
        status=_status_for(code),
        output=bytes(output),
        message=os.strerror(code),
        error_code=code,
        handle=handle,
    )


def _needs_new_chunk(step: TranscodeStep) -> bool:
    """出力チャンクが一杯になっただけで、変換は進んでいるか"""
    return step.error_code == errno.E2BIG and (step.consumed > 0 or len(step.output) > 0)


def _drain(
    descriptor: Descriptor, data: bytes, chunk_size: int, output: bytearray
) -> TranscodeStep:
    """入力を使い切るまでチャンク単位で変換を繰り返す

    Returns:
        最後に呼び出した変換プリミティブの結果
    """
    offset = 0
    chunks = 1
    while True:
        step = descriptor.transcode(data, offset, chunk_size)
        output += step.output
        offset += step.consumed
        if not _needs_new_chunk(step):
            break
        chunks += 1
    if chunks > 1:
        logger.debug(f"出力チャンクを {chunks} 回使用しました ({len(output)} bytes)")
    return step


def _flush(descriptor: Descriptor, chunk_size: int, output: bytearray) -> TranscodeStep:
    """出力側のシフト状態を初期状態に戻すシーケンスを書き出す"""
    while True:
        step = descriptor.flush(chunk_size)
        output += step.output
        if not _needs_new_chunk(step):
            return step


def convert(handle: IconvHandle, data: bytes) -> ConversionResult:
    """ハンドルを使ってバイト列を変換する

    出力チャンクが一杯になった場合（E2BIG）は新しいチャンクで続きを変換する。
    成功時は次の変換に影響しないようディスクリプタのシフト状態を初期化する。
    失敗時はシフト状態をそのまま残す。

    Args:
        handle: オープン済みの変換ハンドル
        data: 変換元エンコーディングのバイト列

    Returns:
        変換結果
    """
    descriptor = handle.descriptor
    if descriptor is None:
        return ConversionResult(
            status=ConversionStatus.HANDLE_CLOSED,
            output=None,
            message=INVALID_HANDLE_MESSAGE,
            handle=handle,
        )

    data = bytes(data)
    output = bytearray()

    step = _drain(descriptor, data, handle.chunk_size, output)
    if not step.is_ok:
        return _failure(handle, output, step.error_code)

    step = _flush(descriptor, handle.chunk_size, output)
    if not step.is_ok:
        return _failure(handle, output, step.error_code)

    descriptor.reset()
    return ConversionResult(
        status=ConversionStatus.SUCCESS,
        output=bytes(output),
        handle=handle,
    )


class Converter:
    """1引数で変換を行う呼び出し可能オブジェクト

    オープン済みのハンドルを束縛し、convert(handle, data) と同じ結果を返す。
    close() で早期にハンドルを解放でき、その後の呼び出しは
    HANDLE_CLOSED を返す。
    """

    def __init__(self, handle: IconvHandle) -> None:
        self._handle = handle

    def __call__(self, data: bytes) -> ConversionResult:
        return convert(self._handle, data)

    def __repr__(self) -> str:
        return f"<Converter {self._handle!r}>"

    @property
    def handle(self) -> IconvHandle:
        return self._handle

    def close(self) -> None:
        self._handle.close()


@dataclass(frozen=True)
class ConverterResult:
    """Converterの生成結果

    Attributes:
        converter: 生成したConverter（失敗時はNone）
        message: 失敗時のエラーメッセージ
    """

    converter: Converter | None
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.converter is not None


def converter(
    to_encoding: str,
    from_encoding: str,
    *,
    backend: Backend | str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ConverterResult:
    """新しいハンドルを束縛したConverterを生成する

    open_handle() の後にハンドルをConverterで包むのと同じ。

    Args:
        to_encoding: 変換先エンコーディング名
        from_encoding: 変換元エンコーディング名
        backend: バックエンドまたはその名前（Noneの場合は "auto"）
        chunk_size: 出力チャンクのサイズ（バイト）

    Returns:
        生成結果
    """
    opened = open_handle(to_encoding, from_encoding, backend=backend, chunk_size=chunk_size)
    if opened.handle is None:
        return ConverterResult(converter=None, message=opened.message)
    return ConverterResult(converter=Converter(opened.handle))
