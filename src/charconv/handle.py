"""変換ハンドルモジュール

(to, from) エンコーディングの組に束縛された変換ディスクリプタを1つだけ所有し、
オープン・クローズ・状態確認を提供する。
クローズは明示的な close() とファイナライザの両方から呼ばれうるため冪等にしている。
"""

from __future__ import annotations

import errno
import logging
import os
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING

from charconv.backend import Backend, Descriptor, get_backend

if TYPE_CHECKING:
    from charconv.engine import ConversionResult

DEFAULT_CHUNK_SIZE = 8192

logger = logging.getLogger(__name__)


class _DescriptorSlot:
    """ディスクリプタの所有権を保持する入れ物

    ファイナライザがハンドル本体を参照しないよう、解放処理はこの入れ物経由で行う。
    """

    __slots__ = ("descriptor", "label")

    def __init__(self, descriptor: Descriptor, label: str) -> None:
        self.descriptor: Descriptor | None = descriptor
        self.label = label


def _release(slot: _DescriptorSlot) -> None:
    """ディスクリプタを解放する

    解放済みなら何もしない。解放に失敗した場合は状態を変えず、再試行できるようにする。
    """
    if slot.descriptor is None:
        return
    try:
        slot.descriptor.close()
    except OSError as e:
        logger.warning(f"ディスクリプタの解放に失敗しました ({slot.label}): {e}")
        return
    slot.descriptor = None
    logger.debug(f"ディスクリプタを解放しました ({slot.label})")


class IconvHandle:
    """変換ハンドル

    変換ディスクリプタを1つ所有する。ハンドルが到達不能になると
    ファイナライザがディスクリプタを解放する。

    使用例:
        >>> result = open_handle("UTF-8", "ISO-8859-1")
        >>> with result.handle as handle:
        ...     handle.convert(b"\\xe9").output
        b'\\xc3\\xa9'
    """

    def __init__(
        self,
        descriptor: Descriptor,
        to_encoding: str,
        from_encoding: str,
        backend: Backend,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """ハンドルを初期化する

        通常は open_handle() を使って生成する。

        Args:
            descriptor: 所有する変換ディスクリプタ
            to_encoding: 変換先エンコーディング名
            from_encoding: 変換元エンコーディング名
            backend: ディスクリプタを生成したバックエンド
            chunk_size: 出力チャンクのサイズ（バイト）
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_sizeは正の整数である必要があります: {chunk_size}")
        self._to_encoding = to_encoding
        self._from_encoding = from_encoding
        self._backend = backend
        self._chunk_size = chunk_size
        self._slot = _DescriptorSlot(descriptor, f"{from_encoding} -> {to_encoding}")
        self._finalizer = weakref.finalize(self, _release, self._slot)

    def __enter__(self) -> IconvHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return (
            f"<IconvHandle {self._from_encoding!r} -> {self._to_encoding!r} "
            f"[{self._backend.name}, {state}]>"
        )

    @property
    def to_encoding(self) -> str:
        """変換先エンコーディング名"""
        return self._to_encoding

    @property
    def from_encoding(self) -> str:
        """変換元エンコーディング名"""
        return self._from_encoding

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def descriptor(self) -> Descriptor | None:
        """所有しているディスクリプタ（クローズ済みならNone）"""
        return self._slot.descriptor

    @property
    def is_open(self) -> bool:
        return self._slot.descriptor is not None

    def close(self) -> None:
        """ディスクリプタを解放する

        何度呼んでも安全。解放に失敗した場合はオープン状態のまま残り、
        後の close() またはファイナライザで再試行される。
        """
        _release(self._slot)

    def convert(self, data: bytes) -> ConversionResult:
        """このハンドルでバイト列を変換する

        Args:
            data: 変換元エンコーディングのバイト列

        Returns:
            変換結果
        """
        from charconv.engine import convert

        return convert(self, data)


@dataclass(frozen=True)
class OpenResult:
    """ハンドルのオープン結果

    Attributes:
        handle: オープンしたハンドル（失敗時はNone）
        message: 失敗時のエラーメッセージ（strerror相当）
    """

    handle: IconvHandle | None
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.handle is not None


def _is_valid_name(name: object) -> bool:
    return isinstance(name, str) and name != ""


def open_handle(
    to_encoding: str,
    from_encoding: str,
    *,
    backend: Backend | str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> OpenResult:
    """変換ハンドルをオープンする

    from_encodingのバイト列をto_encodingに変換するディスクリプタを生成する。
    名前の妥当性は空でない文字列であることのみ確認し、それ以外は
    バックエンドのエンコーディングレジストリに委ねる。

    Args:
        to_encoding: 変換先エンコーディング名
        from_encoding: 変換元エンコーディング名
        backend: バックエンドまたはその名前（Noneの場合は "auto"）
        chunk_size: 出力チャンクのサイズ（バイト）

    Returns:
        オープン結果。失敗時はhandleがNoneで、messageにOSのエラー説明が入る

    Raises:
        ValueError: chunk_sizeが正の整数でない場合、または未知のバックエンド名の場合
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_sizeは正の整数である必要があります: {chunk_size}")
    if not (_is_valid_name(to_encoding) and _is_valid_name(from_encoding)):
        return OpenResult(handle=None, message=os.strerror(errno.EINVAL))

    try:
        if backend is None or isinstance(backend, str):
            backend = get_backend(backend or "auto")
        descriptor = backend.open(to_encoding, from_encoding)
    except OSError as e:
        code = e.errno if e.errno is not None else errno.EINVAL
        logger.debug(f"オープンに失敗しました ({from_encoding} -> {to_encoding}): {e}")
        return OpenResult(handle=None, message=os.strerror(code))

    logger.debug(f"ハンドルをオープンしました ({from_encoding} -> {to_encoding}, {backend.name})")
    handle = IconvHandle(descriptor, to_encoding, from_encoding, backend, chunk_size)
    return OpenResult(handle=handle)
