"""システムのiconv(3)を使う変換バックエンド

ctypes経由でglibcまたはGNU libiconvの iconv_open/iconv/iconv_close を呼び出す。
エンコーディング一覧は iconvlist を公開しているライブラリでのみ取得できる。
"""

from __future__ import annotations

import ctypes
import ctypes.util
import errno
import os
from typing import Any

from .base import TranscodeStep

# (iconv_t)-1 および (size_t)-1
_INVALID_DESCRIPTOR = ctypes.c_void_p(-1).value
_ICONV_FAILED = ctypes.c_size_t(-1).value

_ICONVLIST_CALLBACK = ctypes.CFUNCTYPE(
    ctypes.c_int,
    ctypes.c_uint,
    ctypes.POINTER(ctypes.c_char_p),
    ctypes.c_void_p,
)


def _load_library() -> tuple[Any, str]:
    """iconv関数を持つ共有ライブラリを探してロードする

    Returns:
        (ロードしたライブラリ, シンボル接頭辞) のタプル。
        GNU libiconvは "libiconv_open" のように接頭辞付きでも公開している。

    Raises:
        OSError: iconvを持つライブラリが見つからない場合
    """
    candidates: list[str | None] = []
    for name in ("iconv", "c"):
        path = ctypes.util.find_library(name)
        if path:
            candidates.append(path)
    # 実行中のプロセスにリンク済みのシンボル
    candidates.append(None)

    for path in candidates:
        try:
            lib = ctypes.CDLL(path, use_errno=True)
        except OSError:
            continue
        for prefix in ("", "lib"):
            if hasattr(lib, f"{prefix}iconv_open"):
                return lib, prefix
    raise OSError(errno.ENOENT, "iconv library not found")


class LibcDescriptor:
    """iconv_t を保持する変換ディスクリプタ"""

    def __init__(self, backend: LibcBackend, cd: int) -> None:
        self._backend = backend
        self._cd: int | None = cd

    def _call(
        self,
        in_ptr: ctypes.c_void_p | None,
        in_left: ctypes.c_size_t | None,
        out_ptr: ctypes.c_void_p | None,
        out_left: ctypes.c_size_t | None,
    ) -> int:
        """iconv() を1回呼び出し、errno（成功時は0）を返す"""
        ctypes.set_errno(0)
        ret = self._backend.iconv(
            self._cd,
            ctypes.byref(in_ptr) if in_ptr is not None else None,
            ctypes.byref(in_left) if in_left is not None else None,
            ctypes.byref(out_ptr) if out_ptr is not None else None,
            ctypes.byref(out_left) if out_left is not None else None,
        )
        if ret == _ICONV_FAILED:
            return ctypes.get_errno() or errno.EBADF
        return 0

    def transcode(self, data: bytes, offset: int, out_size: int) -> TranscodeStep:
        if self._cd is None:
            return TranscodeStep(0, b"", errno.EBADF)

        # bytesの内部バッファを直接参照する（コピーしない）
        source = ctypes.c_char_p(data)
        base = ctypes.cast(source, ctypes.c_void_p).value or 0
        in_ptr = ctypes.c_void_p(base + offset)
        in_left = ctypes.c_size_t(len(data) - offset)

        out_buf = ctypes.create_string_buffer(out_size)
        out_ptr = ctypes.c_void_p(ctypes.addressof(out_buf))
        out_left = ctypes.c_size_t(out_size)

        code = self._call(in_ptr, in_left, out_ptr, out_left)
        consumed = len(data) - offset - in_left.value
        return TranscodeStep(consumed, out_buf.raw[: out_size - out_left.value], code)

    def flush(self, out_size: int) -> TranscodeStep:
        if self._cd is None:
            return TranscodeStep(0, b"", errno.EBADF)
        out_buf = ctypes.create_string_buffer(out_size)
        out_ptr = ctypes.c_void_p(ctypes.addressof(out_buf))
        out_left = ctypes.c_size_t(out_size)
        code = self._call(None, None, out_ptr, out_left)
        return TranscodeStep(0, out_buf.raw[: out_size - out_left.value], code)

    def reset(self) -> None:
        if self._cd is not None:
            self._call(None, None, None, None)

    def close(self) -> None:
        if self._cd is None:
            return
        ctypes.set_errno(0)
        if self._backend.iconv_close(self._cd) != 0:
            code = ctypes.get_errno() or errno.EBADF
            raise OSError(code, os.strerror(code))
        self._cd = None


class LibcBackend:
    """システムのiconv(3)を使うバックエンド

    Raises:
        OSError: iconvライブラリがロードできない場合（コンストラクタ）
    """

    name = "libc"

    def __init__(self) -> None:
        lib, prefix = _load_library()
        self.iconv_open = getattr(lib, f"{prefix}iconv_open")
        self.iconv_open.argtypes = [ctypes.c_char_p, ctypes.c_char_p]
        self.iconv_open.restype = ctypes.c_void_p

        self.iconv = getattr(lib, f"{prefix}iconv")
        self.iconv.argtypes = [
            ctypes.c_void_p,
            ctypes.POINTER(ctypes.c_void_p),
            ctypes.POINTER(ctypes.c_size_t),
            ctypes.POINTER(ctypes.c_void_p),
            ctypes.POINTER(ctypes.c_size_t),
        ]
        self.iconv.restype = ctypes.c_size_t

        self.iconv_close = getattr(lib, f"{prefix}iconv_close")
        self.iconv_close.argtypes = [ctypes.c_void_p]
        self.iconv_close.restype = ctypes.c_int

        self._iconvlist = None
        for symbol in ("iconvlist", "libiconvlist"):
            if hasattr(lib, symbol):
                self._iconvlist = getattr(lib, symbol)
                self._iconvlist.argtypes = [_ICONVLIST_CALLBACK, ctypes.c_void_p]
                self._iconvlist.restype = None
                break

    def open(self, to_encoding: str, from_encoding: str) -> LibcDescriptor:
        """iconv_open でディスクリプタを生成する

        Raises:
            OSError: iconv_open が失敗した場合
        """
        try:
            to_name = to_encoding.encode("ascii")
            from_name = from_encoding.encode("ascii")
        except UnicodeEncodeError as e:
            raise OSError(errno.EINVAL, os.strerror(errno.EINVAL)) from e

        ctypes.set_errno(0)
        cd = self.iconv_open(to_name, from_name)
        if cd is None or cd == _INVALID_DESCRIPTOR:
            code = ctypes.get_errno() or errno.EINVAL
            raise OSError(code, os.strerror(code))
        return LibcDescriptor(self, cd)

    @property
    def supports_listing(self) -> bool:
        return self._iconvlist is not None

    def list_encodings(self) -> list[str]:
        """iconvlist で既知のエンコーディング名を列挙する

        Raises:
            NotImplementedError: ライブラリが iconvlist を公開していない場合
        """
        if self._iconvlist is None:
            raise NotImplementedError("iconvlist is not available in this iconv library")

        names: list[str] = []

        def collect(count: int, group: Any, _data: Any) -> int:
            for i in range(count):
                names.append(group[i].decode("ascii", "replace"))
            return 0

        self._iconvlist(_ICONVLIST_CALLBACK(collect), None)
        return names
