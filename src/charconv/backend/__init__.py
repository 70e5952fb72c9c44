"""Backend module for charconv.

変換プリミティブを提供するバックエンドの選択を行う。
"""

from __future__ import annotations

import logging

from charconv.backend.base import Backend, Descriptor, TranscodeStep
from charconv.backend.libc import LibcBackend
from charconv.backend.pycodecs import PythonBackend

BACKEND_NAMES: tuple[str, ...] = ("auto", "libc", "python")

_instances: dict[str, Backend] = {}

logger = logging.getLogger(__name__)


def get_backend(name: str = "auto") -> Backend:
    """名前からバックエンドを取得する

    "auto" はシステムのiconvがロードできればそれを使い、
    できなければPythonのcodecレジストリを使う。

    Args:
        name: "auto", "libc", "python" のいずれか

    Returns:
        バックエンドインスタンス（プロセス内で共有）

    Raises:
        ValueError: 未知のバックエンド名の場合
        OSError: "libc" を指定したがiconvがロードできない場合
    """
    if name not in BACKEND_NAMES:
        raise ValueError(f"未知のバックエンドです: {name}")

    if name == "auto":
        try:
            return get_backend("libc")
        except OSError as e:
            logger.debug(f"iconvライブラリが利用できないためpythonバックエンドを使用します: {e}")
            return get_backend("python")

    if name not in _instances:
        _instances[name] = LibcBackend() if name == "libc" else PythonBackend()
    return _instances[name]


def list_encodings(backend: Backend | str | None = None) -> list[str]:
    """バックエンドが認識するエンコーディング名を列挙する

    Args:
        backend: バックエンドまたはその名前（Noneの場合は "auto"）

    Returns:
        エンコーディング名のリスト（バックエンドが返す順序のまま）

    Raises:
        NotImplementedError: バックエンドが列挙に対応していない場合
    """
    if backend is None or isinstance(backend, str):
        backend = get_backend(backend or "auto")
    return backend.list_encodings()


__all__ = [
    "BACKEND_NAMES",
    "Backend",
    "Descriptor",
    "LibcBackend",
    "PythonBackend",
    "TranscodeStep",
    "get_backend",
    "list_encodings",
]
