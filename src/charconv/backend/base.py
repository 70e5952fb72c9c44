"""変換バックエンドのインターフェース定義

iconv(3) 相当のバイト指向変換プリミティブを抽象化する。
エンジンはこのプロトコル経由でのみ変換ライブラリを呼び出す。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class TranscodeStep:
    """変換プリミティブ1回分の呼び出し結果

    Attributes:
        consumed: 消費した入力バイト数
        output: 書き込まれた出力バイト列
        error_code: 0なら成功、それ以外はerrno値（E2BIG/EILSEQ/EINVAL等）
    """

    consumed: int
    output: bytes
    error_code: int = 0

    @property
    def is_ok(self) -> bool:
        """エラーなしで完了したかどうかを返す"""
        return self.error_code == 0


class Descriptor(Protocol):
    """変換ディスクリプタのプロトコル

    一組の (to, from) エンコーディングに束縛された変換コンテキスト。
    シフト状態を内部に保持する。
    """

    def transcode(self, data: bytes, offset: int, out_size: int) -> TranscodeStep:
        """data[offset:] を変換し、最大out_sizeバイトを出力する

        消費バイト数はoffsetからの相対値で返す。
        """
        ...

    def flush(self, out_size: int) -> TranscodeStep:
        """出力側のシフト状態を初期状態に戻すシーケンスを出力する"""
        ...

    def reset(self) -> None:
        """シフト状態を出力せずに初期化する"""
        ...

    def close(self) -> None:
        """ディスクリプタを解放する

        Raises:
            OSError: 解放に失敗した場合
        """
        ...


class Backend(Protocol):
    """変換ライブラリのプロトコル"""

    name: str

    def open(self, to_encoding: str, from_encoding: str) -> Descriptor:
        """ディスクリプタを生成する

        Raises:
            OSError: 未知のエンコーディング名、または未対応の組み合わせの場合
        """
        ...

    @property
    def supports_listing(self) -> bool:
        """エンコーディング一覧の取得に対応しているか"""
        ...

    def list_encodings(self) -> list[str]:
        """既知のエンコーディング名を列挙する

        Raises:
            NotImplementedError: 列挙に対応していない場合
        """
        ...
