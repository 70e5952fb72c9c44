"""Pythonのcodecレジストリを使う変換バックエンド

インクリメンタルデコーダ/エンコーダを組み合わせ、iconv(3) と同じ
呼び出し規約（部分消費、E2BIG、EILSEQ、EINVAL）を再現する。
どのプラットフォームでも利用できる。
"""

from __future__ import annotations

import codecs
import errno
import os
from encodings.aliases import aliases

from .base import TranscodeStep

# iconv_open に渡せる接尾辞と、対応するエラーハンドラ（decoder, encoder）
_SUFFIX_ERRORS: dict[str, tuple[str, str]] = {
    "": ("strict", "strict"),
    "TRANSLIT": ("strict", "replace"),
    "IGNORE": ("ignore", "ignore"),
}

# 1回の一括変換で試す入力量の上限（残り出力領域に対する倍率）
_BATCH_RATIO = 4


def _split_suffix(name: str) -> tuple[str, str]:
    """'UTF-8//TRANSLIT' 形式の名前をエンコーディング名と接尾辞に分ける"""
    base, _, suffix = name.partition("//")
    return base, suffix.upper()


def _lookup_text_codec(name: str) -> codecs.CodecInfo:
    """テキストエンコーディングとしてcodecを検索する

    Raises:
        LookupError: 未知の名前、またはbytes同士のcodec（base64等）の場合
    """
    info = codecs.lookup(name)
    # テキストエンコーディングでないcodecはここでLookupErrorになる
    "".encode(info.name)
    b"".decode(info.name)
    return info


class PythonDescriptor:
    """codecレジストリ上の変換ディスクリプタ

    デコーダとエンコーダのgetstate/setstateでチェックポイントを取り、
    出力領域に収まらない文字や不正な文字の手前まで巻き戻す。
    """

    def __init__(
        self,
        to_info: codecs.CodecInfo,
        from_info: codecs.CodecInfo,
        decode_errors: str = "strict",
        encode_errors: str = "strict",
    ) -> None:
        self._decoder = from_info.incrementaldecoder(decode_errors)
        self._encoder = to_info.incrementalencoder(encode_errors)
        self._closed = False
        # 前回のreset以降にエンコーダへ文字を渡したか
        self._dirty = False
        # 直前の呼び出しで確定した一括変換の入力バイト数
        self._batch = 1
        # 書き出し済みのシフトシーケンス（BOM等）の長さ。次の確定時に出力から除く
        self._skip = 0

    def _save(self) -> tuple[tuple[bytes, int], object]:
        return self._decoder.getstate(), self._encoder.getstate()

    def _restore(self, state: tuple[tuple[bytes, int], object]) -> None:
        self._decoder.setstate(state[0])
        self._encoder.setstate(state[1])

    def _pending(self) -> bool:
        return bool(self._decoder.getstate()[0])

    def _commit(self, out: bytearray, encoded: bytes) -> None:
        self._dirty = self._dirty or bool(encoded)
        self._skip = 0
        out += encoded

    def _split_prefix(self, text: str, encoded: bytes, room: int) -> bytes:
        """1文字分の出力から、その手前に付くシフトシーケンスを取り出す

        同じ文字を変換後の状態でもう一度変換し、差分を接頭辞とみなす。
        呼び出し後はエンコーダの状態を巻き戻すこと。
        """
        if self._skip:
            return b""
        steady = self._encoder.encode(text)
        prefix_len = len(encoded) - len(steady)
        if 0 < prefix_len <= room and encoded.endswith(steady):
            return encoded[:prefix_len]
        return b""

    def transcode(self, data: bytes, offset: int, out_size: int) -> TranscodeStep:
        if self._closed:
            return TranscodeStep(0, b"", errno.EBADF)

        out = bytearray()
        pos = offset
        end = len(data)
        size = self._batch

        while pos < end:
            # 1回の試行は残りの出力領域に見合う入力量までに抑える
            room = out_size - len(out)
            size = max(1, min(size, end - pos, _BATCH_RATIO * room))
            saved = self._save()

            if size > 1:
                # まとめて変換し、文字境界で終わって出力に収まる場合のみ確定する
                try:
                    encoded = self._encoder.encode(self._decoder.decode(data[pos : pos + size]))
                except UnicodeError:
                    encoded = None
                if encoded is not None and not self._pending():
                    encoded = encoded[self._skip :]
                    if len(encoded) <= room:
                        self._commit(out, encoded)
                        pos += size
                        self._batch = size
                        size *= 2
                        continue
                self._restore(saved)
                size //= 2
                continue

            # 1文字ずつ進める
            stop = pos
            text = ""
            try:
                while True:
                    if stop >= end:
                        self._restore(saved)
                        return TranscodeStep(pos - offset, bytes(out), errno.EINVAL)
                    text += self._decoder.decode(data[stop : stop + 1])
                    stop += 1
                    if not self._pending():
                        break
                encoded = self._encoder.encode(text)[self._skip :]
            except UnicodeError:
                self._restore(saved)
                return TranscodeStep(pos - offset, bytes(out), errno.EILSEQ)

            if len(encoded) > room:
                prefix = self._split_prefix(text, encoded, room)
                self._restore(saved)
                if prefix:
                    # シフトシーケンスだけ先に書き出し、文字本体は次のチャンクに回す
                    self._commit(out, prefix)
                    self._skip = len(prefix)
                return TranscodeStep(pos - offset, bytes(out), errno.E2BIG)
            self._commit(out, encoded)
            pos = stop
            size = 2

        return TranscodeStep(pos - offset, bytes(out))

    def flush(self, out_size: int) -> TranscodeStep:
        if self._closed:
            return TranscodeStep(0, b"", errno.EBADF)
        if not self._dirty:
            # 何も出力していなければBOM等を書き出さない
            return TranscodeStep(0, b"")
        saved = self._save()
        try:
            encoded = self._encoder.encode("", final=True)
        except UnicodeError:
            self._restore(saved)
            return TranscodeStep(0, b"", errno.EILSEQ)
        if len(encoded) > out_size:
            self._restore(saved)
            return TranscodeStep(0, b"", errno.E2BIG)
        return TranscodeStep(0, encoded)

    def reset(self) -> None:
        self._decoder.reset()
        self._encoder.reset()
        self._dirty = False
        self._skip = 0

    def close(self) -> None:
        self._closed = True


class PythonBackend:
    """Pythonのcodecレジストリを使うバックエンド"""

    name = "python"

    def open(self, to_encoding: str, from_encoding: str) -> PythonDescriptor:
        """ディスクリプタを生成する

        Args:
            to_encoding: 変換先エンコーディング名（//TRANSLIT, //IGNORE 接尾辞可）
            from_encoding: 変換元エンコーディング名

        Returns:
            変換ディスクリプタ

        Raises:
            OSError: 未知のエンコーディング名の場合（errno=EINVAL）
        """
        to_name, to_suffix = _split_suffix(to_encoding)
        from_name, _ = _split_suffix(from_encoding)
        if to_suffix not in _SUFFIX_ERRORS:
            raise OSError(errno.EINVAL, os.strerror(errno.EINVAL))
        try:
            to_info = _lookup_text_codec(to_name)
            from_info = _lookup_text_codec(from_name)
        except LookupError as e:
            raise OSError(errno.EINVAL, os.strerror(errno.EINVAL)) from e

        decode_errors, encode_errors = _SUFFIX_ERRORS[to_suffix]
        return PythonDescriptor(to_info, from_info, decode_errors, encode_errors)

    @property
    def supports_listing(self) -> bool:
        return True

    def list_encodings(self) -> list[str]:
        """codecレジストリに登録されたテキストエンコーディング名を列挙する"""
        names: set[str] = set()
        for alias, codec_name in aliases.items():
            try:
                _lookup_text_codec(codec_name)
            except LookupError:
                continue
            names.add(alias)
            names.add(codec_name)
        return sorted(names)
