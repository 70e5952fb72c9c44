"""共通フィクスチャ"""

from __future__ import annotations

import errno

import pytest

from charconv.backend import LibcBackend, TranscodeStep


def _libc_available() -> bool:
    try:
        LibcBackend()
    except OSError:
        return False
    return True


_LIBC_AVAILABLE = _libc_available()

_BACKEND_PARAMS = [
    pytest.param("python", id="python"),
    pytest.param(
        "libc",
        id="libc",
        marks=pytest.mark.skipif(not _LIBC_AVAILABLE, reason="iconvライブラリが利用できない"),
    ),
]


@pytest.fixture(scope="session")
def libc_available() -> bool:
    """システムのiconvがロードできるかを返すフィクスチャ"""
    return _LIBC_AVAILABLE


@pytest.fixture(params=_BACKEND_PARAMS)
def backend_name(request: pytest.FixtureRequest) -> str:
    """利用可能な各バックエンド名を返すフィクスチャ"""
    return request.param


class FakeDescriptor:
    """テスト用の変換ディスクリプタ

    transcodeの結果を事前に積んでおき、呼び出し履歴を記録する。
    """

    def __init__(
        self,
        steps: list[TranscodeStep] | None = None,
        flush_steps: list[TranscodeStep] | None = None,
        close_errors: int = 0,
    ) -> None:
        self.steps = list(steps or [])
        self.flush_steps = list(flush_steps or [])
        self.close_errors = close_errors
        self.transcode_calls: list[tuple[int, int]] = []
        self.reset_count = 0
        self.close_count = 0
        self.closed = False

    def transcode(self, data: bytes, offset: int, out_size: int) -> TranscodeStep:
        self.transcode_calls.append((offset, out_size))
        if self.steps:
            return self.steps.pop(0)
        return TranscodeStep(len(data) - offset, data[offset:])

    def flush(self, out_size: int) -> TranscodeStep:
        if self.flush_steps:
            return self.flush_steps.pop(0)
        return TranscodeStep(0, b"")

    def reset(self) -> None:
        self.reset_count += 1

    def close(self) -> None:
        self.close_count += 1
        if self.close_errors > 0:
            self.close_errors -= 1
            raise OSError(errno.EBADF, "Bad file descriptor")
        self.closed = True


class FakeBackend:
    """FakeDescriptorを返すテスト用バックエンド"""

    name = "fake"

    def __init__(self, descriptor: FakeDescriptor | None = None, open_errno: int = 0) -> None:
        self.descriptor = descriptor or FakeDescriptor()
        self.open_errno = open_errno
        self.opened: list[tuple[str, str]] = []

    def open(self, to_encoding: str, from_encoding: str) -> FakeDescriptor:
        self.opened.append((to_encoding, from_encoding))
        if self.open_errno:
            raise OSError(self.open_errno, "open failed")
        return self.descriptor

    @property
    def supports_listing(self) -> bool:
        return False

    def list_encodings(self) -> list[str]:
        raise NotImplementedError("fake backend")


@pytest.fixture
def fake_descriptor() -> FakeDescriptor:
    """結果を積んでおけるフェイクのディスクリプタ

    steps, flush_steps, close_errorsをテスト内で書き換えて使う。
    """
    return FakeDescriptor()


@pytest.fixture
def fake_backend(fake_descriptor: FakeDescriptor) -> FakeBackend:
    return FakeBackend(fake_descriptor)
