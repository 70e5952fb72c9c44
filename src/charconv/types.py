"""共通型定義"""

from enum import IntEnum


class ExitCode(IntEnum):
    """CLIの終了コード"""

    SUCCESS = 0
    CONVERSION_ERROR = 1
    INVALID_INPUT = 2
    UNSUPPORTED = 3
