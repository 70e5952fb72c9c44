"""charconv - stateful character set conversion on top of iconv(3)."""

from charconv.backend import get_backend, list_encodings
from charconv.engine import (
    ERROR_INCOMPLETE,
    ERROR_INVALID,
    ConversionResult,
    ConversionStatus,
    Converter,
    ConverterResult,
    convert,
    converter,
)
from charconv.handle import DEFAULT_CHUNK_SIZE, IconvHandle, OpenResult, open_handle

__version__ = "0.1.0"

VERSION = f"charconv {__version__}"

# iconv互換の別名
open = open_handle
new = open_handle

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "ERROR_INCOMPLETE",
    "ERROR_INVALID",
    "VERSION",
    "ConversionResult",
    "ConversionStatus",
    "Converter",
    "ConverterResult",
    "IconvHandle",
    "OpenResult",
    "convert",
    "converter",
    "get_backend",
    "list_encodings",
    "new",
    "open",
    "open_handle",
]
