"""Configuration module for charconv."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from charconv.backend import BACKEND_NAMES
from charconv.detector import DEFAULT_MIN_CONFIDENCE
from charconv.handle import DEFAULT_CHUNK_SIZE

DEFAULT_CONFIG_FILENAME = "charconv.yml"


class ConfigError(Exception):
    """設定ファイル読み込みエラー"""

    pass


@dataclass(frozen=True)
class EncodingConfig:
    """文字コード設定"""

    source: str | None = None
    target: str = "UTF-8"


@dataclass(frozen=True)
class DetectionConfig:
    """文字コード検出設定"""

    min_confidence: float = DEFAULT_MIN_CONFIDENCE


@dataclass(frozen=True)
class CharconvConfig:
    """ルート設定"""

    backend: str = "auto"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)


def load_config(path: Path) -> CharconvConfig:
    """設定ファイルを読み込む

    Args:
        path: 設定ファイルパス

    Returns:
        CharconvConfig: 読み込んだ設定（デフォルトとマージ済み）

    Raises:
        ConfigError: ファイル読み込み、パース、または値の検証エラー
    """
    if not path.exists():
        raise ConfigError(f"設定ファイルが見つかりません: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML解析エラー: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("設定ファイルはYAMLのマッピング形式である必要があります")

    default = get_default_config()

    backend = data.get("backend", default.backend)
    if backend not in BACKEND_NAMES:
        raise ConfigError(f"未知のバックエンドです: {backend}")

    chunk_size = data.get("chunk_size", default.chunk_size)
    if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size <= 0:
        raise ConfigError(f"chunk_sizeは正の整数である必要があります: {chunk_size}")

    return CharconvConfig(
        backend=backend,
        chunk_size=chunk_size,
        encoding=_merge_encoding_config(data.get("encoding", {}), default.encoding),
        detection=_merge_detection_config(data.get("detection", {}), default.detection),
    )


def get_default_config() -> CharconvConfig:
    """デフォルト設定を取得する"""
    return CharconvConfig()


def _merge_encoding_config(data: dict[str, Any], default: EncodingConfig) -> EncodingConfig:
    """エンコーディング設定をマージする"""
    if not isinstance(data, dict):
        return default
    return EncodingConfig(
        source=data.get("source", default.source),
        target=data.get("target", default.target),
    )


def _merge_detection_config(data: dict[str, Any], default: DetectionConfig) -> DetectionConfig:
    """検出設定をマージする"""
    if not isinstance(data, dict):
        return default
    value = data.get("min_confidence", default.min_confidence)
    try:
        min_confidence = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"min_confidenceは数値である必要があります: {value}") from e
    return DetectionConfig(min_confidence=min_confidence)
