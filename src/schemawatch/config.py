"""schemawatchの設定管理。"""

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

from schemawatch.models.runtime import COMPATIBILITY_MODES, CompatibilityMode

logger = logging.getLogger(__name__)


class SchemaWatchConfig(BaseSettings):
    """スキーマ検証の設定。環境変数（SUWAYOMI_ 接頭辞）から読み込み可能。"""

    model_config = {"env_prefix": "SUWAYOMI_"}

    server_url: str = "http://localhost:4567"
    # SUWAYOMI_SCHEMA_VALIDATION=strict|warn|ignore
    schema_validation: CompatibilityMode = "warn"

    baseline_path: Path = Path("schema/suwayomi_schema.json")
    sdl_path: Path = Path("schema/suwayomi_schema.graphql")

    # イントロスペクション
    request_timeout: float = 30.0
    typeref_depth: int = 8
    max_typeref_depth: int = 64

    # MCPサーバー
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("schema_validation", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        # 未知の値は開発時の既定であるwarnに倒す
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in COMPATIBILITY_MODES:
                return normalized
        logger.warning("Unknown schema validation mode %r, falling back to 'warn'", value)
        return "warn"

    @field_validator("typeref_depth", "max_typeref_depth")
    @classmethod
    def _check_depth(cls, value: int) -> int:
        if value < 1:
            raise ValueError("type reference depth must be at least 1")
        return value
