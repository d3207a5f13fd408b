"""テスト共通フィクスチャ。"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from schema_factories import manga_snapshot

from schemawatch.config import SchemaWatchConfig
from schemawatch.models.schema import SchemaSnapshot
from schemawatch.storage.baseline import BaselineStore
from schemawatch.validators.schema import SchemaValidator


@pytest.fixture
def baseline_path(tmp_path: Path) -> Path:
    """テスト用のベースラインファイルパス（未作成）。"""
    return tmp_path / "schema" / "suwayomi_schema.json"


@pytest.fixture
def store() -> BaselineStore:
    """テスト用BaselineStore。"""
    return BaselineStore()


@pytest.fixture
def validator() -> SchemaValidator:
    """テスト用SchemaValidator。"""
    return SchemaValidator()


@pytest.fixture
def live_snapshot() -> SchemaSnapshot:
    """サーバーから取得されたものとして扱うスナップショット。"""
    return manga_snapshot()


@pytest.fixture
def acquirer(live_snapshot: SchemaSnapshot) -> AsyncMock:
    """live_snapshot を返すスキーマ取得元のモック。"""
    mock = AsyncMock()
    mock.acquire.return_value = live_snapshot
    return mock


@pytest.fixture
def config(tmp_path: Path, baseline_path: Path) -> SchemaWatchConfig:
    """テスト用SchemaWatchConfig。"""
    return SchemaWatchConfig(
        baseline_path=baseline_path,
        sdl_path=tmp_path / "schema" / "suwayomi_schema.graphql",
        schema_validation="warn",
    )
