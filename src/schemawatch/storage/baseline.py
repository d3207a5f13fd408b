"""ローカルファイルシステムベースのベースラインスキーマ保存。"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from schemawatch.models.errors import BaselineLoadError, BaselineSaveError
from schemawatch.models.schema import SchemaSnapshot
from schemawatch.renderers.sdl import to_sdl

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


class BaselineStore:
    """クライアントが前提とするスキーマ（ベースライン）の永続化層。

    既定はインデント付きJSON。拡張子が .yaml/.yml の場合はYAMLで保存する。
    どちらの形式もイントロスペクション応答と同じキー名を使う。
    """

    async def exists(self, path: Path) -> bool:
        """ベースラインファイルが存在するかを返す。"""
        return Path(path).is_file()

    async def save(self, snapshot: SchemaSnapshot, path: Path) -> None:
        """スナップショットをベースラインとして保存する。

        Raises:
            BaselineSaveError: 書き込みに失敗した場合。
        """
        path = Path(path)
        if _is_yaml(path):
            data = snapshot.model_dump(mode="json", by_alias=True)
            text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        else:
            text = snapshot.model_dump_json(by_alias=True, indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise BaselineSaveError(path, str(e)) from e
        logger.debug("Baseline schema written to %s", path)

    async def load(self, path: Path) -> SchemaSnapshot:
        """ベースラインを読み込む。

        Raises:
            BaselineLoadError: ファイルが存在しない、読めない、または内容が不正な場合。
        """
        path = Path(path)
        if not path.is_file():
            raise BaselineLoadError(path, "file not found")

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise BaselineLoadError(path, str(e)) from e

        try:
            data = yaml.safe_load(text) if _is_yaml(path) else json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise BaselineLoadError(path, f"parse error: {e}") from e

        if not isinstance(data, dict):
            raise BaselineLoadError(path, "top-level value is not an object")

        try:
            return SchemaSnapshot.model_validate(data)
        except ValidationError as e:
            raise BaselineLoadError(path, f"invalid schema snapshot: {e.error_count()} errors") from e

    async def save_sdl(self, snapshot: SchemaSnapshot, path: Path) -> None:
        """スナップショットをSDLテキストとして保存する。

        Raises:
            BaselineSaveError: 書き込みに失敗した場合。
        """
        path = Path(path)
        sdl = to_sdl(snapshot)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(sdl, encoding="utf-8")
        except OSError as e:
            raise BaselineSaveError(path, str(e)) from e
