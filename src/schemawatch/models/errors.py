"""schemawatchのカスタム例外クラス。"""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemawatch.models.validation import ValidationResult


class SchemaWatchError(Exception):
    """schemawatchの基底例外クラス。"""


class InvalidTypeRefError(SchemaWatchError, ValueError):
    """TypeRefの構造不変条件（NAMEDは子なし、ラッパーは子が1つ）違反。"""


class AcquisitionError(SchemaWatchError):
    """サーバーからのスキーマ取得（イントロスペクション）の失敗。

    通信エラー、非2xxレスポンス、不正なペイロードのいずれも含む。
    """


class BaselineLoadError(SchemaWatchError):
    """ベースラインファイルが存在しない、または破損している場合の例外。"""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to load baseline schema {path}: {reason}")
        self.path = path
        self.reason = reason


class BaselineSaveError(SchemaWatchError):
    """ベースラインファイルの書き込み失敗。"""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to save baseline schema {path}: {reason}")
        self.path = path
        self.reason = reason


class SchemaRenderError(SchemaWatchError):
    """SDL出力中に不正な型参照を検出した場合の例外。"""


class SchemaIncompatibleError(SchemaWatchError):
    """strictモードでスキーマ検証が失敗した場合の例外。"""

    def __init__(self, result: "ValidationResult") -> None:
        super().__init__(f"Schema validation failed with {len(result.errors)} errors")
        self.result = result
