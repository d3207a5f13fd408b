"""実行時検証サービスの状態モデル。"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from schemawatch.models.validation import ValidationResult

CompatibilityMode = Literal["strict", "warn", "ignore"]

COMPATIBILITY_MODES: tuple[CompatibilityMode, ...] = ("strict", "warn", "ignore")

ValidationStatus = Literal["unstarted", "validating", "valid", "invalid", "baseline_created", "failed"]


class ValidationState(BaseModel):
    """直近の検証状態。更新時はインスタンスごと差し替える。"""

    model_config = ConfigDict(frozen=True)

    status: ValidationStatus = "unstarted"
    result: ValidationResult | None = None
    validated_at: datetime | None = None
    error: str | None = None
