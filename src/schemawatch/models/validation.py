"""スキーマ検証結果のデータモデル。"""

from pydantic import BaseModel, ConfigDict, computed_field


class ValidationResult(BaseModel):
    """期待スキーマと実スキーマの構造比較結果。1回の検証ごとに生成され、以後変更されない。

    各分類は変更不可のtupleで保持する。
    """

    model_config = ConfigDict(frozen=True)

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    missing_types: tuple[str, ...] = ()
    missing_fields: tuple[str, ...] = ()
    type_mismatches: tuple[str, ...] = ()
    deprecated_fields: tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.errors

    def report(self) -> str:
        """ログやCLI表示向けの人間可読なレポートを生成する。"""
        lines: list[str] = []
        lines.append("Schema Validation PASSED" if self.is_valid else "Schema Validation FAILED")
        lines.append("")

        sections: list[tuple[str, tuple[str, ...], str]] = [
            ("Errors", self.errors, "x"),
            ("Warnings", self.warnings, "!"),
            ("Missing Types", self.missing_types, "-"),
            ("Missing Fields", self.missing_fields, "-"),
            ("Type Mismatches", self.type_mismatches, "-"),
            ("Deprecated Fields", self.deprecated_fields, "-"),
        ]
        for title, items, marker in sections:
            if not items:
                continue
            lines.append(f"{title} ({len(items)}):")
            lines.extend(f"  {marker} {item}" for item in items)
            lines.append("")

        if self.is_valid and not self.warnings:
            lines.append("All schema validations passed successfully!")
            lines.append("")

        return "\n".join(lines)
