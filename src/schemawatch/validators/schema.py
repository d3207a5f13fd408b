"""スキーマ構造比較ロジック。"""

from dataclasses import dataclass, field

from schemawatch.models.schema import FieldDef, NamedType, RootType, Schema, SchemaSnapshot, canonical_string
from schemawatch.models.validation import ValidationResult


@dataclass
class _Findings:
    """検証中に蓄積する指摘。最後にValidationResultへ固定する。"""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    missing_types: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)
    type_mismatches: list[str] = field(default_factory=list)
    deprecated_fields: list[str] = field(default_factory=list)

    def freeze(self) -> ValidationResult:
        return ValidationResult(
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            missing_types=tuple(self.missing_types),
            missing_fields=tuple(self.missing_fields),
            type_mismatches=tuple(self.type_mismatches),
            deprecated_fields=tuple(self.deprecated_fields),
        )


class SchemaValidator:
    """期待スキーマ（ベースライン）と実スキーマの構造差分を検出する。

    削除や型の変更のみをエラーとし、サーバー側での追加（型・フィールド・
    列挙値・引数）は許容する。個々の指摘で走査を打ち切ることはない。
    """

    def validate(self, expected: SchemaSnapshot, actual: SchemaSnapshot) -> ValidationResult:
        """期待スキーマに対して実スキーマを検証する。

        Args:
            expected: クライアントが前提とするスキーマ。
            actual: サーバーが実際に公開しているスキーマ。

        Returns:
            分類済みの検証結果。errorsが空の場合に限り is_valid が True。
        """
        findings = _Findings()
        self._validate_root_types(expected.schema_, actual.schema_, findings)

        actual_types = {t.name: t for t in actual.schema_.types}
        for expected_type in expected.schema_.types:
            if expected_type.is_internal:
                continue

            actual_type = actual_types.get(expected_type.name)
            if actual_type is None:
                findings.missing_types.append(expected_type.name)
                findings.errors.append(f"Type '{expected_type.name}' is missing from server schema")
                continue

            if expected_type.kind != actual_type.kind:
                findings.type_mismatches.append(
                    f"{expected_type.name}: expected {expected_type.kind}, got {actual_type.kind}"
                )
                findings.errors.append(
                    f"Type '{expected_type.name}' kind mismatch: "
                    f"expected {expected_type.kind}, got {actual_type.kind}"
                )
                continue

            if expected_type.kind in ("OBJECT", "INTERFACE"):
                self._validate_fields(expected_type, actual_type, findings)
            elif expected_type.kind == "ENUM":
                self._validate_enum_values(expected_type, actual_type, findings)
            elif expected_type.kind == "INPUT_OBJECT":
                self._validate_input_fields(expected_type, actual_type, findings)

        return findings.freeze()

    def _validate_root_types(self, expected: Schema, actual: Schema, findings: _Findings) -> None:
        """ルート操作型を検証する。query型の欠落はエラー、mutation/subscriptionは警告。"""
        query_problem = self._compare_root("Query", expected.query_type, actual.query_type)
        if query_problem:
            findings.errors.append(query_problem)

        for label, expected_root, actual_root in (
            ("Mutation", expected.mutation_type, actual.mutation_type),
            ("Subscription", expected.subscription_type, actual.subscription_type),
        ):
            problem = self._compare_root(label, expected_root, actual_root)
            if problem:
                findings.warnings.append(problem)

    @staticmethod
    def _compare_root(label: str, expected: RootType | None, actual: RootType | None) -> str | None:
        if expected is None:
            return None
        if actual is None:
            return f"{label} type is missing from server schema"
        if expected.name != actual.name:
            return f"{label} type name mismatch: expected {expected.name}, got {actual.name}"
        return None

    def _validate_fields(self, expected_type: NamedType, actual_type: NamedType, findings: _Findings) -> None:
        type_name = expected_type.name
        for expected_field in expected_type.fields:
            actual_field = actual_type.get_field(expected_field.name)
            if actual_field is None:
                findings.missing_fields.append(f"{type_name}.{expected_field.name}")
                findings.errors.append(f"Field '{expected_field.name}' is missing from type '{type_name}'")
                continue

            expected_str = canonical_string(expected_field.type)
            actual_str = canonical_string(actual_field.type)
            if expected_str != actual_str:
                findings.type_mismatches.append(
                    f"{type_name}.{expected_field.name}: expected {expected_str}, got {actual_str}"
                )
                findings.errors.append(
                    f"Field '{type_name}.{expected_field.name}' type mismatch: "
                    f"expected {expected_str}, got {actual_str}"
                )

            # 新たに非推奨化されたフィールドは警告のみ
            if actual_field.is_deprecated and not expected_field.is_deprecated:
                findings.deprecated_fields.append(f"{type_name}.{expected_field.name}")
                findings.warnings.append(
                    f"Field '{type_name}.{expected_field.name}' is deprecated: "
                    f"{actual_field.deprecation_reason or 'no reason given'}"
                )

            self._validate_field_args(type_name, expected_field, actual_field, findings)

    @staticmethod
    def _validate_field_args(
        type_name: str,
        expected_field: FieldDef,
        actual_field: FieldDef,
        findings: _Findings,
    ) -> None:
        """フィールド引数を検証する。実スキーマのみに存在する引数は報告しない。"""
        field_path = f"{type_name}.{expected_field.name}"
        for expected_arg in expected_field.args:
            actual_arg = actual_field.get_arg(expected_arg.name)
            if actual_arg is None:
                findings.errors.append(f"Argument '{expected_arg.name}' is missing from field '{field_path}'")
                continue

            expected_str = canonical_string(expected_arg.type)
            actual_str = canonical_string(actual_arg.type)
            if expected_str != actual_str:
                findings.type_mismatches.append(
                    f"{field_path}({expected_arg.name}): expected {expected_str}, got {actual_str}"
                )
                findings.errors.append(
                    f"Argument '{expected_arg.name}' of field '{field_path}' type mismatch: "
                    f"expected {expected_str}, got {actual_str}"
                )

    @staticmethod
    def _validate_enum_values(expected_type: NamedType, actual_type: NamedType, findings: _Findings) -> None:
        for expected_value in expected_type.enum_values:
            if actual_type.get_enum_value(expected_value.name) is None:
                findings.errors.append(
                    f"Enum value '{expected_value.name}' is missing from enum '{expected_type.name}'"
                )

    @staticmethod
    def _validate_input_fields(expected_type: NamedType, actual_type: NamedType, findings: _Findings) -> None:
        type_name = expected_type.name
        for expected_field in expected_type.input_fields:
            actual_field = actual_type.get_input_field(expected_field.name)
            if actual_field is None:
                findings.missing_fields.append(f"{type_name}.{expected_field.name}")
                findings.errors.append(
                    f"Input field '{expected_field.name}' is missing from input object '{type_name}'"
                )
                continue

            expected_str = canonical_string(expected_field.type)
            actual_str = canonical_string(actual_field.type)
            if expected_str != actual_str:
                findings.type_mismatches.append(
                    f"{type_name}.{expected_field.name}: expected {expected_str}, got {actual_str}"
                )
                findings.errors.append(
                    f"Input field '{type_name}.{expected_field.name}' type mismatch: "
                    f"expected {expected_str}, got {actual_str}"
                )
