"""GraphQLスキーマ（型システム）のデータモデル。

イントロスペクション結果と同じcamelCaseのJSONキーで入出力するため、
ベースラインファイルはサーバーのイントロスペクション応答と互換性を持つ。
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from schemawatch.models.errors import InvalidTypeRefError

TypeRefKind = Literal["NAMED", "NON_NULL", "LIST"]
TypeKind = Literal["OBJECT", "INTERFACE", "ENUM", "INPUT_OBJECT", "SCALAR", "UNION"]

WRAPPER_KINDS: frozenset[str] = frozenset({"NON_NULL", "LIST"})

# イントロスペクション内部型（__Schema, __Type など）の接頭辞
INTERNAL_TYPE_PREFIX = "__"

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _none_as_empty(value: Any) -> Any:
    # イントロスペクションは該当しない種別の子要素をnullで返す
    return () if value is None else value


def is_internal_type_name(name: str) -> bool:
    """イントロスペクション内部型の名前かどうかを返す。"""
    return name.startswith(INTERNAL_TYPE_PREFIX)


class TypeRef(BaseModel):
    """型参照。NAMED型をNON_NULL/LISTで任意の深さまでラップする。"""

    model_config = _MODEL_CONFIG

    kind: TypeRefKind
    name: str | None = None
    of_type: "TypeRef | None" = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        # SCALAR, OBJECT 等の具象種別はすべてNAMEDとして扱う
        if isinstance(value, str) and value not in WRAPPER_KINDS:
            return "NAMED"
        return value

    @model_validator(mode="after")
    def _check_shape(self) -> "TypeRef":
        if self.kind == "NAMED":
            if self.of_type is not None:
                raise InvalidTypeRefError(f"Named type reference '{self.name}' must not wrap another type")
            if not self.name:
                raise InvalidTypeRefError("Named type reference requires a name")
        elif self.of_type is None:
            raise InvalidTypeRefError(f"{self.kind} type reference requires an inner type")
        return self

    @classmethod
    def named(cls, name: str) -> "TypeRef":
        return cls(kind="NAMED", name=name)

    @classmethod
    def non_null(cls, inner: "TypeRef") -> "TypeRef":
        return cls(kind="NON_NULL", of_type=inner)

    @classmethod
    def list_of(cls, inner: "TypeRef") -> "TypeRef":
        return cls(kind="LIST", of_type=inner)

    @property
    def named_type(self) -> str:
        """ラッパーを全て外した名前付き型の名前。"""
        node = self
        while node.of_type is not None:
            node = node.of_type
        return node.name or ""

    @property
    def depth(self) -> int:
        """NAMEDを含む入れ子の段数。"""
        count = 1
        node = self
        while node.of_type is not None:
            node = node.of_type
            count += 1
        return count


def canonical_string(ref: TypeRef) -> str:
    """型参照を正規文字列に変換する（例: ``[String!]!``）。

    2つの型参照は正規文字列が一致する場合に限り構造的に等しい。
    再帰を使わないため入れ子の深さに上限はない。

    Raises:
        InvalidTypeRefError: 構造不変条件に反する型参照の場合。
    """
    prefix: list[str] = []
    suffix: list[str] = []
    node = ref
    while node.kind != "NAMED":
        if node.of_type is None:
            raise InvalidTypeRefError(f"{node.kind} type reference has no inner type")
        if node.kind == "LIST":
            prefix.append("[")
            suffix.append("]")
        else:
            suffix.append("!")
        node = node.of_type
    if node.of_type is not None or not node.name:
        raise InvalidTypeRefError(f"Malformed named type reference: {node.name!r}")
    return "".join(prefix) + node.name + "".join(reversed(suffix))


def parse_type_ref(text: str) -> TypeRef:
    """正規文字列から型参照を組み立てる。canonical_stringの逆変換。

    Raises:
        InvalidTypeRefError: 型表記として解釈できない場合。
    """
    text = text.strip()
    if text.endswith("!"):
        return TypeRef.non_null(parse_type_ref(text[:-1]))
    if text.startswith("[") and text.endswith("]"):
        return TypeRef.list_of(parse_type_ref(text[1:-1]))
    if not text or any(c in text for c in "[]! "):
        raise InvalidTypeRefError(f"Invalid type notation: {text!r}")
    return TypeRef.named(text)


class InputValue(BaseModel):
    """引数または入力オブジェクトのフィールド。"""

    model_config = _MODEL_CONFIG

    name: str
    description: str | None = None
    type: TypeRef
    default_value: str | None = None


class FieldDef(BaseModel):
    """OBJECT/INTERFACE型のフィールド。"""

    model_config = _MODEL_CONFIG

    name: str
    description: str | None = None
    args: Annotated[tuple[InputValue, ...], BeforeValidator(_none_as_empty)] = ()
    type: TypeRef
    is_deprecated: bool = False
    deprecation_reason: str | None = None

    def get_arg(self, name: str) -> InputValue | None:
        for arg in self.args:
            if arg.name == name:
                return arg
        return None


class EnumValue(BaseModel):
    """列挙型の値。"""

    model_config = _MODEL_CONFIG

    name: str
    description: str | None = None
    is_deprecated: bool = False
    deprecation_reason: str | None = None


class NamedType(BaseModel):
    """スキーマ内の名前付き型。種別ごとに使う子要素が異なる。"""

    model_config = _MODEL_CONFIG

    kind: TypeKind
    name: str
    description: str | None = None
    fields: Annotated[tuple[FieldDef, ...], BeforeValidator(_none_as_empty)] = ()
    input_fields: Annotated[tuple[InputValue, ...], BeforeValidator(_none_as_empty)] = ()
    interfaces: Annotated[tuple[TypeRef, ...], BeforeValidator(_none_as_empty)] = ()
    enum_values: Annotated[tuple[EnumValue, ...], BeforeValidator(_none_as_empty)] = ()
    possible_types: Annotated[tuple[TypeRef, ...], BeforeValidator(_none_as_empty)] = ()

    @property
    def is_internal(self) -> bool:
        return is_internal_type_name(self.name)

    def get_field(self, name: str) -> FieldDef | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def get_input_field(self, name: str) -> InputValue | None:
        for input_field in self.input_fields:
            if input_field.name == name:
                return input_field
        return None

    def get_enum_value(self, name: str) -> EnumValue | None:
        for value in self.enum_values:
            if value.name == name:
                return value
        return None


class RootType(BaseModel):
    """ルート操作型（query/mutation/subscription）への参照。"""

    model_config = _MODEL_CONFIG

    name: str


class Schema(BaseModel):
    """型システム全体。"""

    model_config = _MODEL_CONFIG

    query_type: RootType | None = None
    mutation_type: RootType | None = None
    subscription_type: RootType | None = None
    types: Annotated[tuple[NamedType, ...], BeforeValidator(_none_as_empty)] = ()

    @model_validator(mode="after")
    def _check_unique_names(self) -> "Schema":
        seen: set[str] = set()
        for named_type in self.types:
            if named_type.name in seen:
                raise ValueError(f"Duplicate type name in schema: {named_type.name}")
            seen.add(named_type.name)
        return self

    @property
    def query_type_name(self) -> str | None:
        return self.query_type.name if self.query_type else None

    @property
    def mutation_type_name(self) -> str | None:
        return self.mutation_type.name if self.mutation_type else None

    @property
    def subscription_type_name(self) -> str | None:
        return self.subscription_type.name if self.subscription_type else None

    def get_type(self, name: str) -> NamedType | None:
        for named_type in self.types:
            if named_type.name == name:
                return named_type
        return None


class SchemaSnapshot(BaseModel):
    """取得時のメタデータ付きスキーマ。取得またはベースライン読み込みで生成され、以後変更されない。"""

    model_config = _MODEL_CONFIG

    schema_: Schema = Field(alias="__schema")
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source_identifier: str = Field(default="", alias="serverUrl")
    source_info: str = Field(default="", alias="serverInfo")
