"""スキーマをGraphQL SDL形式のテキストに変換する。"""

from collections import Counter

from schemawatch.models.errors import InvalidTypeRefError, SchemaRenderError
from schemawatch.models.schema import (
    EnumValue,
    FieldDef,
    InputValue,
    NamedType,
    SchemaSnapshot,
    TypeRef,
    canonical_string,
)


def _type_string(ref: TypeRef) -> str:
    try:
        return canonical_string(ref)
    except InvalidTypeRefError as e:
        raise SchemaRenderError(str(e)) from e


def _description(text: str | None, indent: str = "") -> list[str]:
    if not text:
        return []
    # ブロック文字列内の """ は \""" とエスケープする
    escaped = text.replace('"""', '\\"""')
    return [f'{indent}"""{escaped}"""']


def _deprecation(is_deprecated: bool, reason: str | None) -> str:
    if not is_deprecated:
        return ""
    escaped = (reason or "").replace("\\", "\\\\").replace('"', '\\"')
    return f' @deprecated(reason: "{escaped}")'


def _input_value(value: InputValue) -> str:
    text = f"{value.name}: {_type_string(value.type)}"
    if value.default_value:
        text += f" = {value.default_value}"
    return text


def _field(field: FieldDef) -> list[str]:
    lines = _description(field.description, "  ")
    args = ""
    if field.args:
        args = "(" + ", ".join(_input_value(arg) for arg in field.args) + ")"
    lines.append(
        f"  {field.name}{args}: {_type_string(field.type)}{_deprecation(field.is_deprecated, field.deprecation_reason)}"
    )
    return lines


def _enum_value(value: EnumValue) -> list[str]:
    lines = _description(value.description, "  ")
    lines.append(f"  {value.name}{_deprecation(value.is_deprecated, value.deprecation_reason)}")
    return lines


def _type_block(named_type: NamedType) -> list[str]:
    """名前付き型1つ分の宣言ブロックを返す。"""
    lines = _description(named_type.description)

    if named_type.kind == "OBJECT":
        header = f"type {named_type.name}"
        if named_type.interfaces:
            header += " implements " + " & ".join(i.named_type for i in named_type.interfaces)
        lines.append(header + " {")
        for field in named_type.fields:
            lines.extend(_field(field))
        lines.append("}")
    elif named_type.kind == "INTERFACE":
        lines.append(f"interface {named_type.name} {{")
        for field in named_type.fields:
            lines.extend(_field(field))
        lines.append("}")
    elif named_type.kind == "ENUM":
        lines.append(f"enum {named_type.name} {{")
        for value in named_type.enum_values:
            lines.extend(_enum_value(value))
        lines.append("}")
    elif named_type.kind == "INPUT_OBJECT":
        lines.append(f"input {named_type.name} {{")
        for input_field in named_type.input_fields:
            lines.extend(_description(input_field.description, "  "))
            lines.append(f"  {_input_value(input_field)}")
        lines.append("}")
    elif named_type.kind == "SCALAR":
        lines.append(f"scalar {named_type.name}")
    elif named_type.kind == "UNION":
        members = " | ".join(t.named_type for t in named_type.possible_types)
        lines.append(f"union {named_type.name} = {members}")

    lines.append("")
    return lines


def to_sdl(snapshot: SchemaSnapshot) -> str:
    """スキーマスナップショットをSDLテキストに変換する。

    型は格納順に出力し、イントロスペクション内部型は除外する。
    末尾にルート操作型を定義する schema ブロックを付ける。

    Raises:
        SchemaRenderError: 不変条件に反する型参照が含まれていた場合。
    """
    schema = snapshot.schema_
    lines = [
        "# GraphQL Schema",
        f"# Fetched from: {snapshot.source_identifier}",
        f"# Server: {snapshot.source_info}",
        f"# Date: {snapshot.fetched_at.isoformat(timespec='seconds')}",
        "",
    ]

    for named_type in schema.types:
        if named_type.is_internal:
            continue
        lines.extend(_type_block(named_type))

    lines.append("schema {")
    if schema.query_type_name:
        lines.append(f"  query: {schema.query_type_name}")
    if schema.mutation_type_name:
        lines.append(f"  mutation: {schema.mutation_type_name}")
    if schema.subscription_type_name:
        lines.append(f"  subscription: {schema.subscription_type_name}")
    lines.append("}")

    return "\n".join(lines) + "\n"


def summarize(snapshot: SchemaSnapshot) -> str:
    """スキーマの概要（種別ごとの型数とルート型）を返す。"""
    schema = snapshot.schema_
    counts = Counter(t.kind for t in schema.types if not t.is_internal)

    lines = [
        "GraphQL Schema Summary",
        f"Server: {snapshot.source_identifier}",
        f"Info: {snapshot.source_info}",
        f"Fetched: {snapshot.fetched_at.isoformat(timespec='seconds')}",
        "",
        "Type Counts:",
    ]
    lines.extend(f"  {kind}: {count}" for kind, count in sorted(counts.items()))
    lines.append("")
    lines.append(f"Query Type: {schema.query_type_name or '(none)'}")
    if schema.mutation_type_name:
        lines.append(f"Mutation Type: {schema.mutation_type_name}")
    if schema.subscription_type_name:
        lines.append(f"Subscription Type: {schema.subscription_type_name}")

    return "\n".join(lines) + "\n"
