"""GraphQLイントロスペクションによるサーバースキーマの取得。"""

import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from schemawatch.config import SchemaWatchConfig
from schemawatch.models.errors import AcquisitionError
from schemawatch.models.schema import WRAPPER_KINDS, SchemaSnapshot

logger = logging.getLogger(__name__)

GRAPHQL_PATH = "/api/graphql"
ABOUT_PATH = "/api/v1/settings/about"

# 接続確立のタイムアウト（秒）
_CONNECT_TIMEOUT = 10.0

_FULL_TYPE_FRAGMENTS = """
fragment FullType on __Type {
  kind
  name
  description
  fields(includeDeprecated: true) {
    name
    description
    args { ...InputValue }
    type { ...TypeRef }
    isDeprecated
    deprecationReason
  }
  inputFields { ...InputValue }
  interfaces { ...TypeRef }
  enumValues(includeDeprecated: true) {
    name
    description
    isDeprecated
    deprecationReason
  }
  possibleTypes { ...TypeRef }
}

fragment InputValue on __InputValue {
  name
  description
  type { ...TypeRef }
  defaultValue
}
"""


class SchemaAcquirer(Protocol):
    """実行時検証サービスが依存するスキーマ取得元。"""

    async def acquire(self) -> SchemaSnapshot: ...


def _type_ref_fragment(depth: int) -> str:
    """ofTypeを depth 段まで辿る TypeRef フラグメントを生成する。"""
    selection = "kind name"
    for _ in range(depth - 1):
        selection = f"kind name ofType {{ {selection} }}"
    return f"fragment TypeRef on __Type {{ {selection} }}\n"


def build_introspection_query(depth: int) -> str:
    """スキーマ全体を取得するイントロスペクションクエリを生成する。"""
    return (
        """
query IntrospectionQuery {
  __schema {
    queryType { name }
    mutationType { name }
    subscriptionType { name }
    types { ...FullType }
  }
}
"""
        + _FULL_TYPE_FRAGMENTS
        + _type_ref_fragment(depth)
    )


def build_type_query(depth: int) -> str:
    """単一の型を再取得するクエリを生成する。"""
    return (
        """
query TypeRefetch($name: String!) {
  __type(name: $name) { ...FullType }
}
"""
        + _FULL_TYPE_FRAGMENTS
        + _type_ref_fragment(depth)
    )


def _is_truncated(ref: Any) -> bool:
    """ラッパーの内側がnullで途切れている型参照かを判定する。"""
    node = ref
    while isinstance(node, dict):
        inner = node.get("ofType")
        if node.get("kind") in WRAPPER_KINDS and inner is None:
            return True
        node = inner
    return False


def _type_refs(type_data: dict[str, Any]) -> Iterator[Any]:
    for field in type_data.get("fields") or []:
        yield field.get("type")
        for arg in field.get("args") or []:
            yield arg.get("type")
    for input_field in type_data.get("inputFields") or []:
        yield input_field.get("type")
    yield from type_data.get("interfaces") or []
    yield from type_data.get("possibleTypes") or []


def _truncated_type_names(types: list[Any]) -> set[str]:
    names: set[str] = set()
    for type_data in types:
        if not isinstance(type_data, dict) or not isinstance(type_data.get("name"), str):
            raise AcquisitionError("Malformed introspection payload: type entry without a name")
        try:
            if any(_is_truncated(ref) for ref in _type_refs(type_data)):
                names.add(type_data["name"])
        except AttributeError as e:
            raise AcquisitionError(f"Malformed introspection payload in type '{type_data['name']}'") from e
    return names


class IntrospectionClient:
    """Suwayomiサーバーからイントロスペクションでスキーマを取得する。

    型参照のラップは固定深さのフラグメントで取得し、途中で途切れた型は
    深さを倍にして個別に再取得する。max_typeref_depth を超えても解決しない
    場合は切り詰めずにエラーとする。
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 30.0,
        typeref_depth: int = 8,
        max_typeref_depth: int = 64,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, _CONNECT_TIMEOUT))
        self._typeref_depth = typeref_depth
        self._max_typeref_depth = max_typeref_depth
        self._transport = transport

    @classmethod
    def from_config(cls, config: SchemaWatchConfig) -> "IntrospectionClient":
        return cls(
            server_url=config.server_url,
            timeout=config.request_timeout,
            typeref_depth=config.typeref_depth,
            max_typeref_depth=config.max_typeref_depth,
        )

    @property
    def server_url(self) -> str:
        return self._server_url

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._server_url, timeout=self._timeout, transport=self._transport)

    async def ping(self) -> bool:
        """サーバーに到達できるかを返す。"""
        if not self._server_url:
            return False
        async with self._client() as client:
            try:
                response = await client.get(ABOUT_PATH)
            except httpx.HTTPError as e:
                logger.debug("Ping to %s failed: %s", self._server_url, e)
                return False
        return response.is_success

    async def acquire(self) -> SchemaSnapshot:
        """サーバーのスキーマを取得する。部分的なスナップショットは返さない。

        Raises:
            AcquisitionError: 通信失敗、非2xx応答、またはペイロードが不正な場合。
        """
        if not self._server_url:
            raise AcquisitionError("No server URL configured")

        async with self._client() as client:
            data = await self._query(client, build_introspection_query(self._typeref_depth), "IntrospectionQuery")
            schema_data = data.get("__schema")
            if not isinstance(schema_data, dict):
                raise AcquisitionError("Malformed introspection payload: missing '__schema'")
            await self._resolve_truncated_types(client, schema_data)
            server_info = await self._fetch_server_info(client)

        try:
            snapshot = SchemaSnapshot.model_validate(
                {
                    "__schema": schema_data,
                    "fetchedAt": datetime.now(UTC),
                    "serverUrl": self._server_url,
                    "serverInfo": server_info,
                }
            )
        except ValidationError as e:
            raise AcquisitionError(f"Malformed introspection payload: {e.error_count()} validation errors") from e

        logger.info("Introspected %d types from %s", len(snapshot.schema_.types), self._server_url)
        return snapshot

    async def _query(
        self,
        client: httpx.AsyncClient,
        query: str,
        operation_name: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GraphQLクエリを実行し data 部分を返す。"""
        payload: dict[str, Any] = {"query": query, "operationName": operation_name}
        if variables:
            payload["variables"] = variables

        try:
            response = await client.post(GRAPHQL_PATH, json=payload)
        except httpx.HTTPError as e:
            raise AcquisitionError(f"Failed to introspect schema: {e}") from e

        if not response.is_success:
            raise AcquisitionError(f"Failed to introspect schema: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise AcquisitionError("Failed to introspect schema: response is not JSON") from e

        if not isinstance(body, dict):
            raise AcquisitionError("Failed to introspect schema: unexpected response shape")

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise AcquisitionError(f"GraphQL errors during introspection: {messages}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise AcquisitionError("Failed to introspect schema: response has no data")
        return data

    async def _resolve_truncated_types(self, client: httpx.AsyncClient, schema_data: dict[str, Any]) -> None:
        """型参照が途中で途切れている型を、深さを増やして再取得し置き換える。"""
        types = schema_data.get("types")
        if not isinstance(types, list):
            raise AcquisitionError("Malformed introspection payload: '__schema.types' is not a list")

        depth = self._typeref_depth
        pending = _truncated_type_names(types)
        while pending:
            depth *= 2
            if depth > self._max_typeref_depth:
                raise AcquisitionError(
                    f"Type reference nesting exceeds {self._max_typeref_depth} levels in: "
                    + ", ".join(sorted(pending))
                )
            logger.debug("Re-fetching %d types with type reference depth %d", len(pending), depth)

            query = build_type_query(depth)
            index = {t["name"]: i for i, t in enumerate(types)}
            for name in sorted(pending):
                data = await self._query(client, query, "TypeRefetch", {"name": name})
                type_data = data.get("__type")
                if not isinstance(type_data, dict):
                    raise AcquisitionError(f"Type '{name}' disappeared during introspection")
                types[index[name]] = type_data

            pending = _truncated_type_names(types)

    async def _fetch_server_info(self, client: httpx.AsyncClient) -> str:
        """サーバーのバージョン情報を取得する。失敗しても取得全体は失敗させない。"""
        try:
            response = await client.get(ABOUT_PATH)
            response.raise_for_status()
            about = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Server info unavailable: %s", e)
            return ""

        if not isinstance(about, dict):
            return ""
        return (
            f"{about.get('version', '')} "
            f"(build: {about.get('buildType', '')}, revision: {about.get('revision', '')})"
        )
