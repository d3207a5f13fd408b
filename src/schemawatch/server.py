"""FastMCPベースのスキーマ検証サーバー。"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from schemawatch.config import SchemaWatchConfig
from schemawatch.services.introspection import IntrospectionClient, SchemaAcquirer
from schemawatch.services.runtime import RuntimeValidationService
from schemawatch.storage.baseline import BaselineStore
from schemawatch.tools.schema import register_schema_tools


def build_runtime_service(
    config: SchemaWatchConfig,
    acquirer: SchemaAcquirer | None = None,
    store: BaselineStore | None = None,
) -> RuntimeValidationService:
    """設定から実行時検証サービスを組み立てる。"""
    return RuntimeValidationService(
        acquirer=acquirer or IntrospectionClient.from_config(config),
        store=store or BaselineStore(),
        mode=config.schema_validation,
    )


def create_server(
    config: SchemaWatchConfig | None = None,
    runtime_service: RuntimeValidationService | None = None,
) -> FastMCP:
    """スキーマ検証MCPサーバーを作成し、ツールを登録する。

    Args:
        config: 設定。Noneの場合はデフォルト設定を使用。
        runtime_service: 実行時検証サービス。Noneの場合は設定から作成。

    Returns:
        設定済みのFastMCPインスタンス。
    """
    if config is None:
        config = SchemaWatchConfig()

    mcp = FastMCP("schemawatch")

    store = BaselineStore()
    if runtime_service is None:
        runtime_service = build_runtime_service(config, store=store)

    register_schema_tools(mcp, runtime_service, store, config.baseline_path)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "schema_status": runtime_service.state.status,
                "schema_valid": runtime_service.is_valid(),
            }
        )

    return mcp
