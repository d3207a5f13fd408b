"""スキーマ検証系のMCPツール定義。"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from schemawatch.models.errors import SchemaIncompatibleError, SchemaWatchError
from schemawatch.renderers.sdl import summarize, to_sdl
from schemawatch.services.runtime import RuntimeValidationService
from schemawatch.storage.baseline import BaselineStore


def register_schema_tools(
    mcp: FastMCP,
    runtime_service: RuntimeValidationService,
    store: BaselineStore,
    baseline_path: Path,
) -> None:
    """スキーマ検証関連のMCPツールを登録する。"""

    def _status() -> dict[str, Any]:
        state = runtime_service.state
        return {
            "status": state.status,
            "is_valid": runtime_service.is_valid(),
            "mode": runtime_service.mode,
            "validated_at": state.validated_at.isoformat() if state.validated_at else None,
            "error": state.error,
        }

    @mcp.tool()
    async def get_validation_status() -> dict[str, Any]:
        """スキーマ検証の現在の状態を返す。

        検証の進行状態（unstarted / validating / valid / invalid /
        baseline_created / failed）、互換性モード、検証時刻を返します。
        """
        return _status()

    @mcp.tool()
    async def get_validation_report() -> dict[str, Any]:
        """直近のスキーマ検証レポートを返す。

        エラー・警告・欠落した型やフィールド・型不一致・非推奨フィールドを
        セクションごとにまとめたテキストを返します。
        """
        result, _ = runtime_service.last_result()
        return {"report": runtime_service.report(), "result": result.model_dump()}

    @mcp.tool()
    async def run_validation() -> dict[str, Any]:
        """スキーマ検証を実行する（プロセス内で一度だけ）。

        既に実行済みの場合は保持している結果を返します。
        ベースラインが無い場合はサーバーのスキーマから作成します。
        """
        try:
            result = await runtime_service.validate_on_startup(baseline_path)
        except SchemaIncompatibleError as e:
            return {"error": type(e).__name__, "message": str(e), "result": e.result.model_dump()}
        except SchemaWatchError as e:
            return {"error": type(e).__name__, "message": str(e)}
        return {**_status(), "result": result.model_dump() if result else None}

    @mcp.tool()
    async def render_baseline_sdl() -> dict[str, Any]:
        """ベースラインスキーマをGraphQL SDL形式で出力する。"""
        try:
            snapshot = await store.load(baseline_path)
            return {"sdl": to_sdl(snapshot)}
        except SchemaWatchError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def summarize_baseline() -> dict[str, Any]:
        """ベースラインスキーマの概要（種別ごとの型数、ルート型）を返す。"""
        try:
            snapshot = await store.load(baseline_path)
            return {"summary": summarize(snapshot)}
        except SchemaWatchError as e:
            return {"error": type(e).__name__, "message": str(e)}
