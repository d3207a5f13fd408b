"""schemawatchのコマンドラインエントリポイント。

サブコマンド:
  introspect  サーバーのスキーマを取得しJSON/SDLで保存する
  check       ベースラインとサーバーのスキーマを比較する
  render      ベースラインをSDLに変換する（サーバー接続不要）
  serve       MCPサーバーを起動し、バックグラウンドで起動時検証を行う
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from schemawatch.config import SchemaWatchConfig
from schemawatch.models.errors import SchemaWatchError
from schemawatch.renderers.sdl import summarize, to_sdl
from schemawatch.services.introspection import IntrospectionClient
from schemawatch.storage.baseline import BaselineStore
from schemawatch.validators.schema import SchemaValidator

logger = logging.getLogger("schemawatch")


def _build_parser(config: SchemaWatchConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schemawatch", description="Suwayomi GraphQL schema compatibility tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    introspect = subparsers.add_parser("introspect", help="introspect the server schema and save it")
    introspect.add_argument("--server", default=config.server_url, help="Suwayomi server URL")
    introspect.add_argument("--json", type=Path, default=config.baseline_path, help="output path for JSON schema")
    introspect.add_argument("--sdl", type=Path, default=config.sdl_path, help="output path for SDL schema")
    introspect.add_argument("--summary", action="store_true", help="print a schema summary")

    check = subparsers.add_parser("check", help="validate the server schema against the baseline")
    check.add_argument("--server", default=config.server_url, help="Suwayomi server URL")
    check.add_argument("--baseline", type=Path, default=config.baseline_path, help="baseline schema path")

    render = subparsers.add_parser("render", help="render the baseline schema as SDL")
    render.add_argument("--baseline", type=Path, default=config.baseline_path, help="baseline schema path")
    render.add_argument("--output", type=Path, default=None, help="write SDL here instead of stdout")
    render.add_argument("--summary", action="store_true", help="print a summary instead of SDL")

    serve = subparsers.add_parser("serve", help="run the MCP server with background schema validation")
    serve.add_argument("--host", default=config.host)
    serve.add_argument("--port", type=int, default=config.port)

    return parser


def _client(config: SchemaWatchConfig, server_url: str) -> IntrospectionClient:
    return IntrospectionClient(
        server_url=server_url,
        timeout=config.request_timeout,
        typeref_depth=config.typeref_depth,
        max_typeref_depth=config.max_typeref_depth,
    )


async def _introspect(config: SchemaWatchConfig, args: argparse.Namespace) -> int:
    client = _client(config, args.server)
    print(f"Connecting to Suwayomi server at {client.server_url}...")
    if not await client.ping():
        print(f"Error: Unable to connect to server at {client.server_url}", file=sys.stderr)
        print("Make sure the Suwayomi server is running.", file=sys.stderr)
        return 1

    snapshot = await client.acquire()
    print("Schema introspection successful")
    if args.summary:
        print()
        print(summarize(snapshot))

    store = BaselineStore()
    await store.save(snapshot, args.json)
    print(f"JSON schema saved to {args.json}")
    await store.save_sdl(snapshot, args.sdl)
    print(f"SDL schema saved to {args.sdl}")
    return 0


async def _check(config: SchemaWatchConfig, args: argparse.Namespace) -> int:
    expected = await BaselineStore().load(args.baseline)
    actual = await _client(config, args.server).acquire()
    result = SchemaValidator().validate(expected, actual)
    print(result.report())
    return 0 if result.is_valid else 1


async def _render(args: argparse.Namespace) -> int:
    store = BaselineStore()
    snapshot = await store.load(args.baseline)
    if args.summary:
        print(summarize(snapshot), end="")
    elif args.output is not None:
        await store.save_sdl(snapshot, args.output)
        print(f"SDL schema saved to {args.output}")
    else:
        print(to_sdl(snapshot), end="")
    return 0


async def _serve(config: SchemaWatchConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from schemawatch.server import build_runtime_service, create_server

    runtime_service = build_runtime_service(config)
    mcp = create_server(config, runtime_service=runtime_service)
    app = mcp.http_app(transport="streamable-http")
    server = uvicorn.Server(uvicorn.Config(app, host=args.host, port=args.port))

    runtime_service.validate_in_background(config.baseline_path)
    try:
        await server.serve()
    finally:
        await runtime_service.shutdown()
    return 0


async def _dispatch(config: SchemaWatchConfig, args: argparse.Namespace) -> int:
    if args.command == "introspect":
        return await _introspect(config, args)
    if args.command == "check":
        return await _check(config, args)
    if args.command == "render":
        return await _render(args)
    return await _serve(config, args)


def main(argv: list[str] | None = None) -> int:
    """コマンドラインを解釈して実行し、終了コードを返す。"""
    config = SchemaWatchConfig()
    args = _build_parser(config).parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_dispatch(config, args))
    except SchemaWatchError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
