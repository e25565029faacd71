from __future__ import annotations

import json
import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from composer_lens import __version__
from composer_lens.composer import ComposerRunner
from composer_lens.config import AppConfig
from composer_lens.registry_client import PackagistClient
from composer_lens.tools import ToolContext, ToolDefinition, build_tool_table, call_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "composer-lens"


def build_server(table: dict[str, ToolDefinition]) -> Server:
    """
    基于工具注册表构建 MCP Server（tools/list 与 tools/call）。
    """
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in table.values()
        ]

    @server.call_tool()
    async def handle_call(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        try:
            result = await call_tool(table, name, arguments)
        except Exception:
            logger.debug("tool %s failed", name, exc_info=True)
            raise
        return [types.TextContent(type="text", text=json.dumps(result, ensure_ascii=False, default=str))]

    return server


def create_context(config: AppConfig) -> ToolContext:
    """
    进程启动时创建一次仓库客户端与 composer 执行器。
    """
    return ToolContext(
        registry=PackagistClient.from_settings(config.registry),
        composer=ComposerRunner(config.composer_binary, timeout_s=config.process_timeout_s),
    )


async def serve_stdio(config: AppConfig) -> None:
    """
    以 stdio 传输运行 MCP 服务直到输入结束。
    """
    ctx = create_context(config)
    server = build_server(build_tool_table(ctx))
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await ctx.registry.aclose()
