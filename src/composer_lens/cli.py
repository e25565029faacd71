from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Awaitable, Callable

from composer_lens.composer import ComposerRunner
from composer_lens.config import AppConfig, load_config
from composer_lens.errors import ComposerLensError
from composer_lens.logs import configure_logging
from composer_lens.names import is_valid_package_name
from composer_lens.registry_client import PackagistClient


def build_parser() -> argparse.ArgumentParser:
    """
    构建 composer-lens 的命令行参数解析器。
    """
    parser = argparse.ArgumentParser(prog="composer-lens")
    parser.add_argument(
        "--version",
        action="store_true",
        help="输出版本号并退出",
    )
    parser.add_argument("--config", help="配置文件路径（.toml 或 .yaml）")
    parser.add_argument("--log-level", help="日志级别（DEBUG/INFO/WARNING/ERROR）")
    parser.add_argument("--composer", help="composer 可执行文件路径")
    parser.add_argument("--registry-url", help="Packagist 基址")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="以 stdio 运行 MCP 服务（默认）")

    analyze = subparsers.add_parser("analyze", help="分析 Composer 项目并输出报告")
    analyze.add_argument("project", help="包含 composer.json 的项目目录")
    analyze.add_argument("--format", choices=["table", "json", "md"], default="table", help="输出格式")
    analyze.add_argument("--output", help="输出到文件（默认 stdout）")

    upgrades = subparsers.add_parser("upgrades", help="列出可用的包升级")
    upgrades.add_argument("project", help="项目目录")
    upgrades.add_argument("--include-major", action="store_true", help="包含 major 升级")
    upgrades.add_argument("--format", choices=["table", "json", "md"], default="table", help="输出格式")
    upgrades.add_argument("--output", help="输出到文件（默认 stdout）")

    search = subparsers.add_parser("search", help="在 Packagist 搜索包")
    search.add_argument("query", help="搜索关键字")
    search.add_argument("--per-page", type=int, default=15, help="每页数量（最大 100）")

    info = subparsers.add_parser("info", help="输出包的 Packagist 元数据")
    info.add_argument("package", help="vendor/package")

    return parser


def _merge_cli_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """
    将 CLI 参数覆盖合并到 AppConfig。
    """
    registry = cfg.registry
    if args.registry_url:
        registry = replace(registry, base_url=args.registry_url)
    return AppConfig(
        registry=registry,
        composer_binary=args.composer or cfg.composer_binary,
        process_timeout_s=cfg.process_timeout_s,
        log_level=(args.log_level or cfg.log_level).upper(),
    )


def _run_registry(cfg: AppConfig, call: Callable[[PackagistClient], Awaitable[Any]]) -> Any:
    """
    创建一次性的仓库客户端执行调用，并确保关闭连接。
    """

    async def runner() -> Any:
        client = PackagistClient.from_settings(cfg.registry)
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(runner())


def _emit(text: str, output_path: str | None) -> None:
    if output_path:
        Path(output_path).write_text(text, encoding="utf-8")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def main(argv: list[str] | None = None) -> int:
    """
    composer-lens 命令行入口。
    """
    args = build_parser().parse_args(argv)

    if args.version:
        from composer_lens import __version__

        print(__version__)
        return 0

    cfg = _merge_cli_overrides(load_config(args.config), args)
    configure_logging(cfg.log_level)

    if args.command in (None, "serve"):
        from composer_lens.server import serve_stdio

        asyncio.run(serve_stdio(cfg))
        return 0

    from composer_lens.formatters import render_json

    composer = ComposerRunner(cfg.composer_binary, timeout_s=cfg.process_timeout_s)

    if args.command == "analyze":
        from composer_lens.diagnostics import analyze_project
        from composer_lens.formatters import print_report_table, render_report_markdown, report_to_json_obj

        try:
            report = analyze_project(args.project, composer=composer)
        except ComposerLensError as exc:
            print(f"composer-lens: 分析失败：{exc}", file=sys.stderr)
            return 1
        if args.format == "table":
            if args.output:
                with open(args.output, "w", encoding="utf-8") as f:
                    print_report_table(report, file=f)
            else:
                print_report_table(report)
            return 0
        if args.format == "json":
            text = render_json(report_to_json_obj(report))
        else:
            text = render_report_markdown(report)
        _emit(text, args.output)
        return 0

    if args.command == "upgrades":
        from composer_lens.diagnostics import suggest_upgrades
        from composer_lens.formatters import print_upgrades_table, render_upgrades_markdown, upgrade_plan_to_json_obj

        try:
            plan = suggest_upgrades(args.project, composer=composer, include_major=bool(args.include_major))
        except ComposerLensError as exc:
            print(f"composer-lens: 分析失败：{exc}", file=sys.stderr)
            return 1
        if args.format == "table":
            if args.output:
                with open(args.output, "w", encoding="utf-8") as f:
                    print_upgrades_table(plan, file=f)
            else:
                print_upgrades_table(plan)
            return 0
        if args.format == "json":
            text = render_json(upgrade_plan_to_json_obj(plan))
        else:
            text = render_upgrades_markdown(plan)
        _emit(text, args.output)
        return 0

    if args.command == "search":
        try:
            data = _run_registry(cfg, lambda c: c.search(args.query, args.per_page))
        except ComposerLensError as exc:
            print(f"composer-lens: 查询失败：{exc}", file=sys.stderr)
            return 1
        _emit(render_json(data), None)
        return 0

    if args.command == "info":
        if not is_valid_package_name(args.package):
            print(f"composer-lens: 无效的包名 {args.package!r}（应为 vendor/package）", file=sys.stderr)
            return 2
        try:
            data = _run_registry(cfg, lambda c: c.get_package(args.package))
        except ComposerLensError as exc:
            print(f"composer-lens: 查询失败：{exc}", file=sys.stderr)
            return 1
        _emit(render_json(data), None)
        return 0

    print(f"composer-lens: 未知子命令 {args.command!r}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
