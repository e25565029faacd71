from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from jsonschema import Draft7Validator

from composer_lens.composer import ComposerRunner
from composer_lens.diagnostics import analyze_project, require_project_dir, suggest_upgrades
from composer_lens.errors import ToolArgumentError, UnknownTool
from composer_lens.formatters import (
    dependents_to_json_obj,
    report_to_json_obj,
    security_to_json_obj,
    upgrade_plan_to_json_obj,
    validation_to_json_obj,
)
from composer_lens.manifest import read_composer_json
from composer_lens.names import PACKAGE_NAME_PATTERN
from composer_lens.registry_client import MAX_PER_PAGE, PackagistClient

JSONDict = dict[str, Any]
ToolHandler = Callable[[JSONDict], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class ToolContext:
    """
    工具共享的协作者；进程启动时创建一次，按引用传给每个工具。
    """

    registry: PackagistClient
    composer: ComposerRunner


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """
    一个工具的元数据（参数 schema、结果说明）与处理函数。
    """

    name: str
    description: str
    input_schema: JSONDict
    result: str
    handler: ToolHandler


_PACKAGE_NAME: JSONDict = {
    "type": "string",
    "pattern": PACKAGE_NAME_PATTERN,
    "description": "Full package name (vendor/package)",
}
_PROJECT_PATH: JSONDict = {
    "type": "string",
    "minLength": 1,
    "description": "Path to the project directory containing composer.json",
}


def _schema(properties: JSONDict, required: list[str]) -> JSONDict:
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def build_tool_table(ctx: ToolContext) -> dict[str, ToolDefinition]:
    """
    构建 工具名 → ToolDefinition 的注册表。
    """
    registry = ctx.registry
    composer = ctx.composer

    async def search_packages(args: JSONDict) -> Any:
        return await registry.search(args["query"], args["perPage"])

    async def get_package_info(args: JSONDict) -> Any:
        return await registry.get_package(args["packageName"])

    async def get_package_version(args: JSONDict) -> Any:
        return await registry.get_package_version(args["packageName"], args["version"])

    async def get_package_versions(args: JSONDict) -> Any:
        return await registry.list_versions(args["packageName"])

    async def get_package_stats(args: JSONDict) -> Any:
        return await registry.get_package_stats(args["packageName"])

    async def read_composer(args: JSONDict) -> Any:
        return await asyncio.to_thread(read_composer_json, args["path"])

    async def analyze(args: JSONDict) -> Any:
        report = await asyncio.to_thread(analyze_project, args["projectPath"], composer=composer)
        return report_to_json_obj(report)

    async def upgrades(args: JSONDict) -> Any:
        plan = await asyncio.to_thread(
            suggest_upgrades,
            args["projectPath"],
            composer=composer,
            include_major=args["includeMajor"],
        )
        return upgrade_plan_to_json_obj(plan)

    async def audit(args: JSONDict) -> Any:
        project_dir = require_project_dir(args["projectPath"])
        return security_to_json_obj(await asyncio.to_thread(composer.audit_packages, project_dir))

    async def validate(args: JSONDict) -> Any:
        project_dir = require_project_dir(args["projectPath"])
        return validation_to_json_obj(await asyncio.to_thread(composer.validate_project, project_dir))

    async def dependents(args: JSONDict) -> Any:
        project_dir = require_project_dir(args["projectPath"])
        result = await asyncio.to_thread(composer.get_dependents, project_dir, args["packageName"])
        return dependents_to_json_obj(result)

    definitions = [
        ToolDefinition(
            name="search_packages",
            description="Search for PHP composer packages on Packagist.org",
            input_schema=_schema(
                {
                    "query": {"type": "string", "minLength": 2, "description": "Package name, keyword or description"},
                    "perPage": {"type": "integer", "minimum": 1, "maximum": MAX_PER_PAGE, "default": 15},
                },
                ["query"],
            ),
            result="{results: list, total: int}",
            handler=search_packages,
        ),
        ToolDefinition(
            name="get_package_info",
            description="Get detailed information about a PHP composer package",
            input_schema=_schema({"packageName": _PACKAGE_NAME}, ["packageName"]),
            result="Packagist package document",
            handler=get_package_info,
        ),
        ToolDefinition(
            name="get_package_version",
            description="Get the metadata of one version of a PHP composer package",
            input_schema=_schema(
                {"packageName": _PACKAGE_NAME, "version": {"type": "string", "minLength": 1}},
                ["packageName", "version"],
            ),
            result="Packagist version document",
            handler=get_package_version,
        ),
        ToolDefinition(
            name="get_package_versions",
            description="List the versions of a PHP composer package and its latest stable release",
            input_schema=_schema({"packageName": _PACKAGE_NAME}, ["packageName"]),
            result="{package, versions: list, latest_stable}",
            handler=get_package_versions,
        ),
        ToolDefinition(
            name="get_package_stats",
            description="Get download and dependents statistics for a PHP composer package",
            input_schema=_schema({"packageName": _PACKAGE_NAME}, ["packageName"]),
            result="{downloads, dependents, suggesters, favers}",
            handler=get_package_stats,
        ),
        ToolDefinition(
            name="read_composer_json",
            description="Read and parse a composer.json file",
            input_schema=_schema(
                {"path": {"type": "string", "minLength": 1, "description": "Path to the composer.json file"}},
                ["path"],
            ),
            result="decoded composer.json document",
            handler=read_composer,
        ),
        ToolDefinition(
            name="analyze_project",
            description="Analyze a Composer project for issues and improvements",
            input_schema=_schema({"projectPath": _PROJECT_PATH}, ["projectPath"]),
            result="project report",
            handler=analyze,
        ),
        ToolDefinition(
            name="suggest_upgrades",
            description="Suggest available package upgrades for a project",
            input_schema=_schema(
                {
                    "projectPath": _PROJECT_PATH,
                    "includeMajor": {"type": "boolean", "default": False},
                },
                ["projectPath"],
            ),
            result="{upgrades: list, summary}",
            handler=upgrades,
        ),
        ToolDefinition(
            name="audit_packages",
            description="Audit the installed packages of a project for known security vulnerabilities",
            input_schema=_schema({"projectPath": _PROJECT_PATH}, ["projectPath"]),
            result="{advisories: list, summary}",
            handler=audit,
        ),
        ToolDefinition(
            name="validate_project",
            description="Validate the composer.json and composer.lock of a project",
            input_schema=_schema({"projectPath": _PROJECT_PATH}, ["projectPath"]),
            result="{valid, errors, warnings, output}",
            handler=validate,
        ),
        ToolDefinition(
            name="find_dependents",
            description="List the installed packages that depend on a given package",
            input_schema=_schema({"projectPath": _PROJECT_PATH, "packageName": _PACKAGE_NAME}, ["projectPath", "packageName"]),
            result="{package, dependents: list, count}",
            handler=dependents,
        ),
    ]
    return {d.name: d for d in definitions}


def prepare_arguments(tool: ToolDefinition, arguments: JSONDict | None) -> JSONDict:
    """
    按 schema 校验参数并补全默认值；校验失败时抛出 ToolArgumentError。
    """
    args = dict(arguments or {})
    validator = Draft7Validator(tool.input_schema)
    errors = sorted(validator.iter_errors(args), key=lambda e: list(e.path))
    if errors:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.path) or '<arguments>'}: {e.message}" for e in errors
        )
        raise ToolArgumentError(f"Invalid arguments for {tool.name}: {details}")

    for key, prop in tool.input_schema.get("properties", {}).items():
        if key not in args and "default" in prop:
            args[key] = copy.deepcopy(prop["default"])
    return args


async def call_tool(table: dict[str, ToolDefinition], name: str, arguments: JSONDict | None) -> Any:
    """
    分发一次工具调用：查找、校验参数、执行处理函数。
    """
    tool = table.get(name)
    if tool is None:
        raise UnknownTool(f"Unknown tool: {name}")
    args = prepare_arguments(tool, arguments)
    return await tool.handler(args)
