from __future__ import annotations

import json
from typing import Any, TextIO

from rich.console import Console
from rich.table import Table

from composer_lens.models import (
    DependentsResult,
    InstalledPackage,
    ProjectReport,
    SecurityAdvisorySet,
    Suggestion,
    UpdateType,
    UpgradePlan,
    ValidationResult,
)


def validation_to_json_obj(validation: ValidationResult) -> dict[str, Any]:
    return {
        "valid": validation.valid,
        "errors": list(validation.errors),
        "warnings": list(validation.warnings),
        "output": validation.output,
    }


def security_summary(security: SecurityAdvisorySet) -> dict[str, Any]:
    """
    审计摘要；审计不可用时只包含 total。
    """
    summary: dict[str, Any] = {"total": security.total}
    if security.available:
        summary["has_vulnerabilities"] = security.has_vulnerabilities
    return summary


def security_to_json_obj(security: SecurityAdvisorySet) -> dict[str, Any]:
    data: dict[str, Any] = {
        "advisories": list(security.advisories),
        "summary": security_summary(security),
    }
    if security.available:
        data["abandoned"] = dict(security.abandoned)
    return data


def package_to_json_obj(package: InstalledPackage) -> dict[str, Any]:
    """
    返回 composer 输出中的原始条目；没有原始条目时按字段重建。
    """
    if package.raw:
        return dict(package.raw)
    data: dict[str, Any] = {"name": package.name, "version": package.version}
    if package.latest is not None:
        data["latest"] = package.latest
    if package.latest_status is not None:
        data["latest-status"] = package.latest_status
    if package.description is not None:
        data["description"] = package.description
    return data


def dependents_to_json_obj(result: DependentsResult) -> dict[str, Any]:
    return {
        "package": result.package,
        "dependents": [{"name": d.name, "version": d.version} for d in result.dependents],
        "count": result.count,
    }


def _context_value(value: Any) -> Any:
    if isinstance(value, ValidationResult):
        return validation_to_json_obj(value)
    if isinstance(value, SecurityAdvisorySet):
        return security_summary(value)
    return value


def suggestion_to_json_obj(suggestion: Suggestion) -> dict[str, Any]:
    data: dict[str, Any] = {
        "type": suggestion.type.value,
        "severity": suggestion.severity.value,
        "message": suggestion.message,
    }
    for key, value in suggestion.context.items():
        data[key] = _context_value(value)
    return data


def report_to_json_obj(report: ProjectReport) -> dict[str, Any]:
    """
    将项目报告转换为可 JSON 序列化的字典结构。
    """
    return {
        "project": {"name": report.name, "path": report.path, "type": report.type},
        "validation": validation_to_json_obj(report.validation),
        "dependencies": {
            "total": report.dependencies.total,
            "require": report.dependencies.require,
            "require-dev": report.dependencies.require_dev,
        },
        "outdated": {
            "total": len(report.outdated),
            "packages": [package_to_json_obj(p) for p in report.outdated],
        },
        "security": security_to_json_obj(report.security),
        "suggestions": [suggestion_to_json_obj(s) for s in report.suggestions],
        "summary": {
            "total_packages": report.dependencies.total,
            "outdated_count": len(report.outdated),
            "security_issues": report.security.total,
            "validation_errors": len(report.validation.errors),
            "validation_warnings": len(report.validation.warnings),
        },
    }


def upgrade_plan_to_json_obj(plan: UpgradePlan) -> dict[str, Any]:
    """
    将升级建议转换为可 JSON 序列化的字典结构。
    """
    return {
        "upgrades": [
            {
                "package": u.package,
                "current": u.current,
                "latest": u.latest,
                "type": u.type.value,
                "status": u.status,
                "description": u.description,
            }
            for u in plan.upgrades
        ],
        "summary": {
            "total": len(plan.upgrades),
            "by_type": {t.value: plan.count(t) for t in UpdateType},
            "included_major": plan.included_major,
        },
    }


def render_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def render_report_markdown(report: ProjectReport) -> str:
    """
    渲染项目报告的 Markdown（概要 + 建议 + 过期包表格）。
    """
    lines: list[str] = []
    lines.append(
        f"# composer-lens 报告\n\n- 项目：`{report.name or '-'}`（{report.type}）\n- 路径：`{report.path}`\n"
        f"- 已安装：{report.dependencies.total}（require {report.dependencies.require}，"
        f"require-dev {report.dependencies.require_dev}）\n"
        f"- 校验：{'通过' if report.validation.valid else '失败'}\n"
        f"- 安全问题：{report.security.total}\n"
    )
    if report.suggestions:
        lines.append("## 建议\n")
        for s in report.suggestions:
            lines.append(f"- **{s.severity.value}** [{s.type.value}] {s.message}")
        lines.append("")
    lines.append("| 包 | 当前 | 最新 | 状态 |")
    lines.append("|---|---|---|---|")
    for p in report.outdated:
        lines.append(f"| {p.name} | {p.version} | {p.latest or '-'} | {p.latest_status or '-'} |")
    return "\n".join(lines) + "\n"


def render_upgrades_markdown(plan: UpgradePlan) -> str:
    lines: list[str] = []
    lines.append("| 包 | 当前 | 最新 | 类型 | 状态 |")
    lines.append("|---|---|---|---|---|")
    for u in plan.upgrades:
        lines.append(f"| {u.package} | {u.current} | {u.latest} | {u.type.value} | {u.status} |")
    return "\n".join(lines) + "\n"


def print_report_table(report: ProjectReport, *, file: TextIO | None = None) -> None:
    """
    以控制台表格形式输出项目报告。
    """
    console = Console(file=file)
    table = Table(title=f"composer-lens：{report.name or report.path}")
    table.add_column("包", no_wrap=True)
    table.add_column("当前", no_wrap=True)
    table.add_column("最新", no_wrap=True)
    table.add_column("状态", no_wrap=True)
    table.add_column("描述")
    for p in report.outdated:
        table.add_row(p.name, p.version, p.latest or "-", p.latest_status or "-", p.description or "-")
    console.print(table)
    for s in report.suggestions:
        console.print(f"[{s.severity.value}] {s.message}", markup=False)
    console.print(
        f"已安装：{report.dependencies.total}，过期：{len(report.outdated)}，安全问题：{report.security.total}"
    )


def print_upgrades_table(plan: UpgradePlan, *, file: TextIO | None = None) -> None:
    console = Console(file=file)
    table = Table(title="composer-lens 升级建议")
    table.add_column("包", no_wrap=True)
    table.add_column("当前", no_wrap=True)
    table.add_column("最新", no_wrap=True)
    table.add_column("类型", no_wrap=True)
    table.add_column("描述")
    for u in plan.upgrades:
        table.add_row(u.package, u.current, u.latest, u.type.value, u.description or "-")
    console.print(table)
    counts = "，".join(f"{t.value} {plan.count(t)}" for t in UpdateType)
    console.print(f"共 {len(plan.upgrades)} 项（{counts}）")
