from __future__ import annotations

import logging
from pathlib import Path

from composer_lens.composer import ComposerRunner
from composer_lens.errors import ProjectNotFound
from composer_lens.manifest import count_requirements, load_project_manifest, project_type
from composer_lens.models import (
    DependencyCounts,
    InstalledPackage,
    ProjectReport,
    SecurityAdvisorySet,
    Severity,
    Suggestion,
    SuggestionType,
    UpdateType,
    UpgradeCandidate,
    UpgradePlan,
    ValidationResult,
)
from composer_lens.versions import classify_update, sort_upgrades

logger = logging.getLogger(__name__)


def require_project_dir(project_path: str) -> Path:
    path = Path(project_path)
    if not path.is_dir():
        raise ProjectNotFound(project_path)
    return path


def build_suggestions(
    validation: ValidationResult,
    outdated: dict[str, InstalledPackage],
    security: SecurityAdvisorySet,
) -> list[Suggestion]:
    """
    按固定顺序生成建议：validation → outdated → security。
    """
    suggestions: list[Suggestion] = []

    if not validation.valid:
        suggestions.append(
            Suggestion(
                type=SuggestionType.VALIDATION,
                severity=Severity.ERROR,
                message="Project validation failed. Run `composer validate` for details.",
                context={"details": validation},
            )
        )

    if outdated:
        suggestions.append(
            Suggestion(
                type=SuggestionType.OUTDATED,
                severity=Severity.WARNING,
                message=f"Found {len(outdated)} outdated package(s). Consider updating them.",
                context={"packages": list(outdated.keys())},
            )
        )

    if security.available and security.has_vulnerabilities:
        suggestions.append(
            Suggestion(
                type=SuggestionType.SECURITY,
                severity=Severity.CRITICAL,
                message=(
                    f"Found {security.total} security vulnerabilit(ies). "
                    "Update affected packages immediately!"
                ),
                context={"details": security},
            )
        )

    return suggestions


def analyze_project(project_path: str, *, composer: ComposerRunner) -> ProjectReport:
    """
    分析 Composer 项目：校验、已安装包、过期包、安全审计，并生成建议。

    目录与 composer.json 的检查先于任何 composer 子进程；
    任何一步诊断失败都会使整个分析失败（不返回部分结果）。
    """
    project_dir = require_project_dir(project_path)
    manifest = load_project_manifest(project_dir)

    validation = composer.validate_project(project_dir)
    installed = composer.get_installed_packages(project_dir)
    outdated = composer.get_outdated_packages(project_dir)
    security = composer.audit_packages(project_dir)

    counts = DependencyCounts(
        total=len(installed),
        require=count_requirements(manifest, "require"),
        require_dev=count_requirements(manifest, "require-dev"),
    )
    name = manifest.get("name")
    logger.debug(
        "analyzed %s: %d installed, %d outdated, %d advisories",
        project_path,
        counts.total,
        len(outdated.outdated),
        security.total,
    )

    return ProjectReport(
        name=name if isinstance(name, str) else None,
        path=project_path,
        type=project_type(manifest),
        validation=validation,
        dependencies=counts,
        outdated=list(outdated.outdated.values()),
        security=security,
        suggestions=build_suggestions(validation, outdated.outdated, security),
    )


def suggest_upgrades(project_path: str, *, composer: ComposerRunner, include_major: bool = False) -> UpgradePlan:
    """
    基于 composer outdated 生成升级建议；默认排除 major 升级，结果按 patch < minor < major 稳定排序。
    """
    project_dir = require_project_dir(project_path)
    outdated = composer.get_outdated_packages(project_dir)

    candidates: list[UpgradeCandidate] = []
    for name, package in outdated.outdated.items():
        current = package.version or "unknown"
        latest = package.latest or "unknown"
        status = package.latest_status or "unknown"
        update_type = classify_update(current, latest, status)
        if update_type == UpdateType.MAJOR and not include_major:
            continue
        candidates.append(
            UpgradeCandidate(
                package=name,
                current=current,
                latest=latest,
                type=update_type,
                status=status,
                description=package.description or "",
            )
        )

    return UpgradePlan(upgrades=sort_upgrades(candidates), included_major=include_major)
