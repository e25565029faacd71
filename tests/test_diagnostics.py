from __future__ import annotations

import json
from pathlib import Path

import pytest

from composer_lens.composer import ComposerRunner
from composer_lens.diagnostics import analyze_project, suggest_upgrades
from composer_lens.errors import DiagnosticToolFailure, MalformedManifest, ManifestNotFound, ProjectNotFound
from composer_lens.models import Severity, SuggestionType, UpdateType


def _outdated_doc() -> dict:
    """
    构造 composer outdated 输出：两个 patch（特定顺序）、一个 minor、一个 major、一个 dev 分支。
    """
    return {
        "installed": [
            {"name": "acme/minor", "version": "1.2.0", "latest": "1.4.0", "latest-status": "semver-safe-update"},
            {"name": "acme/patch-b", "version": "2.0.1", "latest": "2.0.5", "latest-status": "semver-safe-update"},
            {"name": "acme/major", "version": "9.3.1", "latest": "11.0.0", "latest-status": "update-possible"},
            {"name": "acme/dev", "version": "dev-main", "latest": "dev-main 1a2b3c", "latest-status": "update-possible"},
            {
                "name": "acme/patch-a",
                "version": "v1.0.0",
                "latest": "v1.0.3",
                "latest-status": "semver-safe-update",
                "description": "first patch",
            },
            {"name": "acme/current", "version": "3.0.0", "latest": "3.0.0", "latest-status": "up-to-date"},
        ]
    }


def _project(tmp_path: Path, manifest: dict | None = None) -> Path:
    manifest = manifest or {
        "name": "acme/app",
        "type": "project",
        "require": {"php": "^8.2", "acme/minor": "^1.2"},
        "require-dev": {"phpunit/phpunit": "^11"},
    }
    (tmp_path / "composer.json").write_text(json.dumps(manifest), encoding="utf-8")
    return tmp_path


def test_analyze_missing_manifest_fails_before_subprocess(fake_run, tmp_path: Path) -> None:
    """
    缺少 composer.json 时应抛出 ManifestNotFound，且不启动任何 composer 子进程。
    """
    with pytest.raises(ManifestNotFound):
        analyze_project(str(tmp_path), composer=ComposerRunner(run=fake_run))
    assert fake_run.calls == []


def test_analyze_missing_directory_fails_before_subprocess(fake_run, tmp_path: Path) -> None:
    with pytest.raises(ProjectNotFound):
        analyze_project(str(tmp_path / "nope"), composer=ComposerRunner(run=fake_run))
    assert fake_run.calls == []


def test_analyze_malformed_manifest(fake_run, tmp_path: Path) -> None:
    (tmp_path / "composer.json").write_text("{", encoding="utf-8")
    with pytest.raises(MalformedManifest):
        analyze_project(str(tmp_path), composer=ComposerRunner(run=fake_run))
    assert fake_run.calls == []


def test_analyze_builds_report_with_ordered_suggestions(fake_run, tmp_path: Path) -> None:
    """
    报告应汇总各项诊断，建议顺序固定为 validation → outdated → security。
    """
    project = _project(tmp_path)
    fake_run.set("validate", returncode=1, stderr="[error] The property name is required\n")
    fake_run.set("show", stdout={"installed": [{"name": "a/a", "version": "1.0.0"}] * 4})
    fake_run.set("outdated", returncode=1, stdout=_outdated_doc())
    fake_run.set("audit", returncode=1, stdout={"advisories": {"acme/minor": [{"advisoryId": "X"}]}})

    report = analyze_project(str(project), composer=ComposerRunner(run=fake_run))

    assert fake_run.subcommands == ["validate", "show", "outdated", "audit"]
    assert report.name == "acme/app"
    assert report.type == "project"
    assert report.path == str(project)
    assert report.dependencies.total == 4
    assert report.dependencies.require == 2
    assert report.dependencies.require_dev == 1
    assert [p.name for p in report.outdated] == ["acme/minor", "acme/patch-b", "acme/major", "acme/dev", "acme/patch-a"]
    assert report.security.total == 1

    assert [s.type for s in report.suggestions] == [
        SuggestionType.VALIDATION,
        SuggestionType.OUTDATED,
        SuggestionType.SECURITY,
    ]
    assert [s.severity for s in report.suggestions] == [Severity.ERROR, Severity.WARNING, Severity.CRITICAL]
    assert report.suggestions[1].message == "Found 5 outdated package(s). Consider updating them."
    assert report.suggestions[1].context["packages"][0] == "acme/minor"


def test_analyze_clean_project_has_no_suggestions(fake_run, tmp_path: Path) -> None:
    project = _project(tmp_path, {"name": "acme/lib"})
    fake_run.set("validate", returncode=0, stdout="./composer.json is valid\n")
    fake_run.set("show", stdout={"installed": []})
    fake_run.set("outdated", stdout={"installed": []})
    fake_run.set("audit", stdout="audit unavailable")

    report = analyze_project(str(project), composer=ComposerRunner(run=fake_run))

    assert report.suggestions == []
    assert report.type == "library"
    assert report.dependencies.require == 0
    assert report.security.available is False


def test_analyze_aborts_when_a_diagnostic_fails(fake_run, tmp_path: Path) -> None:
    """
    任一诊断子进程失败时整个分析失败，不返回部分结果。
    """
    project = _project(tmp_path)
    fake_run.set("validate", returncode=0)
    fake_run.set("show", returncode=255, stderr="fatal")

    with pytest.raises(DiagnosticToolFailure):
        analyze_project(str(project), composer=ComposerRunner(run=fake_run))
    assert fake_run.subcommands == ["validate", "show"]


def test_suggest_upgrades_excludes_major_and_sorts_stably(fake_run, tmp_path: Path) -> None:
    """
    默认排除 major；patch 全部排在 minor 之前，同类保持输入顺序。
    """
    fake_run.set("outdated", returncode=1, stdout=_outdated_doc())
    plan = suggest_upgrades(str(tmp_path), composer=ComposerRunner(run=fake_run))

    assert [(u.package, u.type) for u in plan.upgrades] == [
        ("acme/patch-b", UpdateType.PATCH),
        ("acme/patch-a", UpdateType.PATCH),
        ("acme/minor", UpdateType.MINOR),
        ("acme/dev", UpdateType.UNKNOWN),
    ]
    assert plan.included_major is False
    assert plan.count(UpdateType.MAJOR) == 0
    assert plan.upgrades[1].description == "first patch"
    assert plan.upgrades[0].description == ""


def test_suggest_upgrades_include_major(fake_run, tmp_path: Path) -> None:
    fake_run.set("outdated", returncode=1, stdout=_outdated_doc())
    plan = suggest_upgrades(str(tmp_path), composer=ComposerRunner(run=fake_run), include_major=True)

    types = [u.type for u in plan.upgrades]
    assert types == [UpdateType.PATCH, UpdateType.PATCH, UpdateType.MINOR, UpdateType.MAJOR, UpdateType.UNKNOWN]
    assert plan.included_major is True


def test_suggest_upgrades_missing_directory(fake_run, tmp_path: Path) -> None:
    with pytest.raises(ProjectNotFound):
        suggest_upgrades(str(tmp_path / "missing"), composer=ComposerRunner(run=fake_run))
    assert fake_run.calls == []
