from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from composer_lens.errors import DiagnosticToolFailure
from composer_lens.models import DependentsResult, InstalledPackage, OutdatedResult, SecurityAdvisorySet, ValidationResult
from composer_lens.parsers import (
    DependentsOutputParser,
    RegexDependentsParser,
    RegexValidationParser,
    ValidationOutputParser,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 300.0

ProcessRunner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True, slots=True)
class CommandResult:
    """
    一次 composer 调用的结果。
    """

    command: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def text(self) -> str:
        """
        stdout 与 stderr 合并后的文本（composer 将诊断信息写到 stderr）。
        """
        if not self.stderr:
            return self.stdout
        if not self.stdout:
            return self.stderr
        sep = "" if self.stdout.endswith("\n") else "\n"
        return f"{self.stdout}{sep}{self.stderr}"


def _installed_from_raw(entry: dict[str, Any]) -> InstalledPackage:
    latest = entry.get("latest")
    status = entry.get("latest-status")
    description = entry.get("description")
    return InstalledPackage(
        name=str(entry.get("name") or ""),
        version=str(entry.get("version") or "unknown"),
        latest=str(latest) if latest is not None else None,
        latest_status=str(status) if status is not None else None,
        description=str(description) if description is not None else None,
        raw=entry,
    )


def _installed_list(data: dict[str, Any]) -> list[dict[str, Any]]:
    installed = data.get("installed") or []
    if not isinstance(installed, list):
        return []
    return [e for e in installed if isinstance(e, dict)]


def _flatten_advisories(raw: Any) -> list[dict[str, Any]]:
    """
    composer audit 以包名为键组织 advisories；展平为单个有序列表。
    """
    if isinstance(raw, dict):
        flat: list[dict[str, Any]] = []
        for package, entries in raw.items():
            if isinstance(entries, dict):
                entries = list(entries.values())
            for entry in entries or []:
                if isinstance(entry, dict):
                    flat.append({"packageName": package, **entry})
        return flat
    if isinstance(raw, list):
        return [e for e in raw if isinstance(e, dict)]
    return []


class ComposerRunner:
    """
    在项目目录中以固定参数调用 composer 并解析其输出。
    """

    def __init__(
        self,
        binary: str = "composer",
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        run: ProcessRunner = subprocess.run,
        validation_parser: ValidationOutputParser | None = None,
        dependents_parser: DependentsOutputParser | None = None,
    ) -> None:
        self._binary = binary
        self._timeout_s = timeout_s
        self._run = run
        self._validation_parser = validation_parser or RegexValidationParser()
        self._dependents_parser = dependents_parser or RegexDependentsParser()

    def execute(self, project_path: str | Path, args: list[str]) -> CommandResult:
        """
        执行 composer 子命令；无法启动或超时时抛出 DiagnosticToolFailure。
        """
        command = (self._binary, *args)
        logger.debug("running %s in %s", " ".join(command), project_path)
        try:
            proc = self._run(
                list(command),
                cwd=str(project_path),
                capture_output=True,
                text=True,
                timeout=self._timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            partial = exc.stdout if isinstance(exc.stdout, str) else ""
            raise DiagnosticToolFailure(
                f"composer {args[0]} timed out after {self._timeout_s:g}s",
                command=command,
                exit_code=None,
                output=partial,
            ) from exc
        except OSError as exc:
            raise DiagnosticToolFailure(
                f"failed to start {self._binary}: {exc}",
                command=command,
                exit_code=None,
                output=str(exc),
            ) from exc

        exit_code = proc.returncode if proc.returncode is not None else 0
        if exit_code < 0:
            # 被信号终止：按 shell 约定映射为 128 + 信号值
            exit_code = 128 - exit_code
        result = CommandResult(
            command=command,
            exit_code=exit_code,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        logger.debug("%s exited with %d", " ".join(command), result.exit_code)
        return result

    def _decode_json(self, result: CommandResult, subcommand: str) -> dict[str, Any]:
        try:
            data = json.loads(result.stdout)
        except ValueError as exc:
            raise DiagnosticToolFailure(
                f"Invalid JSON output from composer {subcommand}",
                command=result.command,
                exit_code=result.exit_code,
                output=result.text,
            ) from exc
        if not isinstance(data, dict):
            raise DiagnosticToolFailure(
                f"Invalid JSON output from composer {subcommand}",
                command=result.command,
                exit_code=result.exit_code,
                output=result.text,
            )
        return data

    @staticmethod
    def _failure(result: CommandResult, subcommand: str) -> DiagnosticToolFailure:
        return DiagnosticToolFailure(
            f"Composer {subcommand} command failed with exit code {result.exit_code}",
            command=result.command,
            exit_code=result.exit_code,
            output=result.text,
        )

    def get_outdated_packages(self, project_path: str | Path) -> OutdatedResult:
        """
        composer outdated：退出码 0/1 均为成功，仅保留 latest 存在且不同于 version 的包。
        """
        result = self.execute(project_path, ["outdated", "--format=json", "--no-interaction"])
        if result.exit_code > 1:
            raise self._failure(result, "outdated")

        data = self._decode_json(result, "outdated")
        installed = [_installed_from_raw(e) for e in _installed_list(data)]
        outdated = {p.name: p for p in installed if p.is_outdated}
        return OutdatedResult(installed=installed, outdated=outdated)

    def get_installed_packages(self, project_path: str | Path) -> list[InstalledPackage]:
        """
        composer show：任何非 0 退出码都视为失败。
        """
        result = self.execute(project_path, ["show", "--format=json", "--no-interaction"])
        if result.exit_code != 0:
            raise self._failure(result, "show")

        data = self._decode_json(result, "show")
        return [_installed_from_raw(e) for e in _installed_list(data)]

    def audit_packages(self, project_path: str | Path) -> SecurityAdvisorySet:
        """
        composer audit：退出码 0/1 均为成功；输出无法解析时降级为空结果而非报错。
        """
        result = self.execute(project_path, ["audit", "--format=json", "--no-interaction"])
        if result.exit_code > 1:
            raise self._failure(result, "audit")

        try:
            data = json.loads(result.stdout)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("composer audit produced no JSON output; security audit skipped")
            return SecurityAdvisorySet(advisories=[], available=False)

        abandoned = data.get("abandoned")
        return SecurityAdvisorySet(
            advisories=_flatten_advisories(data.get("advisories")),
            abandoned=abandoned if isinstance(abandoned, dict) else {},
        )

    def validate_project(self, project_path: str | Path) -> ValidationResult:
        """
        composer validate --strict：退出码 0 即有效，错误/警告来自文本输出。
        """
        result = self.execute(project_path, ["validate", "--no-interaction", "--strict"])
        return self._validation_parser.parse(result.text, exit_code=result.exit_code)

    def get_dependents(self, project_path: str | Path, package_name: str) -> DependentsResult:
        """
        composer depends <package>：列出依赖该包的已安装包（排除自身）。
        """
        result = self.execute(project_path, ["depends", package_name, "--no-interaction"])
        dependents = self._dependents_parser.parse(result.text, package_name=package_name)
        return DependentsResult(package=package_name, dependents=dependents)
