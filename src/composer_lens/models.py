from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UpdateType(str, Enum):
    """
    升级类型（按语义化版本的首个差异分量判定）。
    """

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    UNKNOWN = "unknown"


class LatestStatus(str, Enum):
    """
    composer outdated 给出的 latest-status 提示。
    """

    UP_TO_DATE = "up-to-date"
    SEMVER_SAFE_UPDATE = "semver-safe-update"
    UPDATE_POSSIBLE = "update-possible"


class SuggestionType(str, Enum):
    VALIDATION = "validation"
    OUTDATED = "outdated"
    SECURITY = "security"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class InstalledPackage:
    """
    composer show/outdated 输出中的一个已安装包（保留原始条目）。
    """

    name: str
    version: str
    latest: str | None
    latest_status: str | None
    description: str | None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_outdated(self) -> bool:
        return self.latest is not None and self.latest != self.version


@dataclass(frozen=True, slots=True)
class OutdatedResult:
    """
    composer outdated 的结果：全部已安装包与过滤后的过期集合。
    """

    installed: list[InstalledPackage]
    outdated: dict[str, InstalledPackage]


@dataclass(frozen=True, slots=True)
class UpgradeCandidate:
    """
    一条升级建议。
    """

    package: str
    current: str
    latest: str
    type: UpdateType
    status: str
    description: str


@dataclass(frozen=True, slots=True)
class UpgradePlan:
    """
    suggest_upgrades 的结果（已排序的候选 + 是否包含 major）。
    """

    upgrades: list[UpgradeCandidate]
    included_major: bool

    def count(self, update_type: UpdateType) -> int:
        return sum(1 for u in self.upgrades if u.type == update_type)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    composer validate 的结果。valid 为 True 时 errors 必为空。
    """

    valid: bool
    errors: list[str]
    warnings: list[str]
    output: str


@dataclass(frozen=True, slots=True)
class SecurityAdvisorySet:
    """
    composer audit 的结果。available 为 False 表示审计不可用（降级为空结果）。
    """

    advisories: list[dict[str, Any]]
    abandoned: dict[str, Any] = field(default_factory=dict)
    available: bool = True

    @property
    def total(self) -> int:
        return len(self.advisories)

    @property
    def has_vulnerabilities(self) -> bool:
        return self.total > 0


@dataclass(frozen=True, slots=True)
class Dependent:
    name: str
    version: str


@dataclass(frozen=True, slots=True)
class DependentsResult:
    package: str
    dependents: list[Dependent]

    @property
    def count(self) -> int:
        return len(self.dependents)


@dataclass(frozen=True, slots=True)
class Suggestion:
    """
    报告中的一条带严重级别的建议；context 为附加字段（details/packages）。
    """

    type: SuggestionType
    severity: Severity
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DependencyCounts:
    total: int
    require: int
    require_dev: int


@dataclass(frozen=True, slots=True)
class ProjectReport:
    """
    analyze_project 的完整报告（每次调用新建，不缓存）。
    """

    name: str | None
    path: str
    type: str
    validation: ValidationResult
    dependencies: DependencyCounts
    outdated: list[InstalledPackage]
    security: SecurityAdvisorySet
    suggestions: list[Suggestion]
