from __future__ import annotations

import re
from typing import Iterable

from packaging.version import InvalidVersion, Version

from composer_lens.models import LatestStatus, UpdateType, UpgradeCandidate

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")

_CLASSIFIABLE_STATUSES = frozenset({LatestStatus.SEMVER_SAFE_UPDATE.value, LatestStatus.UPDATE_POSSIBLE.value})

UPDATE_PRIORITY: dict[UpdateType, int] = {
    UpdateType.PATCH: 1,
    UpdateType.MINOR: 2,
    UpdateType.MAJOR: 3,
}


def parse_semver(version: str) -> tuple[int, int, int] | None:
    """
    解析版本字符串开头的 major.minor.patch（忽略前导的 v）；无法解析时返回 None。
    """
    m = _SEMVER_RE.match(version.lstrip("v"))
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def classify_update(current: str, latest: str, status: str) -> UpdateType:
    """
    根据当前版本、最新版本与 composer 的 latest-status 判定升级类型。

    仅当 status 为 semver-safe-update 或 update-possible 时才尝试分类，
    其余情况（含 up-to-date 与未知值）一律返回 unknown。
    """
    if status not in _CLASSIFIABLE_STATUSES:
        return UpdateType.UNKNOWN

    current_parts = parse_semver(current)
    latest_parts = parse_semver(latest)
    if current_parts is None or latest_parts is None:
        return UpdateType.UNKNOWN

    for kind, a, b in zip((UpdateType.MAJOR, UpdateType.MINOR, UpdateType.PATCH), current_parts, latest_parts):
        if a != b:
            return kind
    return UpdateType.UNKNOWN


def sort_upgrades(upgrades: Iterable[UpgradeCandidate]) -> list[UpgradeCandidate]:
    """
    按 patch < minor < major < 其他 稳定排序（同类保持原有相对顺序）。
    """
    return sorted(upgrades, key=lambda u: UPDATE_PRIORITY.get(u.type, 4))


def _as_pep440(raw: str) -> Version | None:
    if raw.startswith("dev-"):
        return None
    text = raw[1:] if raw[:1] in {"v", "V"} else raw
    try:
        return Version(text)
    except InvalidVersion:
        return None


def sort_version_strings(raw_versions: Iterable[str]) -> list[str]:
    """
    将版本字符串按从新到旧排序；无法解析的（如 dev-main、1.x-dev）排在末尾并保持原顺序。
    """
    parsed: list[tuple[Version, str]] = []
    unparsed: list[str] = []
    for raw in raw_versions:
        v = _as_pep440(str(raw))
        if v is None:
            unparsed.append(str(raw))
        else:
            parsed.append((v, str(raw)))
    parsed.sort(key=lambda pair: pair[0], reverse=True)
    return [raw for _, raw in parsed] + unparsed


def pick_latest_version(raw_versions: Iterable[str]) -> str | None:
    """
    从版本字符串中选出“最新稳定版本”；没有稳定版时退回最大的预发布版本。
    """
    candidates: list[tuple[Version, str]] = []
    for raw in raw_versions:
        v = _as_pep440(str(raw))
        if v is not None:
            candidates.append((v, str(raw)))
    if not candidates:
        return None

    stable = [c for c in candidates if not c[0].is_prerelease and not c[0].is_devrelease]
    pool = stable or candidates
    return max(pool, key=lambda pair: pair[0])[1]
