from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from composer_lens.errors import MalformedManifest, ManifestNotFound

MANIFEST_NAME = "composer.json"


def read_composer_json(path: str | Path) -> Any:
    """
    读取并解析 composer.json，返回解码后的 JSON 文档。
    """
    p = Path(path)
    if not p.is_file():
        raise ManifestNotFound(str(p), reason="File not found")
    if not os.access(p, os.R_OK):
        raise ManifestNotFound(str(p), reason="File not readable")

    try:
        content = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestNotFound(str(p), reason=f"Failed to read file ({exc})") from exc

    try:
        return json.loads(content)
    except ValueError as exc:
        raise MalformedManifest(str(p), str(exc)) from exc


def load_project_manifest(project_dir: Path) -> dict[str, Any]:
    """
    读取项目根目录下的 composer.json；顶层必须是 JSON 对象。
    """
    manifest_path = project_dir / MANIFEST_NAME
    if not manifest_path.is_file():
        raise ManifestNotFound(str(project_dir))

    data = read_composer_json(manifest_path)
    if not isinstance(data, dict):
        raise MalformedManifest(str(manifest_path), "top-level value must be an object")
    return data


def count_requirements(manifest: dict[str, Any], section: str) -> int:
    """
    统计 require / require-dev 中声明的依赖数量（缺失或类型不符时为 0）。
    """
    value = manifest.get(section)
    if isinstance(value, (dict, list)):
        return len(value)
    return 0


def project_type(manifest: dict[str, Any]) -> str:
    value = manifest.get("type")
    return value if isinstance(value, str) else "library"
