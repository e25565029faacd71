from __future__ import annotations

from pathlib import Path

import pytest

from composer_lens.errors import MalformedManifest, ManifestNotFound
from composer_lens.manifest import count_requirements, load_project_manifest, project_type, read_composer_json


def test_read_composer_json_returns_document(tmp_path: Path) -> None:
    """
    读取 composer.json 应返回解码后的文档。
    """
    path = tmp_path / "composer.json"
    path.write_text('{"name":"acme/app","require":{"php":"^8.4"}}', encoding="utf-8")
    doc = read_composer_json(path)
    assert doc["name"] == "acme/app"
    assert doc["require"] == {"php": "^8.4"}


def test_read_composer_json_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ManifestNotFound):
        read_composer_json(tmp_path / "composer.json")


def test_read_composer_json_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "composer.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedManifest) as info:
        read_composer_json(path)
    assert str(path) in str(info.value)


def test_load_project_manifest_requires_object(tmp_path: Path) -> None:
    (tmp_path / "composer.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(MalformedManifest):
        load_project_manifest(tmp_path)


def test_load_project_manifest_missing(tmp_path: Path) -> None:
    with pytest.raises(ManifestNotFound):
        load_project_manifest(tmp_path)


def test_counts_and_type_defaults() -> None:
    """
    缺失的 require 段计为 0；type 缺失或非字符串时默认为 library。
    """
    manifest = {"require": {"php": "^8.2", "psr/log": "^3"}, "require-dev": [], "type": 5}
    assert count_requirements(manifest, "require") == 2
    assert count_requirements(manifest, "require-dev") == 0
    assert count_requirements({}, "require") == 0
    assert project_type(manifest) == "library"
    assert project_type({"type": "project"}) == "project"
