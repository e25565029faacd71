from __future__ import annotations

from pathlib import Path

import pytest

from composer_lens.config import load_config


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("COMPOSER_LENS_REGISTRY_URL", "COMPOSER_LENS_COMPOSER_BINARY", "COMPOSER_LENS_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    没有配置文件与环境变量时使用默认值。
    """
    monkeypatch.chdir(tmp_path)
    cfg = load_config(None)
    assert cfg.registry.base_url == "https://packagist.org"
    assert cfg.registry.timeout_s == 30.0
    assert cfg.composer_binary == "composer"
    assert cfg.process_timeout_s == 300.0
    assert cfg.log_level == "WARNING"


def test_load_config_finds_default_toml_in_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    未显式指定 config_path 时，应在当前目录自动探测默认配置文件。
    """
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".composer-lens.toml").write_text(
        """
[composer_lens]
registry_url = "https://mirror.test"
timeout_s = 5
composer_binary = "/opt/composer.phar"
process_timeout_s = 60
log_level = "debug"
        """.strip()
        + "\n",
        encoding="utf-8",
    )

    cfg = load_config(None)
    assert cfg.registry.base_url == "https://mirror.test"
    assert cfg.registry.timeout_s == 5.0
    assert cfg.composer_binary == "/opt/composer.phar"
    assert cfg.process_timeout_s == 60.0
    assert cfg.log_level == "DEBUG"


def test_load_config_default_yaml_when_toml_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "composer-lens.yaml").write_text(
        """
composer_lens:
  registry_url: "https://yaml.test"
  user_agent: "custom/1.0"
        """.strip()
        + "\n",
        encoding="utf-8",
    )

    cfg = load_config(None)
    assert cfg.registry.base_url == "https://yaml.test"
    assert cfg.registry.user_agent == "custom/1.0"


def test_load_config_yaml_non_dict_is_ignored(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    YAML 顶层非 dict 时应被忽略并回退到默认值。
    """
    monkeypatch.chdir(tmp_path)
    (tmp_path / "composer-lens.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
    cfg = load_config(None)
    assert cfg.registry.base_url == "https://packagist.org"


def test_load_config_env_overrides_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    环境变量的配置应覆盖配置文件中的同名字段。
    """
    monkeypatch.chdir(tmp_path)
    cfg_path = tmp_path / "custom.toml"
    cfg_path.write_text('[composer_lens]\nregistry_url = "https://file.test"\ncomposer_binary = "file-composer"\n', encoding="utf-8")
    monkeypatch.setenv("COMPOSER_LENS_REGISTRY_URL", "https://env.test")
    monkeypatch.setenv("COMPOSER_LENS_COMPOSER_BINARY", "env-composer")
    monkeypatch.setenv("COMPOSER_LENS_LOG_LEVEL", "info")

    cfg = load_config(str(cfg_path))
    assert cfg.registry.base_url == "https://env.test"
    assert cfg.composer_binary == "env-composer"
    assert cfg.log_level == "INFO"


def test_default_config_files_prefer_hidden_toml(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """
    同时存在多个默认配置文件时，隐藏文件优先，且 TOML 优先于 YAML。
    """
    monkeypatch.chdir(tmp_path)
    (tmp_path / "composer-lens.toml").write_text('[composer_lens]\nregistry_url = "https://plain.test"\n', encoding="utf-8")
    (tmp_path / ".composer-lens.yml").write_text("composer_lens:\n  registry_url: https://hidden-yml.test\n", encoding="utf-8")
    assert load_config(None).registry.base_url == "https://hidden-yml.test"

    (tmp_path / ".composer-lens.toml").write_text('[composer_lens]\nregistry_url = "https://hidden.test"\n', encoding="utf-8")
    assert load_config(None).registry.base_url == "https://hidden.test"


def test_unknown_config_suffix_is_ignored(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    cfg_path = tmp_path / "settings.ini"
    cfg_path.write_text("[composer_lens]\nregistry_url = https://ini.test\n", encoding="utf-8")
    assert load_config(str(cfg_path)).registry.base_url == "https://packagist.org"
