from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

from composer_lens.composer import DEFAULT_TIMEOUT_S
from composer_lens.registry_client import RegistrySettings


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    composer-lens 的运行配置（可来自配置文件、环境变量与 CLI 参数合并）。
    """

    registry: RegistrySettings = field(default_factory=RegistrySettings)
    composer_binary: str = "composer"
    process_timeout_s: float = DEFAULT_TIMEOUT_S
    log_level: str = "WARNING"


PROJECT_NAME = "composer-lens"
CONFIG_SECTION = "composer_lens"

# 查找顺序：隐藏文件优先，同名时 TOML 优先于 YAML
DEFAULT_CONFIG_FILES: tuple[str, ...] = tuple(
    f"{prefix}{PROJECT_NAME}{suffix}" for prefix in (".", "") for suffix in (".toml", ".yaml", ".yml")
)


def _find_default_config_file(cwd: Path) -> Path | None:
    return next((cwd / name for name in DEFAULT_CONFIG_FILES if (cwd / name).is_file()), None)


def _parse_toml(text: str) -> Any:
    return tomllib.loads(text)


def _parse_yaml(text: str) -> Any:
    import yaml

    return yaml.safe_load(text)


_PARSERS: dict[str, Callable[[str], Any]] = {
    ".toml": _parse_toml,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


def _read_tool_section(path: Path) -> dict[str, Any]:
    """
    读取配置文件中的 [composer_lens] 表；文件格式未知或结构不符时返回空字典。
    """
    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        return {}
    data = parse(path.read_text(encoding="utf-8"))
    section = data.get(CONFIG_SECTION) if isinstance(data, dict) else None
    return section if isinstance(section, dict) else {}


def load_config(config_path: str | None) -> AppConfig:
    """
    从配置文件与环境变量加载 AppConfig（环境变量优先于配置文件）。
    """
    path = Path(config_path) if config_path else _find_default_config_file(Path.cwd())
    tool_cfg = _read_tool_section(path) if path is not None else {}

    defaults = RegistrySettings()
    registry = RegistrySettings(
        base_url=(
            os.environ.get("COMPOSER_LENS_REGISTRY_URL")
            or str(tool_cfg.get("registry_url") or "")
            or defaults.base_url
        ),
        timeout_s=float(tool_cfg.get("timeout_s") or defaults.timeout_s),
        user_agent=str(tool_cfg.get("user_agent") or defaults.user_agent),
    )

    composer_binary = (
        os.environ.get("COMPOSER_LENS_COMPOSER_BINARY") or str(tool_cfg.get("composer_binary") or "") or "composer"
    )
    process_timeout_s = float(tool_cfg.get("process_timeout_s") or DEFAULT_TIMEOUT_S)
    log_level = os.environ.get("COMPOSER_LENS_LOG_LEVEL") or str(tool_cfg.get("log_level") or "") or "WARNING"

    return AppConfig(
        registry=registry,
        composer_binary=composer_binary,
        process_timeout_s=process_timeout_s,
        log_level=log_level.upper(),
    )
