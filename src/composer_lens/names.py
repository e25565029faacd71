from __future__ import annotations

import re

PACKAGE_NAME_PATTERN = r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9]([_.-]?[a-z0-9]+)*$"

_PACKAGE_NAME_RE = re.compile(PACKAGE_NAME_PATTERN)


def is_valid_package_name(name: str) -> bool:
    """
    判断是否为合法的 vendor/name 包标识。
    """
    return bool(_PACKAGE_NAME_RE.match(name))
