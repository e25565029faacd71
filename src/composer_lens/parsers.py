from __future__ import annotations

import re
from typing import Protocol

from composer_lens.models import Dependent, ValidationResult

_ERROR_RE = re.compile(r"\[error\]\s+(.+)", re.IGNORECASE)
_WARNING_RE = re.compile(r"\[warning\]\s+(.+)", re.IGNORECASE)
_DEPENDENT_RE = re.compile(r"^([a-z0-9_.-]+/[a-z0-9_.-]+)\s+(\S+)", re.IGNORECASE)


class ValidationOutputParser(Protocol):
    def parse(self, output: str, *, exit_code: int) -> ValidationResult: ...


class DependentsOutputParser(Protocol):
    def parse(self, output: str, *, package_name: str) -> list[Dependent]: ...


class RegexValidationParser:
    """
    从 composer validate 的文本输出中提取 [error]/[warning] 行。
    """

    def parse(self, output: str, *, exit_code: int) -> ValidationResult:
        errors = [m.strip() for m in _ERROR_RE.findall(output)]
        warnings = [m.strip() for m in _WARNING_RE.findall(output)]
        valid = exit_code == 0
        return ValidationResult(
            valid=valid,
            errors=[] if valid else errors,
            warnings=warnings,
            output=output,
        )


class RegexDependentsParser:
    """
    解析 composer depends 输出中形如 `vendor/name <version> ...` 的行。
    """

    def parse(self, output: str, *, package_name: str) -> list[Dependent]:
        dependents: list[Dependent] = []
        for line in output.splitlines():
            m = _DEPENDENT_RE.match(line.strip())
            if m is None:
                continue
            if m.group(1).lower() == package_name.lower():
                continue
            dependents.append(Dependent(name=m.group(1), version=m.group(2)))
        return dependents
