from __future__ import annotations

import json
import subprocess
from typing import Any

import pytest


class FakeRun:
    """
    替代 subprocess.run：按 composer 子命令返回预设输出，并记录每次调用。
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: dict[str, tuple[int, str, str]] = {}

    def set(self, subcommand: str, *, returncode: int = 0, stdout: Any = "", stderr: str = "") -> None:
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)
        self.responses[subcommand] = (returncode, stdout, stderr)

    @property
    def subcommands(self) -> list[str]:
        return [c["args"][1] for c in self.calls]

    def __call__(self, args: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append({"args": list(args), **kwargs})
        returncode, stdout, stderr = self.responses.get(args[1], (0, "", ""))
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)


@pytest.fixture
def fake_run() -> FakeRun:
    return FakeRun()
