from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> None:
    """
    将日志输出到 stderr（stdout 留给 MCP 协议与命令输出）。
    """
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    root = logging.getLogger("composer_lens")
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    root.propagate = False
