from __future__ import annotations

import threading
from typing import Dict, Optional

from rich.console import Console
from rich.text import Text


class RichLogger:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False, scope: str = ""):
        self.console = console or Console(stderr=True)
        self.verbose = verbose
        self.scope = scope
        self.counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def child(self, scope: str) -> "RichLogger":
        name = f"{self.scope}.{scope}" if self.scope else scope
        logger = RichLogger(console=self.console, verbose=self.verbose, scope=name)
        logger.counts = self.counts
        logger._lock = self._lock
        return logger

    def _emit(self, level: str, msg: str, style: str) -> None:
        with self._lock:
            self.counts[level] = self.counts.get(level, 0) + 1
            tag = Text(level.ljust(5), style=style)
            if self.scope:
                self.console.log(tag, Text(f"[{self.scope}]", style="dim"), Text(msg))
            else:
                self.console.log(tag, Text(msg))

    def info(self, msg: str) -> None:
        self._emit("INFO", msg, "bold green")

    def warn(self, msg: str) -> None:
        self._emit("WARN", msg, "bold yellow")

    def error(self, msg: str) -> None:
        self._emit("ERROR", msg, "bold red")

    def debug(self, msg: str) -> None:
        if not self.verbose:
            return
        self._emit("DEBUG", msg, "bold blue")

    def done(self, msg: str) -> None:
        self._emit("DONE", msg, "bold cyan")
