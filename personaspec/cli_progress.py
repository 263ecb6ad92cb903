"""CLI progress helpers."""

from __future__ import annotations

import os
import shutil
import sys
import threading
import time
from typing import TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"


def progress_line(label: str, start: float | None = None, done: bool = False) -> tuple[str, float]:
    now = time.monotonic()
    origin = now if start is None else start
    elapsed = max(0, int(now - origin))
    minutes, seconds = divmod(elapsed, 60)
    suffix = "done" if done else "ctrl-c to abort"
    return f"• {label} ({minutes}m {seconds:02d}s • {suffix})", origin


class ProgressTicker:
    """Single status line that ticks while a blocking call runs.

    On a non-tty stream it writes one start line and one done line.
    """

    def __init__(
        self,
        label: str,
        *,
        done_label: str = "Done in",
        stream: TextIO | None = None,
        interval_s: float = 1.0,
    ) -> None:
        self.label = label
        self.done_label = done_label
        self.start: float | None = None
        self.stream = stream or sys.stdout
        self.interval_s = max(0.2, interval_s)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self._started = False

    def __enter__(self) -> "ProgressTicker":
        self.start_ticking()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop(done=exc_type is None)
        return False

    def start_ticking(self) -> None:
        line, self.start = progress_line(self.label, self.start)
        if not self._enabled:
            self._write(f"{_BOLD}{line}{_RESET}\n")
            return
        self._write(f"\r{_BOLD}{line}{_RESET}\033[K")
        self._started = True
        self._thread.start()

    def stop(self, done: bool = True) -> None:
        if self._started:
            self._stop.set()
            self._thread.join()
        if done:
            elapsed = max(0, int(time.monotonic() - (self.start or time.monotonic())))
            width = _resolve_terminal_width(self.stream, 100)
            line = f"{_GREY}{_separator_line(f'{self.done_label} {_format_duration(elapsed)}', width)}{_RESET}"
        elif self._enabled:
            line = ""
        else:
            return
        if self._enabled:
            self._write(f"\r{line}\033[K\n")
        else:
            self._write(f"{line}\n")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            line, _ = progress_line(self.label, self.start)
            self._write(f"\r{_BOLD}{line}{_RESET}\033[K")

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    return f"{'─' * left}{content}{'─' * (remaining - left)}"


def _resolve_terminal_width(stream: TextIO | None, fallback: int) -> int:
    if stream and hasattr(stream, "fileno"):
        try:
            return os.get_terminal_size(stream.fileno()).columns
        except (OSError, ValueError):
            pass
    return shutil.get_terminal_size(fallback=(fallback, 20)).columns
