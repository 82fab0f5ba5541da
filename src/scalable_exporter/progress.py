# scalable_exporter/progress.py

"""Progress reporting for the detail enrichment phase."""

import sys
from typing import Optional, Protocol, TextIO

from .logging_utils import log_event


class ProgressReporter(Protocol):
    def start(self, total: int) -> None:
        ...

    def update(self, completed: int, total: int) -> None:
        ...

    def stop(self) -> None:
        ...


def percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 100
    return int(completed * 100 // total)


class NullProgress:
    """Reports nothing."""

    def start(self, total: int) -> None:
        pass

    def update(self, completed: int, total: int) -> None:
        pass

    def stop(self) -> None:
        pass


class LoggingProgress:
    """Writes a log line whenever the percentage crosses a step boundary."""

    def __init__(self, step: int = 10):
        self.step = step
        self._last_reported = -1

    def start(self, total: int) -> None:
        self._last_reported = -1
        log_event("Progress", f"Loading details for {total} transactions...")

    def update(self, completed: int, total: int) -> None:
        percent = percentage(completed, total)
        bucket = percent // self.step
        if bucket != self._last_reported:
            self._last_reported = bucket
            log_event("Progress", f"{completed}/{total} ({percent}%)")

    def stop(self) -> None:
        log_event("Progress", "Detail loading finished")


class ConsoleProgressBar:
    """A single-line progress bar redrawn in place on a terminal stream."""

    def __init__(self, stream: Optional[TextIO] = None, width: int = 40):
        self.stream = stream or sys.stderr
        self.width = width
        self._active = False

    def start(self, total: int) -> None:
        self._active = True
        self._draw(0, total)

    def update(self, completed: int, total: int) -> None:
        if self._active:
            self._draw(completed, total)

    def stop(self) -> None:
        if self._active:
            # Clear the bar line
            self.stream.write("\r" + " " * (self.width + 8) + "\r")
            self.stream.flush()
            self._active = False

    def _draw(self, completed: int, total: int) -> None:
        percent = percentage(completed, total)
        filled = self.width * percent // 100
        bar = "#" * filled + "-" * (self.width - filled)
        self.stream.write(f"\r[{bar}] {percent:3d}%")
        self.stream.flush()
