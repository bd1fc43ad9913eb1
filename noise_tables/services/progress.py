from __future__ import annotations

import logging
import queue
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..logging.init import LabeledFormatter

"""Progress reporting.

- ProgressTracker: tqdm file progress bar for the CLI (TTY only)
- ProgressChannel: thread-safe bounded queue carrying log lines, percent updates
  and the final result from the worker thread back to its caller
- ChannelLogHandler: logging handler that forwards package log records into a
  ProgressChannel as lines
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "EventKind",
    "ProgressEvent",
    "ProgressChannel",
    "ChannelLogHandler",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and a progress bar should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker using tqdm for file processing.

    In non-TTY environments (CI, redirected output) no bar is created to avoid
    ANSI control sequence spam.
    """

    def __init__(self, total_files: int, *, description: str = "Processing files") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class EventKind(Enum):
    LINE = "line"
    PERCENT = "percent"
    FINISHED = "finished"


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    text: str | None = None
    percent: float | None = None
    result: Any = None  # BatchResult on FINISHED


class ProgressChannel:
    """Bounded, thread-safe event queue between the worker and its caller.

    ``publish`` never blocks: when the queue is full the oldest event is
    dropped to make room.
    """

    def __init__(self, maxsize: int = 1000) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._queue: queue.Queue[ProgressEvent] = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.dropped = 0
        self.last_percent = 0.0

    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            while True:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                    except queue.Empty:
                        pass

    def line(self, text: str) -> None:
        self.publish(ProgressEvent(EventKind.LINE, text=text))

    def percent(self, value: float) -> None:
        value = max(0.0, min(100.0, float(value)))
        self.last_percent = value
        self.publish(ProgressEvent(EventKind.PERCENT, percent=value))

    def finished(self, result: Any) -> None:
        self.publish(ProgressEvent(EventKind.FINISHED, result=result))

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Next event, None when nothing arrived within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[ProgressEvent]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class ChannelLogHandler(logging.Handler):
    """Forwards formatted log records to a ProgressChannel as lines."""

    def __init__(self, channel: ProgressChannel, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.channel = channel
        self.setFormatter(LabeledFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.channel.line(self.format(record))
        except Exception:  # pragma: no cover (logging must never raise)
            self.handleError(record)
