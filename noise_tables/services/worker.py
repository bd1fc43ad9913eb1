from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from ..errors import ProcessingError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import LOGGER_NAME
from ..models.config_models import RunConfig
from ..models.processing_result import BatchResult
from .orchestrator import process_all
from .progress import ChannelLogHandler, ProgressChannel

"""Background batch worker.

One worker runs one ``process_all`` on a dedicated thread. The caller keeps
its own thread free: it reads log lines, percent updates and the final
result from the worker's ProgressChannel and may request cancellation at any
time. The worker owns every sheet it touches, so the grid model needs no
locking.
"""

__all__ = [
    "BatchWorker",
]

logger = logging.getLogger(__name__)


class BatchWorker:
    """Runs a single batch in a background thread.

    Usage::

        worker = BatchWorker(directory, files, config).start()
        event = worker.channel.get(timeout=0.1)  # poll from the caller's loop
        result = worker.wait()
    """

    def __init__(
        self,
        directory: Path,
        files: Iterable[Path] | None = None,
        config: RunConfig | None = None,
        channel: ProgressChannel | None = None,
        error_log: ErrorLogBuffer | None = None,
        forward_logs: bool = True,
    ) -> None:
        self.directory = directory
        self.files = list(files) if files is not None else None
        self.config = config or RunConfig()
        self.channel = channel or ProgressChannel()
        self.error_log = error_log
        self.forward_logs = forward_logs
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._result: BatchResult | None = None
        self._error: Exception | None = None

    def start(self) -> BatchWorker:
        if self._thread is not None:
            raise RuntimeError("worker already started")
        self._thread = threading.Thread(target=self._run, name="noise-tables-worker", daemon=True)
        self._thread.start()
        return self

    def _run(self) -> None:
        package_logger = logging.getLogger(LOGGER_NAME)
        handler: ChannelLogHandler | None = None
        previous_level = package_logger.level
        if self.forward_logs:
            handler = ChannelLogHandler(self.channel)
            package_logger.addHandler(handler)
            if previous_level == logging.NOTSET:
                package_logger.setLevel(logging.INFO)
        try:
            self._result = process_all(
                self.directory,
                self.files,
                self.config,
                progress=self.channel,
                cancel=self._cancel,
                error_log=self.error_log,
            )
        except ProcessingError as e:
            self._error = e
            logger.error("batch aborted: %s", e)
        except Exception as e:
            self._error = e
            logger.exception("batch aborted: unexpected error")
        finally:
            if handler is not None:
                package_logger.removeHandler(handler)
                package_logger.setLevel(previous_level)
            self.channel.finished(self._result)

    def cancel(self) -> None:
        """Request cooperative cancellation (takes effect at the next file or row)."""
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> BatchResult | None:
        """Join the worker thread.

        Returns:
            The BatchResult, None if the thread is still running after ``timeout``

        Raises:
            ProcessingError: The run was aborted (e.g. InvalidPath)
            Exception: Any unexpected error raised on the worker thread
        """
        if self._thread is None:
            raise RuntimeError("worker not started")
        self._thread.join(timeout)
        if self._thread.is_alive():
            return None
        if self._error is not None:
            raise self._error
        return self._result
