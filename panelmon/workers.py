"""Worker classes for background load tasks."""

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QRunnable, Signal

from panelmon.api import PanelError

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for communicating between worker threads and main thread."""

    loaded = Signal(object, int)  # Emits (result, generation_id)
    failed = Signal(str, int)  # Emits (user-facing message, generation_id)
    finished = Signal(int)  # Emits generation_id when worker completes


class LoadWorker(QRunnable):
    """Worker that runs one blocking load function in a background thread."""

    def __init__(self, fn: Callable[[], Any], generation_id: int, description: str = "load"):
        super().__init__()
        self.fn = fn
        self.generation_id = generation_id
        self.description = description
        self.signals = WorkerSignals()

    def run(self):
        """Execute the load and report its outcome back to the main thread."""
        try:
            logger.debug("Worker starting: %s, generation_id=%d", self.description, self.generation_id)

            result = self.fn()

            self.signals.loaded.emit(result, self.generation_id)

            logger.debug("Worker completed: %s, generation_id=%d", self.description, self.generation_id)

        except Exception as e:
            # PanelError messages are user-facing as is
            if isinstance(e, PanelError):
                logger.info("Load failed: %s, generation_id=%d, error=%s", self.description, self.generation_id, e)
                message = str(e)
            else:
                logger.exception(
                    "Worker exception: %s, generation_id=%d, error=%s",
                    self.description,
                    self.generation_id,
                    str(e),
                )
                message = "Unexpected error"
            self.signals.failed.emit(message, self.generation_id)

        finally:
            self.signals.finished.emit(self.generation_id)
