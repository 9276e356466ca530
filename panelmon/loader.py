"""Load state machine with stale-response protection."""

import logging
from enum import Enum
from typing import Any, Callable, NamedTuple

from PySide6.QtCore import QObject, QThreadPool, Signal

from panelmon.workers import LoadWorker

logger = logging.getLogger(__name__)


class ViewMode(Enum):
    OVERVIEW = "overview"
    DETAIL = "detail"
    SHARED_OVERVIEW = "shared_overview"
    SHARED_DETAIL = "shared_detail"

    @property
    def shared(self) -> bool:
        return self in (ViewMode.SHARED_OVERVIEW, ViewMode.SHARED_DETAIL)

    @property
    def detail(self) -> bool:
        return self in (ViewMode.DETAIL, ViewMode.SHARED_DETAIL)

    @classmethod
    def select(cls, node_id: int | None, shared: bool) -> "ViewMode":
        """Pick the mode from the route's node id and the auth context."""
        if node_id is None:
            return cls.SHARED_OVERVIEW if shared else cls.OVERVIEW
        return cls.SHARED_DETAIL if shared else cls.DETAIL


class ViewState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class LoadKey(NamedTuple):
    """What a load was requested for: mode, node and range."""

    mode: ViewMode
    node_id: int | None
    range_key: str


class LoadGuard:
    """Generation counter deciding whether a response is still wanted.

    Every ``begin`` supersedes all earlier loads; a response is applied only
    if its generation is the latest one handed out.
    """

    def __init__(self):
        self._generation_id = 0
        self._key: LoadKey | None = None

    @property
    def generation_id(self) -> int:
        return self._generation_id

    @property
    def current_key(self) -> LoadKey | None:
        return self._key

    def begin(self, key: LoadKey) -> int:
        self._generation_id += 1
        self._key = key
        return self._generation_id

    def invalidate(self) -> None:
        """Drop interest in any in-flight load without starting a new one."""
        self._generation_id += 1
        self._key = None

    def is_current(self, generation_id: int) -> bool:
        return generation_id == self._generation_id


class ViewLoader(QObject):
    """Runs view loads on the thread pool and forwards only current results.

    Superseded loads are not cancelled; their results are dropped when they
    arrive.
    """

    loaded = Signal(object, object)  # (LoadKey, result)
    failed = Signal(object, str)  # (LoadKey, message)
    state_changed = Signal(object)  # ViewState

    def __init__(self, thread_pool: QThreadPool | None = None, parent=None):
        super().__init__(parent)
        self.thread_pool = thread_pool if thread_pool is not None else QThreadPool.globalInstance()
        self.guard = LoadGuard()
        self.state = ViewState.IDLE
        self._keys: dict[int, LoadKey] = {}

    def load(self, key: LoadKey, fn: Callable[[], Any]) -> int:
        """Start a load for ``key``; returns its generation id."""
        generation_id = self.guard.begin(key)
        self._keys[generation_id] = key
        self._set_state(ViewState.LOADING)

        worker = LoadWorker(fn, generation_id, description=f"{key.mode.value}:{key.node_id}:{key.range_key}")
        worker.signals.loaded.connect(self._on_loaded)
        worker.signals.failed.connect(self._on_failed)
        worker.signals.finished.connect(self._on_finished)

        logger.debug("Load scheduled: key=%s, generation_id=%d", key, generation_id)
        self.thread_pool.start(worker)
        return generation_id

    def cancel(self) -> None:
        """Forget in-flight loads, e.g. when the view is closing."""
        self.guard.invalidate()
        self._set_state(ViewState.IDLE)

    def _on_loaded(self, result, generation_id):
        key = self._keys.get(generation_id)
        if not self.guard.is_current(generation_id):
            logger.debug(
                "Ignoring stale result: key=%s, generation_id=%d (current=%d)",
                key,
                generation_id,
                self.guard.generation_id,
            )
            return
        self._set_state(ViewState.READY)
        self.loaded.emit(key, result)

    def _on_failed(self, message, generation_id):
        key = self._keys.get(generation_id)
        if not self.guard.is_current(generation_id):
            logger.debug("Ignoring stale failure: key=%s, generation_id=%d", key, generation_id)
            return
        # Prior state stays on screen, so the view is usable again
        self._set_state(ViewState.READY)
        self.failed.emit(key, message)

    def _on_finished(self, generation_id):
        self._keys.pop(generation_id, None)

    def _set_state(self, state: ViewState) -> None:
        if state is not self.state:
            self.state = state
            self.state_changed.emit(state)
