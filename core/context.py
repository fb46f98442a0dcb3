"""
Application context for the Pomodoro Tasks application.

Created once at startup. Owns every piece of process-wide state: the
store, the notifier, the task id counter, the timer engine, the task
tree and the active task reference. Persists changes as they happen.
"""

import logging
import sqlite3
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from .models import Task, TaskIdGenerator, TimerSettings
from .notifications import NotificationManager
from .storage import Storage
from .task_tree import TaskTree
from .timer_engine import NotificationSink, TimerEngine

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class AppContext(QObject):
    """
    Process-scoped state shared by the UI pages.

    Signals:
        active_task_changed: Emitted with the new active task id (or None)
    """

    active_task_changed = Signal(object)

    def __init__(
        self,
        storage: Storage,
        notifier: Optional[NotificationSink] = None,
        clock: Callable[[], int] = wall_clock_ms,
        parent: Optional[QObject] = None
    ):
        """
        Build the context from persisted state.

        Args:
            storage: Persistence store; unreadable blobs fall back to defaults.
            notifier: Notification sink, a NotificationManager when omitted.
            clock: Millisecond wall clock used for task ids.
            parent: Optional Qt parent object.
        """
        super().__init__(parent)

        self.storage = storage
        self.notifier = notifier if notifier is not None else NotificationManager(parent=self)
        self.id_generator = TaskIdGenerator(clock=clock)

        self.timer_engine = TimerEngine(storage.load_settings(), self.notifier, parent=self)
        self.task_tree = TaskTree(self.id_generator, storage.load_tasks(), parent=self)

        active_id = storage.load_active_task_id()
        self._active_task_id = active_id if self.task_tree.get(active_id) else None

        self.timer_engine.settings_changed.connect(self._on_settings_changed)
        self.task_tree.changed.connect(self._on_tasks_changed)
        self.task_tree.tasks_removed.connect(self._on_tasks_removed)
        self.task_tree.task_completed.connect(self._on_task_completed)

        logger.info(
            "Context ready: %d task(s), active=%s", len(self.task_tree), self._active_task_id
        )

    # ==================== Active task ====================

    @property
    def active_task_id(self) -> Optional[str]:
        return self._active_task_id

    @property
    def active_task(self) -> Optional[Task]:
        return self.task_tree.get(self._active_task_id)

    def set_active(self, task_id: Optional[str]):
        """
        Make a task the active one.
        Selecting the current active task again clears it; unknown ids are ignored.
        """
        if task_id is not None and self.task_tree.get(task_id) is None:
            return
        if task_id == self._active_task_id:
            task_id = None
        self._set_active(task_id)

    def _set_active(self, task_id: Optional[str]):
        if task_id == self._active_task_id:
            return
        self._active_task_id = task_id
        self._persist(self.storage.save_active_task_id, task_id)
        self.active_task_changed.emit(task_id)

    def enter_focus(self) -> bool:
        """
        Start working on the active task.
        Starts the timer if it is idle. Returns False if no task is active.
        """
        if self.active_task is None:
            return False
        if self.timer_engine.is_idle:
            self.timer_engine.start()
        return True

    # ==================== Persistence ====================

    @Slot(TimerSettings)
    def _on_settings_changed(self, settings: TimerSettings):
        self._persist(self.storage.save_settings, settings)

    @Slot(object)
    def _on_tasks_changed(self, tasks: tuple):
        self._persist(self.storage.save_tasks, list(tasks))

    @Slot(object)
    def _on_tasks_removed(self, removed: list):
        if self._active_task_id in removed:
            self._set_active(None)

    @Slot(str)
    def _on_task_completed(self, task_id: str):
        if task_id == self._active_task_id:
            self._set_active(None)

    def _persist(self, save: Callable, value):
        """Write through to storage; a failed write is logged and dropped."""
        try:
            save(value)
        except (sqlite3.Error, OSError):
            logger.exception("Could not persist state with %s", save.__name__)

    def cleanup(self):
        """Stop the countdown and release notification resources."""
        self.timer_engine.cleanup()
        cleanup = getattr(self.notifier, 'cleanup', None)
        if cleanup is not None:
            cleanup()
