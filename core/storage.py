"""
SQLite storage module for the Pomodoro Tasks application.
Keeps settings, the task list and the active task as JSON blobs
in a small key/value table.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, List, Optional

from .models import Task, TimerSettings, clean_settings_changes

logger = logging.getLogger(__name__)

APP_DIR_NAME = 'PomodoroTasks'
DATA_DIR_ENV = 'POMODORO_DATA_DIR'

# Blob keys
SETTINGS_KEY = 'settings'
TASKS_KEY = 'tasks'
ACTIVE_TASK_KEY = 'activeTaskId'

# Persisted settings field names, in blob order
_SETTINGS_FIELDS = {
    'workDuration': 'work_duration',
    'breakDuration': 'break_duration',
    'longBreakDuration': 'long_break_duration',
    'sessionsBeforeLongBreak': 'sessions_before_long_break',
    'notificationSound': 'notification_sound',
    'volume': 'volume',
}


def get_app_data_dir() -> Path:
    """
    Get the appropriate application data directory based on OS.
    Creates the directory if it doesn't exist.
    """
    override = os.environ.get(DATA_DIR_ENV, '').strip()
    if override:
        app_dir = Path(override).expanduser()
        app_dir.mkdir(parents=True, exist_ok=True)
        return app_dir

    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    elif os.name == 'posix':
        # macOS uses ~/Library/Application Support, Linux uses ~/.local/share
        if os.uname().sysname == 'Darwin':
            base = Path.home() / 'Library' / 'Application Support'
        else:
            base = Path(os.environ.get('XDG_DATA_HOME', Path.home() / '.local' / 'share'))
    else:
        base = Path.home()

    app_dir = base / APP_DIR_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


# ==================== Blob codecs ====================

def encode_settings(settings: TimerSettings) -> str:
    """Serialize settings to the persisted JSON layout."""
    record = {}
    for blob_key, attr in _SETTINGS_FIELDS.items():
        value = getattr(settings, attr)
        record[blob_key] = value.value if attr == 'notification_sound' else value
    return json.dumps(record)


def decode_settings(blob: Optional[str]) -> TimerSettings:
    """
    Parse a settings blob.
    Missing, corrupt or invalid fields fall back to the defaults.
    """
    settings = TimerSettings()
    record = _load_json(blob, SETTINGS_KEY)
    if not isinstance(record, dict):
        if record is not None:
            logger.warning("Settings blob is not an object; using defaults")
        return settings

    changes = {
        _SETTINGS_FIELDS[key]: value
        for key, value in record.items()
        if key in _SETTINGS_FIELDS
    }
    for attr, value in clean_settings_changes(changes).items():
        setattr(settings, attr, value)
    return settings


def encode_tasks(tasks: List[Task]) -> str:
    """Serialize the ordered task list."""
    return json.dumps([_task_to_record(task) for task in tasks])


def decode_tasks(blob: Optional[str]) -> List[Task]:
    """
    Parse a task list blob.
    Malformed entries are skipped; a malformed blob yields an empty list.
    """
    records = _load_json(blob, TASKS_KEY)
    if not isinstance(records, list):
        if records is not None:
            logger.warning("Task blob is not a list; starting empty")
        return []

    tasks = []
    for record in records:
        task = _record_to_task(record)
        if task is None:
            logger.warning("Skipping malformed task record %r", record)
            continue
        tasks.append(task)
    return tasks


def encode_active_task_id(task_id: Optional[str]) -> str:
    return json.dumps(task_id)


def decode_active_task_id(blob: Optional[str]) -> Optional[str]:
    value = _load_json(blob, ACTIVE_TASK_KEY)
    if value is None or isinstance(value, str):
        return value
    logger.warning("Active task blob is not a string; ignoring")
    return None


def _load_json(blob: Optional[str], key: str) -> Any:
    if blob is None:
        return None
    try:
        return json.loads(blob)
    except (TypeError, ValueError):
        logger.warning("Corrupt %s blob; falling back to defaults", key)
        return None


def _task_to_record(task: Task) -> dict:
    return {
        'id': task.id,
        'text': task.text,
        'done': task.done,
        'parentId': task.parent_id,
    }


def _record_to_task(record: Any) -> Optional[Task]:
    """Convert a persisted record to a Task, or None if it is unusable."""
    if not isinstance(record, dict):
        return None
    task_id = record.get('id')
    text = record.get('text')
    parent_id = record.get('parentId')
    if not isinstance(task_id, str) or not task_id:
        return None
    if not isinstance(text, str) or not text.strip():
        return None
    if parent_id is not None and not isinstance(parent_id, str):
        parent_id = None
    return Task(
        id=task_id,
        text=text,
        done=bool(record.get('done', False)),
        parent_id=parent_id
    )


class Storage:
    """
    Persistence store.
    A get/set interface over string blobs plus typed helpers.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize storage with database path.

        Args:
            db_path: Optional custom path for database file.
                    If None, uses default app data directory.
        """
        if db_path is None:
            db_path = str(get_app_data_dir() / 'pomodoro.db')

        self.db_path = db_path
        try:
            self._init_database()
        except sqlite3.DatabaseError:
            logger.warning("Database %s is unreadable; starting fresh", db_path)
            self._recover()

    def _recover(self):
        """Move a corrupt database aside and create an empty one."""
        try:
            os.replace(self.db_path, self.db_path + '.corrupt')
            self._init_database()
            return
        except (OSError, sqlite3.Error):
            logger.exception("Could not recreate %s; using an in-memory store", self.db_path)

        # Every connection to ':memory:' is a fresh database, so nothing persists
        self.db_path = ':memory:'
        self._init_database()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise e
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema if tables don't exist."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')

    # ==================== Blob access ====================

    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if absent."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT value FROM blobs WHERE key = ?', (key,))
            row = cursor.fetchone()
            return row['value'] if row else None

    def set(self, key: str, blob: str):
        """Store a blob under key, replacing any previous value."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT OR REPLACE INTO blobs (key, value)
                VALUES (?, ?)
            ''', (key, blob))

    def _get_or_none(self, key: str) -> Optional[str]:
        try:
            return self.get(key)
        except sqlite3.Error:
            logger.exception("Could not read %s from %s", key, self.db_path)
            return None

    # ==================== Settings ====================

    def load_settings(self) -> TimerSettings:
        return decode_settings(self._get_or_none(SETTINGS_KEY))

    def save_settings(self, settings: TimerSettings):
        self.set(SETTINGS_KEY, encode_settings(settings))

    # ==================== Tasks ====================

    def load_tasks(self) -> List[Task]:
        return decode_tasks(self._get_or_none(TASKS_KEY))

    def save_tasks(self, tasks: List[Task]):
        self.set(TASKS_KEY, encode_tasks(tasks))

    # ==================== Active task ====================

    def load_active_task_id(self) -> Optional[str]:
        return decode_active_task_id(self._get_or_none(ACTIVE_TASK_KEY))

    def save_active_task_id(self, task_id: Optional[str]):
        self.set(ACTIVE_TASK_KEY, encode_active_task_id(task_id))
