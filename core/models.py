"""
Data models for the Pomodoro Tasks application.
Uses dataclasses for clean, type-annotated data structures.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Longest task text the input fields accept
MAX_TASK_TEXT_LENGTH = 100

# Marks a settings value that failed validation
_INVALID = object()


class ValidationError(ValueError):
    """Raised when a command carries input the core cannot accept."""


class TimerPhase(Enum):
    """Phases of the work/break cycle."""
    WORK = "work"
    BREAK = "break"
    LONG_BREAK = "long_break"

    @property
    def is_break(self) -> bool:
        return self is not TimerPhase.WORK

    @property
    def label(self) -> str:
        return {
            TimerPhase.WORK: "Focus",
            TimerPhase.BREAK: "Break",
            TimerPhase.LONG_BREAK: "Long Break",
        }[self]


class TimerStatus(Enum):
    """Run status of the countdown."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class NotificationKind(Enum):
    """Which kind of phase just finished, as far as the sound is concerned."""
    WORK = "work"
    BREAK = "break"

    @classmethod
    def for_phase(cls, phase: TimerPhase) -> "NotificationKind":
        return cls.BREAK if phase.is_break else cls.WORK


class NotificationSound(Enum):
    """Notification sounds the user can choose from."""
    CHIME = "chime"
    DIGITAL = "digital"
    RING = "ring"
    NATURE = "nature"

    @property
    def label(self) -> str:
        return {
            NotificationSound.CHIME: "Chime (Classic)",
            NotificationSound.DIGITAL: "Digital (Beep)",
            NotificationSound.RING: "Ring (Oscillating)",
            NotificationSound.NATURE: "Nature (Wood Block)",
        }[self]


class DropPosition(Enum):
    """Where a dragged task lands relative to the drop target."""
    ABOVE = "above"
    BELOW = "below"
    INSIDE = "inside"


@dataclass
class TimerSettings:
    """
    User-editable timer settings.
    Durations are stored in seconds.
    """
    work_duration: int = 25 * 60
    break_duration: int = 5 * 60
    long_break_duration: int = 15 * 60
    sessions_before_long_break: int = 4
    notification_sound: NotificationSound = NotificationSound.CHIME
    volume: float = 0.5

    def duration_for(self, phase: TimerPhase) -> int:
        """Return the configured duration of a phase in seconds."""
        if phase == TimerPhase.WORK:
            return self.work_duration
        if phase == TimerPhase.BREAK:
            return self.break_duration
        return self.long_break_duration

    def copy(self) -> "TimerSettings":
        return replace(self)


def _positive_int(value: Any) -> Any:
    """Coerce user input to a positive integer or return _INVALID."""
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return _INVALID
    elif isinstance(value, float):
        if not value.is_integer():
            return _INVALID
        value = int(value)
    elif not isinstance(value, int):
        return _INVALID
    return value if value > 0 else _INVALID


def _volume(value: Any) -> Any:
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return _INVALID
    elif not isinstance(value, (int, float)):
        return _INVALID
    value = float(value)
    # NaN fails both comparisons
    return value if 0.0 <= value <= 1.0 else _INVALID


def _sound(value: Any) -> Any:
    if isinstance(value, NotificationSound):
        return value
    try:
        return NotificationSound(value)
    except ValueError:
        return _INVALID


_SETTING_VALIDATORS = {
    'work_duration': _positive_int,
    'break_duration': _positive_int,
    'long_break_duration': _positive_int,
    'sessions_before_long_break': _positive_int,
    'notification_sound': _sound,
    'volume': _volume,
}


def clean_settings_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial settings update.

    Returns only the fields that passed validation, converted to their
    proper types. Unknown keys and bad values are dropped.
    """
    cleaned = {}
    for key, raw in changes.items():
        validator = _SETTING_VALIDATORS.get(key)
        if validator is None:
            logger.warning("Ignoring unknown timer setting %r", key)
            continue
        value = validator(raw)
        if value is _INVALID:
            logger.debug("Rejected %s=%r", key, raw)
            continue
        cleaned[key] = value
    return cleaned


@dataclass(frozen=True)
class TimerState:
    """
    Snapshot of the timer passed to UI components.
    Never persisted.
    """
    phase: TimerPhase = TimerPhase.WORK
    status: TimerStatus = TimerStatus.IDLE
    seconds_left: int = 25 * 60
    total_seconds: int = 25 * 60
    sessions_completed: int = 0
    current_session_in_cycle: int = 1

    @property
    def elapsed_seconds(self) -> int:
        """Seconds already counted down in the current phase."""
        return self.total_seconds - self.seconds_left

    @property
    def progress_percentage(self) -> float:
        """Return progress as percentage (0-100)."""
        if self.total_seconds == 0:
            return 0.0
        return (self.elapsed_seconds / self.total_seconds) * 100.0

    def format_remaining(self) -> str:
        """Format remaining time as MM:SS."""
        minutes = self.seconds_left // 60
        seconds = self.seconds_left % 60
        return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class Task:
    """
    A single entry of the task list.
    parent_id is None for top-level tasks.
    """
    id: str
    text: str
    done: bool = False
    parent_id: Optional[str] = None


@dataclass
class TaskIdGenerator:
    """
    Hands out task ids from a counter owned by the application context.
    The wall clock is passed in so ids stay reproducible in tests.
    """
    counter: int = 0
    clock: Optional[Callable[[], int]] = field(default=None, repr=False)

    def next_id(self, now_ms: Optional[int] = None) -> str:
        if now_ms is None:
            now_ms = self.clock() if self.clock is not None else 0
        self.counter += 1
        return make_task_id(self.counter, now_ms)


def make_task_id(counter: int, now_ms: int) -> str:
    """Build a task id from a sequence number and a millisecond timestamp."""
    return f"task-{counter}-{now_ms}"
