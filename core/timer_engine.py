"""
Timer engine for the Pomodoro Tasks application.
Implements the work/break phase cycle as a state machine driven
by a single 1 Hz Qt timer.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from .models import (
    NotificationKind, NotificationSound, TimerPhase, TimerSettings,
    TimerState, TimerStatus, clean_settings_changes
)

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Anything that can announce a finished phase."""

    def notify(
        self, kind: NotificationKind, sound: NotificationSound, volume: float
    ) -> None:
        ...


class TimerEngine(QObject):
    """
    Core timer engine implementing the phase cycle.

    Phases cycle work -> break -> ... -> work -> long_break -> work.
    Status moves between IDLE, RUNNING and PAUSED. The engine never
    continues into the next phase on its own; every phase switch
    lands in IDLE.

    Signals:
        tick: Emitted with a TimerState snapshot whenever the display changes
        phase_changed: Emitted on a phase switch (old_phase, new_phase)
        status_changed: Emitted on a status change (old_status, new_status)
        phase_completed: Emitted when a countdown runs out (finished phase)
        settings_changed: Emitted after settings were merged
    """

    # Signals
    tick = Signal(TimerState)
    phase_changed = Signal(TimerPhase, TimerPhase)
    status_changed = Signal(TimerStatus, TimerStatus)
    phase_completed = Signal(TimerPhase)
    settings_changed = Signal(TimerSettings)

    TICK_INTERVAL_MS = 1000

    def __init__(
        self,
        settings: Optional[TimerSettings] = None,
        notifier: Optional[NotificationSink] = None,
        parent: Optional[QObject] = None
    ):
        """
        Initialize the timer engine.

        Args:
            settings: Initial settings, defaults when omitted.
            notifier: Sink told about every naturally finished phase.
            parent: Optional Qt parent object.
        """
        super().__init__(parent)

        self._settings = settings.copy() if settings else TimerSettings()
        self._notifier = notifier

        self._phase = TimerPhase.WORK
        self._status = TimerStatus.IDLE
        self._total_seconds = self._settings.duration_for(self._phase)
        self._seconds_left = self._total_seconds
        self._sessions_completed = 0
        self._current_session_in_cycle = 1

        # The only source of asynchronous mutation; armed only while RUNNING
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(self.TICK_INTERVAL_MS)
        self._qt_timer.timeout.connect(self.advance)

    @property
    def state(self) -> TimerState:
        """Get a snapshot of the current timer state."""
        return TimerState(
            phase=self._phase,
            status=self._status,
            seconds_left=self._seconds_left,
            total_seconds=self._total_seconds,
            sessions_completed=self._sessions_completed,
            current_session_in_cycle=self._current_session_in_cycle,
        )

    @property
    def settings(self) -> TimerSettings:
        """Get a copy of the current settings."""
        return self._settings.copy()

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    @property
    def status(self) -> TimerStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == TimerStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self._status == TimerStatus.PAUSED

    @property
    def is_idle(self) -> bool:
        return self._status == TimerStatus.IDLE

    @property
    def countdown_armed(self) -> bool:
        """Whether the 1 Hz timer is currently scheduled."""
        return self._qt_timer.isActive()

    def set_notifier(self, notifier: Optional[NotificationSink]):
        self._notifier = notifier

    # ==================== Commands ====================

    def start(self):
        """Start or resume the countdown. No-op while already running."""
        if self.is_running:
            return
        self._set_status(TimerStatus.RUNNING)
        self.tick.emit(self.state)

    def pause(self):
        """Pause the countdown if it is running."""
        if not self.is_running:
            return
        self._set_status(TimerStatus.PAUSED)
        self.tick.emit(self.state)

    def reset(self):
        """Stop the countdown and refill the current phase."""
        self._set_status(TimerStatus.IDLE)
        self._total_seconds = self._settings.duration_for(self._phase)
        self._seconds_left = self._total_seconds
        self.tick.emit(self.state)

    def skip(self):
        """
        Finish the current phase right away.

        Counters advance exactly as on a natural completion, but no
        notification is played and phase_completed is not emitted.
        """
        logger.debug("Skipping %s phase", self._phase.value)
        self._complete_phase(silent=True)

    def update_settings(
        self, changes: Optional[Dict[str, Any]] = None, **kwargs
    ) -> TimerSettings:
        """
        Merge settings changes.

        Invalid values are ignored field by field and the previous value
        is kept. An idle timer picks up a changed duration immediately;
        a running or paused one keeps its countdown until the next phase
        switch or reset.

        Returns:
            The settings in effect after the merge.
        """
        merged = dict(changes or {})
        merged.update(kwargs)

        applied = clean_settings_changes(merged)
        if not applied:
            return self.settings

        for key, value in applied.items():
            setattr(self._settings, key, value)

        limit = self._settings.sessions_before_long_break
        if self._current_session_in_cycle > limit:
            self._current_session_in_cycle = limit

        if self.is_idle:
            self._total_seconds = self._settings.duration_for(self._phase)
            self._seconds_left = self._total_seconds

        self.settings_changed.emit(self.settings)
        self.tick.emit(self.state)
        return self.settings

    # ==================== Countdown ====================

    @Slot()
    def advance(self):
        """Count down one second; finishes the phase when time is up."""
        if not self.is_running:
            return

        if self._seconds_left <= 1:
            self._seconds_left = 0
            self._complete_phase(silent=False)
            return

        self._seconds_left -= 1
        self.tick.emit(self.state)

    def _complete_phase(self, silent: bool):
        """Apply the phase-completion transition."""
        finished = self._phase

        if not silent:
            if self._notifier is not None:
                self._notifier.notify(
                    NotificationKind.for_phase(finished),
                    self._settings.notification_sound,
                    self._settings.volume
                )
            self.phase_completed.emit(finished)

        if finished == TimerPhase.WORK:
            self._sessions_completed += 1
            if self._current_session_in_cycle >= self._settings.sessions_before_long_break:
                self._current_session_in_cycle = 1
                next_phase = TimerPhase.LONG_BREAK
            else:
                self._current_session_in_cycle += 1
                next_phase = TimerPhase.BREAK
        else:
            next_phase = TimerPhase.WORK

        self._switch_phase(next_phase)

    def _switch_phase(self, next_phase: TimerPhase):
        """Enter a phase with a full countdown, waiting for the user to start it."""
        old_phase = self._phase
        self._set_status(TimerStatus.IDLE)

        self._phase = next_phase
        self._total_seconds = self._settings.duration_for(next_phase)
        self._seconds_left = self._total_seconds

        logger.info(
            "Phase %s -> %s (sessions completed: %d)",
            old_phase.value, next_phase.value, self._sessions_completed
        )
        self.phase_changed.emit(old_phase, next_phase)
        self.tick.emit(self.state)

    def _set_status(self, new_status: TimerStatus):
        """Change status, arming or cancelling the countdown to match."""
        if new_status == TimerStatus.RUNNING:
            if not self._qt_timer.isActive():
                self._qt_timer.start()
        else:
            self._qt_timer.stop()

        old_status = self._status
        if old_status == new_status:
            return
        self._status = new_status
        self.status_changed.emit(old_status, new_status)

    def cleanup(self):
        """Cancel the countdown. Call before application exit."""
        self._set_status(TimerStatus.IDLE)
