"""
Timer page widget for the Pomodoro Tasks application.
Contains the countdown display, the controls and the active task.
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QFrame, QGroupBox, QHBoxLayout, QLabel, QProgressBar, QPushButton,
    QVBoxLayout, QWidget
)

from core.context import AppContext
from core.models import TimerPhase, TimerState, TimerStatus

# Accent per phase (violet for focus, teal for breaks)
PHASE_COLORS = {
    TimerPhase.WORK: "#8b84ff",
    TimerPhase.BREAK: "#00d9a6",
    TimerPhase.LONG_BREAK: "#00b4d8",
}
IDLE_COLOR = "#a0a0b4"


class TimerPage(QWidget):
    """
    Main timer page with countdown display and controls.

    Signals:
        focus_mode_requested: The user asked to enter focus mode
        focus_mode_exit_requested: The user asked to leave focus mode
    """

    focus_mode_requested = Signal()
    focus_mode_exit_requested = Signal()

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self.context = context
        self.timer_engine = context.timer_engine

        self._setup_ui()
        self._connect_signals()

        self._on_tick(self.timer_engine.state)
        self._on_active_task_changed(context.active_task_id)

    def _setup_ui(self):
        """Set up the UI components."""
        layout = QVBoxLayout(self)
        layout.setSpacing(16)
        layout.setContentsMargins(30, 24, 30, 24)

        # Exit button, only visible in focus mode
        exit_row = QHBoxLayout()
        exit_row.addStretch()
        self.exit_focus_btn = QPushButton("✕ Exit Focus")
        self.exit_focus_btn.setToolTip("Exit focus mode")
        self.exit_focus_btn.setVisible(False)
        exit_row.addWidget(self.exit_focus_btn)
        layout.addLayout(exit_row)

        # Phase label (FOCUS / BREAK / LONG BREAK)
        self.phase_label = QLabel("FOCUS")
        self.phase_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        phase_font = QFont()
        phase_font.setPointSize(18)
        phase_font.setBold(True)
        self.phase_label.setFont(phase_font)
        layout.addWidget(self.phase_label)

        # Big countdown display
        self.time_label = QLabel("25:00")
        self.time_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        time_font = QFont()
        time_font.setPointSize(72)
        time_font.setBold(True)
        self.time_label.setFont(time_font)
        self.time_label.setMinimumHeight(120)
        layout.addWidget(self.time_label)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 1000)
        self.progress_bar.setTextVisible(False)
        self.progress_bar.setFixedHeight(6)
        layout.addWidget(self.progress_bar)

        # Position in the long-break cycle
        self.cycle_label = QLabel("")
        self.cycle_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.cycle_label.setStyleSheet("color: #a0a0b4; font-size: 13px;")
        layout.addWidget(self.cycle_label)

        # Control buttons
        button_layout = QHBoxLayout()
        button_layout.setSpacing(15)

        self.start_btn = QPushButton("Start")
        self.start_btn.setMinimumSize(120, 45)
        button_layout.addWidget(self.start_btn)

        self.reset_btn = QPushButton("Reset")
        self.reset_btn.setMinimumSize(100, 45)
        button_layout.addWidget(self.reset_btn)

        self.skip_btn = QPushButton("Skip")
        self.skip_btn.setMinimumSize(100, 45)
        self.skip_btn.setToolTip("Finish this phase now")
        button_layout.addWidget(self.skip_btn)

        layout.addLayout(button_layout)

        self.separator = QFrame()
        self.separator.setFrameShape(QFrame.Shape.HLine)
        self.separator.setFrameShadow(QFrame.Shadow.Sunken)
        layout.addWidget(self.separator)

        # Active task
        self.active_box = QGroupBox("Active Task")
        active_layout = QVBoxLayout(self.active_box)
        self.active_label = QLabel("")
        self.active_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.active_label.setWordWrap(True)
        self.active_label.setStyleSheet("font-size: 15px;")
        active_layout.addWidget(self.active_label)

        self.focus_btn = QPushButton("⚡ Enter Focus Mode")
        active_layout.addWidget(self.focus_btn)
        layout.addWidget(self.active_box)

        self.hint_label = QLabel("Double-click a task to make it active.")
        self.hint_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.hint_label.setStyleSheet("color: #707084;")
        layout.addWidget(self.hint_label)

        # Spacer
        layout.addStretch()

    def _connect_signals(self):
        """Connect widget signals to slots."""
        self.timer_engine.tick.connect(self._on_tick)
        self.context.active_task_changed.connect(self._on_active_task_changed)
        self.context.task_tree.changed.connect(self._on_tasks_changed)

        self.start_btn.clicked.connect(self._on_start_clicked)
        self.reset_btn.clicked.connect(self.timer_engine.reset)
        self.skip_btn.clicked.connect(self.timer_engine.skip)
        self.focus_btn.clicked.connect(self.focus_mode_requested)
        self.exit_focus_btn.clicked.connect(self.focus_mode_exit_requested)

    def set_focus_mode(self, enabled: bool):
        """Strip the page down to the countdown and the active task."""
        self.exit_focus_btn.setVisible(enabled)
        self.focus_btn.setVisible(not enabled)
        self.separator.setVisible(not enabled)
        self.cycle_label.setVisible(not enabled)

    @Slot()
    def _on_start_clicked(self):
        """Handle start/pause button click."""
        if self.timer_engine.is_running:
            self.timer_engine.pause()
        else:
            self.timer_engine.start()

    @Slot(TimerState)
    def _on_tick(self, state: TimerState):
        """Handle timer tick - update display."""
        running = state.status == TimerStatus.RUNNING
        color = PHASE_COLORS[state.phase] if running else IDLE_COLOR

        text = state.phase.label.upper()
        if state.status == TimerStatus.PAUSED:
            text += " (PAUSED)"
        self.phase_label.setText(text)
        self.phase_label.setStyleSheet(f"color: {color}; font-size: 20px;")

        self.time_label.setText(state.format_remaining())
        self.time_label.setStyleSheet(f"color: {color}; font-size: 80px;")

        self.progress_bar.setValue(int(state.progress_percentage * 10))
        self.progress_bar.setStyleSheet(
            f"QProgressBar::chunk {{ background-color: {PHASE_COLORS[state.phase]}; }}"
        )

        settings = self.timer_engine.settings
        self.cycle_label.setText(
            f"Session {state.current_session_in_cycle} of "
            f"{settings.sessions_before_long_break} · {state.sessions_completed} done"
        )

        self.start_btn.setText("Pause" if running else "Start")

    @Slot(object)
    def _on_active_task_changed(self, task_id: Optional[str]):
        task = self.context.active_task
        self.active_box.setVisible(task is not None)
        self.hint_label.setVisible(task is None)
        if task is not None:
            self.active_label.setText(task.text)

    @Slot(object)
    def _on_tasks_changed(self, tasks: tuple):
        # The active task's text may have moved or changed
        self._on_active_task_changed(self.context.active_task_id)
