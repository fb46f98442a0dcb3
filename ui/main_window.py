"""
Main window for the Pomodoro Tasks application.
Hosts the Timer, Tasks and Settings tabs, the tray icon and focus mode.
"""

import logging
from typing import Optional

from PySide6.QtCore import Qt, Slot
from PySide6.QtGui import QAction, QCloseEvent, QColor, QIcon, QPainter, QPixmap
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QMenu, QSystemTrayIcon, QTabWidget,
    QVBoxLayout, QWidget
)

from core.context import AppContext
from core.models import TimerPhase, TimerState, TimerStatus
from core.notifications import NotificationManager

from .settings_page import SettingsPage
from .tasks_page import TasksPage
from .timer_page import TimerPage

logger = logging.getLogger(__name__)


def create_app_icon() -> QIcon:
    """Create a simple tomato icon programmatically."""
    sizes = [16, 32, 48, 64]
    icon = QIcon()

    for size in sizes:
        pixmap = QPixmap(size, size)
        pixmap.fill(Qt.GlobalColor.transparent)

        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)

        # Tomato body
        painter.setBrush(QColor("#ff6b6b"))
        margin = size // 8
        painter.drawEllipse(margin, margin + size // 16, size - 2*margin, size - 2*margin)

        # Leaf
        painter.setBrush(QColor("#00d9a6"))
        leaf = max(2, size // 4)
        painter.drawEllipse(size // 2 - leaf // 2, margin // 2, leaf, leaf // 2 + 1)

        painter.end()
        icon.addPixmap(pixmap)

    return icon


class MainWindow(QMainWindow):
    """
    Top-level window: Timer, Tasks and Settings tabs plus the tray icon.
    """

    def __init__(self, context: AppContext):
        super().__init__()

        self.context = context
        self.timer_engine = context.timer_engine
        self._focus_mode = False

        self.setWindowTitle("Pomodoro")
        self.setMinimumSize(420, 560)
        self.resize(460, 640)

        self.app_icon = create_app_icon()
        self.setWindowIcon(self.app_icon)

        self._setup_ui()
        self._setup_tray()
        self._connect_signals()

        self._on_timer_tick(self.timer_engine.state)

    def _setup_ui(self):
        """Set up the main UI."""
        central = QWidget()
        self.setCentralWidget(central)

        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)

        self.tabs = QTabWidget()
        self.tabs.setDocumentMode(True)

        self.timer_page = TimerPage(self.context)
        self.tasks_page = TasksPage(self.context)
        self.settings_page = SettingsPage(self.context)

        self.tabs.addTab(self.timer_page, "Timer")
        self.tabs.addTab(self.tasks_page, "Tasks")
        self.tabs.addTab(self.settings_page, "Settings")

        layout.addWidget(self.tabs)

    def _setup_tray(self):
        """Tray icon with show, start/pause, reset and quit."""
        if not QSystemTrayIcon.isSystemTrayAvailable():
            return

        self.tray_icon = QSystemTrayIcon(self.app_icon, self)
        self.tray_icon.setToolTip("Pomodoro")

        tray_menu = QMenu()

        show_action = QAction("Show", self)
        show_action.triggered.connect(self._show_window)
        tray_menu.addAction(show_action)

        tray_menu.addSeparator()

        self.tray_start_action = QAction("Start", self)
        self.tray_start_action.triggered.connect(self._tray_toggle_start)
        tray_menu.addAction(self.tray_start_action)

        self.tray_reset_action = QAction("Reset", self)
        self.tray_reset_action.triggered.connect(self.timer_engine.reset)
        tray_menu.addAction(self.tray_reset_action)

        tray_menu.addSeparator()

        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self._quit_app)
        tray_menu.addAction(quit_action)

        self.tray_icon.setContextMenu(tray_menu)
        self.tray_icon.activated.connect(self._on_tray_activated)
        self.tray_icon.show()

        if isinstance(self.context.notifier, NotificationManager):
            self.context.notifier.set_tray_icon(self.tray_icon)

    def _connect_signals(self):
        """Wire engine, context and page signals to the window."""
        self.timer_engine.tick.connect(self._on_timer_tick)
        self.timer_engine.phase_completed.connect(self._on_phase_completed)
        self.context.active_task_changed.connect(self._on_active_task_changed)

        self.timer_page.focus_mode_requested.connect(self.enter_focus_mode)
        self.timer_page.focus_mode_exit_requested.connect(self.exit_focus_mode)

    # ==================== Focus mode ====================

    @Slot()
    def enter_focus_mode(self):
        """Show only the timer and the active task, starting the timer if idle."""
        if not self.context.enter_focus():
            return
        self._focus_mode = True
        self.tabs.setCurrentWidget(self.timer_page)
        self.tabs.tabBar().setVisible(False)
        self.timer_page.set_focus_mode(True)

    @Slot()
    def exit_focus_mode(self):
        self._focus_mode = False
        self.tabs.tabBar().setVisible(True)
        self.timer_page.set_focus_mode(False)

    @Slot(object)
    def _on_active_task_changed(self, task_id: Optional[str]):
        # Focus mode needs an active task to show
        if self._focus_mode and task_id is None:
            self.exit_focus_mode()

    @Slot(TimerPhase)
    def _on_phase_completed(self, phase: TimerPhase):
        # Leave focus mode once work is done so the break shows the full UI
        if phase == TimerPhase.WORK and self._focus_mode:
            self.exit_focus_mode()

    # ==================== Status ====================

    @Slot(TimerState)
    def _on_timer_tick(self, state: TimerState):
        """Update the header status and the tray."""
        if state.sessions_completed > 0:
            status = f"{state.sessions_completed} done"
        else:
            status = "Ready"
        self.statusBar().showMessage(status)

        if hasattr(self, 'tray_icon'):
            running = state.status == TimerStatus.RUNNING
            self.tray_start_action.setText("Pause" if running else "Start")
            if state.status == TimerStatus.IDLE:
                self.tray_icon.setToolTip("Pomodoro")
            else:
                self.tray_icon.setToolTip(
                    f"Pomodoro - {state.phase.label}\n{state.format_remaining()}"
                )

    # ==================== Tray ====================

    @Slot(QSystemTrayIcon.ActivationReason)
    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason):
        """Double-clicking the tray icon restores the window."""
        if reason == QSystemTrayIcon.ActivationReason.DoubleClick:
            self._show_window()

    @Slot()
    def _show_window(self):
        """Restore the window from the tray."""
        self.show()
        self.raise_()
        self.activateWindow()

    @Slot()
    def _tray_toggle_start(self):
        if self.timer_engine.is_running:
            self.timer_engine.pause()
        else:
            self.timer_engine.start()

    @Slot()
    def _quit_app(self):
        """Quit from the tray menu."""
        self._cleanup()
        QApplication.quit()

    def closeEvent(self, event: QCloseEvent):
        """Hide to the tray while a phase is underway, otherwise quit."""
        # A running or paused phase keeps the app alive in the tray
        if self.timer_engine.is_running or self.timer_engine.is_paused:
            if hasattr(self, 'tray_icon') and self.tray_icon.isVisible():
                event.ignore()
                self.hide()
                self.tray_icon.showMessage(
                    "Pomodoro",
                    "The timer keeps going in the tray.",
                    QSystemTrayIcon.MessageIcon.Information,
                    2000
                )
                return

        self._cleanup()
        event.accept()

    def _cleanup(self):
        """Release the context and hide the tray."""
        logger.info("Shutting down")
        self.context.cleanup()

        if hasattr(self, 'tray_icon'):
            self.tray_icon.hide()
