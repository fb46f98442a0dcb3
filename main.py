#!/usr/bin/env python3
"""
Pomodoro Tasks - A desktop Pomodoro timer with a nested task list.

- Work, break and long break phases with a configurable cycle
- Hierarchical tasks with drag-and-drop reordering
- An active task and a distraction-free focus mode
- Synthesized notification sounds and desktop notifications
- Local-only storage in the application data folder

Usage:
    pip install -e .
    python main.py
"""

import logging
import signal
import sys

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication

from core.logging_setup import setup_logging
from core.storage import get_app_data_dir

logger = logging.getLogger(__name__)

# Work phases use the violet accent, breaks the teal one
STYLESHEET = """
    QMainWindow, QWidget {
        background-color: #16161e;
        color: #e4e4ef;
    }

    QTabWidget::pane {
        border: none;
        background-color: #1c1c26;
    }
    QTabBar::tab {
        background-color: #22222e;
        color: #a0a0b4;
        padding: 10px 22px;
        margin-right: 2px;
        border-top-left-radius: 6px;
        border-top-right-radius: 6px;
    }
    QTabBar::tab:selected {
        background-color: #1c1c26;
        color: #ffffff;
        font-weight: bold;
    }

    QGroupBox {
        font-weight: bold;
        border: 1px solid #33334a;
        border-radius: 8px;
        margin-top: 12px;
        padding-top: 12px;
        background-color: #1f1f2b;
    }
    QGroupBox::title {
        subcontrol-origin: margin;
        left: 12px;
        padding: 0 8px;
        color: #8b84ff;
    }

    QLineEdit, QSpinBox, QComboBox {
        padding: 8px;
        border: 1px solid #33334a;
        border-radius: 5px;
        background-color: #22222e;
        color: #ffffff;
    }
    QLineEdit:focus, QSpinBox:focus, QComboBox:focus {
        border-color: #6c63ff;
    }

    QPushButton {
        padding: 9px 16px;
        border-radius: 5px;
        background-color: #33334a;
        color: #ffffff;
        font-weight: bold;
        border: none;
    }
    QPushButton:hover {
        background-color: #40405c;
    }
    QPushButton:disabled {
        background-color: #22222e;
        color: #5c5c70;
    }

    QTreeWidget {
        border: 1px solid #33334a;
        border-radius: 5px;
        background-color: #1c1c26;
    }
    QTreeWidget::item {
        padding: 5px;
    }
    QTreeWidget::item:selected {
        background-color: rgba(108, 99, 255, 0.35);
    }

    QMenu {
        background-color: #22222e;
        border: 1px solid #33334a;
        padding: 5px;
    }
    QMenu::item:selected {
        background-color: #6c63ff;
    }

    QToolTip {
        background-color: #22222e;
        color: #ffffff;
        border: 1px solid #6c63ff;
    }
"""


def setup_exception_handling():
    """Route uncaught exceptions to the log."""
    def exception_hook(exctype, value, traceback):
        logger.critical("Unhandled exception", exc_info=(exctype, value, traceback))
        sys.__excepthook__(exctype, value, traceback)

    sys.excepthook = exception_hook


def setup_signal_handlers(app: QApplication):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        app.quit()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def main():
    """Main entry point for the Pomodoro Tasks application."""
    setup_logging(get_app_data_dir())
    setup_exception_handling()

    # Enable high DPI scaling
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName("Pomodoro Tasks")
    app.setApplicationDisplayName("Pomodoro")
    app.setOrganizationName("PomodoroTasks")
    app.setStyle("Fusion")
    app.setStyleSheet(STYLESHEET)

    setup_signal_handlers(app)

    # Import late so logging is configured before the core modules log anything
    from core.context import AppContext
    from core.storage import Storage
    from ui.main_window import MainWindow

    context = AppContext(Storage())
    window = MainWindow(context)
    window.show()

    logger.info("Pomodoro Tasks started")
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
