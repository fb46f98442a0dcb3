# UI module for Pomodoro Tasks application
from .main_window import MainWindow
from .timer_page import TimerPage
from .tasks_page import TasksPage
from .settings_page import SettingsPage

__all__ = ['MainWindow', 'TimerPage', 'TasksPage', 'SettingsPage']
