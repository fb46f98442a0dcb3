"""
Settings page widget for the Pomodoro Tasks application.
Edits durations, the long-break cycle and the notification sound.
"""

from typing import List, Optional

from PySide6.QtCore import Qt, Slot
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QComboBox, QFormLayout, QGroupBox, QHBoxLayout, QLabel, QPushButton,
    QSlider, QSpinBox, QVBoxLayout, QWidget
)

from core.context import AppContext
from core.models import NotificationSound, TimerSettings
from core.storage import get_app_data_dir


class SettingsPage(QWidget):
    """
    Settings page for the timer.
    Durations are edited in minutes and stored in seconds.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self.context = context
        self.timer_engine = context.timer_engine

        self._setup_ui()
        self._load_settings(self.timer_engine.settings)
        self._connect_signals()

    def _setup_ui(self):
        """Set up the UI components."""
        layout = QVBoxLayout(self)
        layout.setSpacing(20)
        layout.setContentsMargins(30, 30, 30, 30)

        # Header
        header = QLabel("Settings")
        header_font = QFont()
        header_font.setPointSize(18)
        header_font.setBold(True)
        header.setFont(header_font)
        layout.addWidget(header)

        # Durations section
        timer_box = QGroupBox("Timer")
        timer_form = QFormLayout(timer_box)

        self.work_spin = self._minutes_spin(1, 180)
        timer_form.addRow("Work Duration:", self.work_spin)

        self.break_spin = self._minutes_spin(1, 60)
        timer_form.addRow("Short Break:", self.break_spin)

        self.long_break_spin = self._minutes_spin(1, 90)
        timer_form.addRow("Long Break:", self.long_break_spin)

        self.sessions_spin = QSpinBox()
        self.sessions_spin.setRange(1, 12)
        timer_form.addRow("Sessions before Long Break:", self.sessions_spin)

        layout.addWidget(timer_box)

        # Sound section
        sound_box = QGroupBox("Finish Sound")
        sound_form = QFormLayout(sound_box)

        sound_row = QHBoxLayout()
        self.sound_combo = QComboBox()
        for sound in NotificationSound:
            self.sound_combo.addItem(sound.label, sound.value)
        sound_row.addWidget(self.sound_combo, 1)
        self.test_btn = QPushButton("Test")
        sound_row.addWidget(self.test_btn)
        sound_form.addRow("Sound:", sound_row)

        self.volume_slider = QSlider(Qt.Orientation.Horizontal)
        self.volume_slider.setRange(0, 100)
        sound_form.addRow("Volume:", self.volume_slider)

        layout.addWidget(sound_box)

        hint = QLabel(
            "Duration changes apply right away while the timer is idle, "
            "otherwise from the next phase or reset."
        )
        hint.setWordWrap(True)
        hint.setStyleSheet("color: #a0a0b4;")
        layout.addWidget(hint)

        path_label = QLabel(f"Data folder: {get_app_data_dir()}")
        path_label.setStyleSheet("color: #707084; font-size: 11px;")
        path_label.setWordWrap(True)
        path_label.setTextInteractionFlags(
            Qt.TextInteractionFlag.TextSelectableByMouse
        )
        layout.addWidget(path_label)

        # Spacer
        layout.addStretch()

    def _minutes_spin(self, minimum: int, maximum: int) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(minimum, maximum)
        spin.setSuffix(" min")
        return spin

    def _inputs(self) -> List[QWidget]:
        return [
            self.work_spin, self.break_spin, self.long_break_spin,
            self.sessions_spin, self.sound_combo, self.volume_slider
        ]

    def _connect_signals(self):
        """Connect widget signals."""
        self.timer_engine.settings_changed.connect(self._load_settings)

        self.work_spin.valueChanged.connect(
            lambda value: self._update(work_duration=value * 60))
        self.break_spin.valueChanged.connect(
            lambda value: self._update(break_duration=value * 60))
        self.long_break_spin.valueChanged.connect(
            lambda value: self._update(long_break_duration=value * 60))
        self.sessions_spin.valueChanged.connect(
            lambda value: self._update(sessions_before_long_break=value))
        self.sound_combo.currentIndexChanged.connect(
            lambda index: self._update(notification_sound=self.sound_combo.itemData(index)))
        self.volume_slider.valueChanged.connect(
            lambda value: self._update(volume=value / 100))

        self.test_btn.clicked.connect(self._on_test_clicked)

    @Slot(TimerSettings)
    def _load_settings(self, settings: TimerSettings):
        """Show settings without feeding the change back to the engine."""
        for widget in self._inputs():
            widget.blockSignals(True)

        self.work_spin.setValue(max(1, settings.work_duration // 60))
        self.break_spin.setValue(max(1, settings.break_duration // 60))
        self.long_break_spin.setValue(max(1, settings.long_break_duration // 60))
        self.sessions_spin.setValue(settings.sessions_before_long_break)
        self.sound_combo.setCurrentIndex(
            self.sound_combo.findData(settings.notification_sound.value))
        self.volume_slider.setValue(round(settings.volume * 100))

        for widget in self._inputs():
            widget.blockSignals(False)

    def _update(self, **changes):
        self.timer_engine.update_settings(changes)

    @Slot()
    def _on_test_clicked(self):
        """Play the selected sound at the selected volume."""
        settings = self.timer_engine.settings
        preview = getattr(self.context.notifier, 'preview', None)
        if preview is not None:
            preview(settings.notification_sound, settings.volume)
