"""
Notification module for the Pomodoro Tasks application.
Synthesizes the phase-complete sounds, plays them and shows a desktop
message when a phase finishes.
"""

import io
import logging
import math
import os
import shutil
import struct
import subprocess
import sys
import tempfile
import wave
from typing import Callable, Dict, List, Optional, Tuple

from PySide6.QtCore import QObject
from PySide6.QtWidgets import QSystemTrayIcon

from .models import NotificationKind, NotificationSound

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100


# ==================== Synthesis ====================

def _sine(phase: float) -> float:
    return math.sin(2 * math.pi * phase)


def _square(phase: float) -> float:
    return 1.0 if (phase % 1.0) < 0.5 else -1.0


def _triangle(phase: float) -> float:
    return 4.0 * abs((phase % 1.0) - 0.5) - 1.0


def _decay(peak: float, floor: float, start: float, end: float, t: float) -> float:
    """Exponential ramp from peak at start to floor at end."""
    if t <= start:
        return peak
    if t >= end:
        return floor
    return peak * (floor / peak) ** ((t - start) / (end - start))


def _render_voice(
    buffer: List[float],
    start: float,
    duration: float,
    waveform: Callable[[float], float],
    frequency: Callable[[float], float],
    envelope: Callable[[float], float]
):
    """
    Mix one oscillator into the buffer.

    frequency and envelope receive the time in seconds since the voice
    started. Phase is accumulated so frequency sweeps stay continuous.
    """
    first = int(start * SAMPLE_RATE)
    count = int(duration * SAMPLE_RATE)
    needed = first + count
    if len(buffer) < needed:
        buffer.extend([0.0] * (needed - len(buffer)))

    phase = 0.0
    for i in range(count):
        t = i / SAMPLE_RATE
        buffer[first + i] += envelope(t) * waveform(phase)
        phase += frequency(t) / SAMPLE_RATE


def _chime(kind: NotificationKind) -> List[float]:
    if kind == NotificationKind.WORK:
        notes = [523.25, 659.25, 783.99, 1046.5]  # C5, E5, G5, C6
        note_duration = 0.15
    else:
        notes = [783.99, 659.25, 523.25]  # G5, E5, C5
        note_duration = 0.2

    def envelope(t: float) -> float:
        if t < 0.02:
            return 0.6 * t / 0.02
        return _decay(0.6, 0.003, 0.02, note_duration + 0.1, t)

    buffer: List[float] = []
    for i, freq in enumerate(notes):
        _render_voice(
            buffer, i * note_duration, note_duration + 0.15,
            _sine, lambda t, f=freq: f, envelope
        )
    return buffer


def _digital(kind: NotificationKind) -> List[float]:
    freq = 880.0 if kind == NotificationKind.WORK else 440.0
    count = 3 if kind == NotificationKind.WORK else 2

    def envelope(t: float) -> float:
        if t < 0.01:
            return 0.35 * t / 0.01
        if t < 0.08:
            return 0.35 * (0.08 - t) / 0.07
        return 0.0

    buffer: List[float] = []
    for i in range(count):
        _render_voice(buffer, i * 0.15, 0.1, _square, lambda t: freq, envelope)
    return buffer


def _ring(kind: NotificationKind) -> List[float]:
    base = 660.0 if kind == NotificationKind.WORK else 554.37
    duration = 0.5

    def frequency(t: float) -> float:
        # 20 Hz vibrato, 10 Hz deep
        return base + 10.0 * _sine(20.0 * t)

    def envelope(t: float) -> float:
        if t < 0.05:
            return 0.5 * t / 0.05
        return _decay(0.5, 0.003, 0.05, duration, t)

    buffer: List[float] = []
    _render_voice(buffer, 0.0, duration, _sine, frequency, envelope)
    return buffer


def _nature(kind: NotificationKind) -> List[float]:
    base = 1200.0 if kind == NotificationKind.WORK else 800.0

    def frequency(t: float) -> float:
        return _decay(base, base / 2, 0.0, 0.1, t)

    def envelope(t: float) -> float:
        return _decay(0.6, 0.003, 0.0, 0.2, t)

    buffer: List[float] = []
    _render_voice(buffer, 0.0, 0.2, _triangle, frequency, envelope)
    return buffer


_SYNTHS = {
    NotificationSound.CHIME: _chime,
    NotificationSound.DIGITAL: _digital,
    NotificationSound.RING: _ring,
    NotificationSound.NATURE: _nature,
}


def generate_sound_wav(
    sound: NotificationSound,
    kind: NotificationKind,
    volume: float = 1.0
) -> bytes:
    """
    Render a notification sound as WAV data.

    Args:
        sound: Which of the notification sounds to render.
        kind: Work or break variant.
        volume: Volume level (0.0 to 1.0).

    Returns:
        WAV file data as bytes (16-bit mono).
    """
    volume = max(0.0, min(1.0, volume))
    samples = _SYNTHS[sound](kind)
    max_amplitude = 32767 * volume
    frames = [
        max(-32768, min(32767, int(max_amplitude * value)))
        for value in samples
    ]

    # Create WAV file in memory
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav:
        wav.setnchannels(1)  # Mono
        wav.setsampwidth(2)  # 16-bit
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(struct.pack(f'<{len(frames)}h', *frames))

    return buffer.getvalue()


# ==================== Playback ====================

class SoundPlayer:
    """
    Cross-platform sound player.
    Renders each sound once per volume level into a temp file and hands
    it to the platform's command line player.
    """

    def __init__(self):
        self._temp_dir: Optional[str] = None
        self._files: Dict[Tuple[NotificationSound, NotificationKind, int], str] = {}

    def play(self, sound: NotificationSound, kind: NotificationKind, volume: float):
        """Play a notification sound. Failures are logged, never raised."""
        if volume <= 0:
            return

        try:
            self._play_file(self._file_for(sound, kind, volume))
        except (OSError, RuntimeError) as e:
            logger.warning("Could not play sound: %s", e)

    def _file_for(
        self, sound: NotificationSound, kind: NotificationKind, volume: float
    ) -> str:
        """Return a WAV file for the sound, rendering it on first use."""
        key = (sound, kind, round(volume * 100))
        path = self._files.get(key)
        if path is not None and os.path.exists(path):
            return path

        if self._temp_dir is None:
            self._temp_dir = tempfile.mkdtemp(prefix='pomodoro-sounds-')

        path = os.path.join(
            self._temp_dir, f'{sound.value}-{kind.value}-{key[2]}.wav'
        )
        with open(path, 'wb') as f:
            f.write(generate_sound_wav(sound, kind, volume))
        self._files[key] = path
        return path

    def _play_file(self, path: str):
        """Platform-specific sound playback."""
        system = sys.platform.lower()

        if system == 'darwin':
            # macOS: use afplay
            subprocess.Popen(
                ['afplay', path],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL
            )
        elif system.startswith('linux'):
            # Linux: try paplay (PulseAudio), then aplay (ALSA)
            for cmd in ['paplay', 'aplay']:
                try:
                    subprocess.Popen(
                        [cmd, path],
                        stdout=subprocess.DEVNULL,
                        stderr=subprocess.DEVNULL
                    )
                    return
                except FileNotFoundError:
                    continue
            logger.warning("No audio player found (tried paplay, aplay)")
        elif system == 'win32':
            # Windows: use winsound
            import winsound
            winsound.PlaySound(path, winsound.SND_FILENAME | winsound.SND_ASYNC)

    def cleanup(self):
        """Remove the rendered sound files."""
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
        self._temp_dir = None
        self._files.clear()


# ==================== Notifications ====================

_MESSAGES = {
    NotificationKind.WORK: ("Focus Complete!", "Great work! Time for a break."),
    NotificationKind.BREAK: ("Break Over", "Ready for another focus session?"),
}


class NotificationManager(QObject):
    """
    Announces finished phases with a sound and a desktop notification.
    Uses the system tray when one is available.
    """

    def __init__(
        self,
        sound_player: Optional[SoundPlayer] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)

        self._sound_player = sound_player or SoundPlayer()
        self._tray_icon: Optional[QSystemTrayIcon] = None

    def set_tray_icon(self, tray_icon: Optional[QSystemTrayIcon]):
        """Set the system tray icon for showing notifications."""
        self._tray_icon = tray_icon

    def notify(self, kind: NotificationKind, sound: NotificationSound, volume: float):
        """Announce that a work or break phase has finished."""
        logger.info("Phase complete notification: %s (%s)", kind.value, sound.value)
        self._sound_player.play(sound, kind, volume)
        title, message = _MESSAGES[kind]
        self._show_notification(title, message)

    def preview(self, sound: NotificationSound, volume: float):
        """Play the work variant of a sound, for the settings test button."""
        self._sound_player.play(sound, NotificationKind.WORK, volume)

    def _show_notification(self, title: str, message: str):
        """Show a desktop notification."""
        if self._tray_icon is not None and QSystemTrayIcon.isSystemTrayAvailable():
            self._tray_icon.showMessage(
                title, message, QSystemTrayIcon.MessageIcon.Information, 3000
            )
        else:
            # Fallback: try native notification command
            self._show_native_notification(title, message)

    def _show_native_notification(self, title: str, message: str):
        """Show notification using native OS commands."""
        system = sys.platform.lower()

        try:
            if system == 'darwin':
                # macOS: use osascript
                script = f'display notification "{message}" with title "{title}"'
                subprocess.run(
                    ['osascript', '-e', script],
                    capture_output=True,
                    timeout=5
                )
            elif system.startswith('linux'):
                # Linux: use notify-send
                subprocess.run(
                    ['notify-send', title, message],
                    capture_output=True,
                    timeout=5
                )
            # Windows notifications handled by tray icon
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Could not show notification: %s", e)

    def cleanup(self):
        """Clean up resources."""
        self._sound_player.cleanup()
