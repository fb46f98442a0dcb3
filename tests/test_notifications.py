# tests/test_notifications.py

import io
import os
import struct
import wave

import pytest

from core.models import NotificationKind, NotificationSound
from core.notifications import (
    SAMPLE_RATE, NotificationManager, SoundPlayer, generate_sound_wav
)


def read_frames(data: bytes):
    with wave.open(io.BytesIO(data), 'rb') as wav:
        assert wav.getnchannels() == 1
        assert wav.getsampwidth() == 2
        assert wav.getframerate() == SAMPLE_RATE
        raw = wav.readframes(wav.getnframes())
    return struct.unpack(f'<{len(raw) // 2}h', raw)


class RecordingPlayer(SoundPlayer):
    """Renders files like the real player but never starts a process."""

    def __init__(self):
        super().__init__()
        self.played = []

    def _play_file(self, path: str):
        self.played.append(path)


@pytest.mark.parametrize("kind", list(NotificationKind))
@pytest.mark.parametrize("sound", list(NotificationSound))
def test_every_sound_renders_audible_wav(sound, kind):
    frames = read_frames(generate_sound_wav(sound, kind, volume=1.0))

    assert 0 < len(frames) < SAMPLE_RATE  # all sounds are shorter than a second
    assert max(abs(frame) for frame in frames) > 1000


def test_zero_volume_renders_silence():
    frames = read_frames(generate_sound_wav(NotificationSound.RING, NotificationKind.WORK, 0.0))

    assert set(frames) == {0}


def test_volume_scales_amplitude():
    loud = read_frames(generate_sound_wav(NotificationSound.NATURE, NotificationKind.WORK, 1.0))
    quiet = read_frames(generate_sound_wav(NotificationSound.NATURE, NotificationKind.WORK, 0.25))

    assert max(map(abs, quiet)) < max(map(abs, loud))


@pytest.mark.parametrize("sound", list(NotificationSound))
def test_work_and_break_variants_differ(sound):
    work = generate_sound_wav(sound, NotificationKind.WORK)
    rest = generate_sound_wav(sound, NotificationKind.BREAK)

    assert work != rest


def test_player_skips_muted_sounds():
    player = RecordingPlayer()

    player.play(NotificationSound.CHIME, NotificationKind.WORK, 0)

    assert player.played == []
    player.cleanup()


def test_player_caches_rendered_files():
    player = RecordingPlayer()

    player.play(NotificationSound.DIGITAL, NotificationKind.BREAK, 0.5)
    player.play(NotificationSound.DIGITAL, NotificationKind.BREAK, 0.5)
    player.play(NotificationSound.DIGITAL, NotificationKind.BREAK, 0.8)

    first, second, third = player.played
    assert first == second
    assert third != first
    assert os.path.exists(first)

    player.cleanup()
    assert not os.path.exists(first)


def test_player_logs_playback_failures(caplog):
    class FailingPlayer(SoundPlayer):
        def _play_file(self, path: str):
            raise OSError("no audio device")

    player = FailingPlayer()

    player.play(NotificationSound.RING, NotificationKind.WORK, 0.5)

    assert "Could not play sound" in caplog.text
    player.cleanup()


def test_manager_plays_sound_and_shows_message(monkeypatch):
    player = RecordingPlayer()
    manager = NotificationManager(player)
    shown = []
    monkeypatch.setattr(manager, "_show_notification", lambda title, message: shown.append(title))

    manager.notify(NotificationKind.WORK, NotificationSound.CHIME, 0.5)
    manager.notify(NotificationKind.BREAK, NotificationSound.CHIME, 0.5)

    assert len(player.played) == 2
    assert shown == ["Focus Complete!", "Break Over"]
    manager.cleanup()


def test_preview_plays_work_variant():
    player = RecordingPlayer()
    manager = NotificationManager(player)

    manager.preview(NotificationSound.NATURE, 0.7)

    assert player.played == [player._file_for(NotificationSound.NATURE, NotificationKind.WORK, 0.7)]
    manager.cleanup()
