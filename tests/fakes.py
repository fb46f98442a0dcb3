# tests/fakes.py

from typing import Any, List, Tuple

from core.models import NotificationKind, NotificationSound


class FakeNotifier:
    """Records every notification instead of playing it."""

    def __init__(self):
        self.calls: List[Tuple[NotificationKind, NotificationSound, float]] = []
        self.previews: List[Tuple[NotificationSound, float]] = []
        self.cleaned_up = False

    def notify(self, kind: NotificationKind, sound: NotificationSound, volume: float) -> None:
        self.calls.append((kind, sound, volume))

    def preview(self, sound: NotificationSound, volume: float) -> None:
        self.previews.append((sound, volume))

    def cleanup(self) -> None:
        self.cleaned_up = True


class SignalRecorder:
    """Collects signal emissions by name."""

    def __init__(self):
        self.events: List[Tuple[str, Tuple[Any, ...]]] = []

    def watch(self, signal, name: str) -> None:
        signal.connect(lambda *args: self.events.append((name, args)))

    def of(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for event, args in self.events if event == name]
