# tests/test_timer_engine.py

import pytest

from core.models import (
    NotificationKind, NotificationSound, TimerPhase, TimerSettings, TimerStatus
)
from core.timer_engine import TimerEngine


def run_until(engine: TimerEngine, seconds_left: int) -> None:
    """Start the engine and count down until seconds_left remain."""
    engine.start()
    while engine.state.seconds_left > seconds_left:
        engine.advance()


def skip_to_cycle(engine: TimerEngine, session: int) -> None:
    """Skip work/break pairs until the given cycle position, back in a work phase."""
    while engine.state.current_session_in_cycle < session:
        engine.skip()  # work -> break
        engine.skip()  # break -> work
    assert engine.phase == TimerPhase.WORK


def enter_phase(engine: TimerEngine, phase: TimerPhase) -> None:
    """Skip forward until the engine sits in the requested phase."""
    for _ in range(2 * engine.settings.sessions_before_long_break + 1):
        if engine.phase == phase:
            return
        engine.skip()
    raise AssertionError(f"never reached {phase}")


def test_initial_state_is_idle_work(engine: TimerEngine):
    state = engine.state

    assert state.phase == TimerPhase.WORK
    assert state.status == TimerStatus.IDLE
    assert state.seconds_left == 10
    assert state.total_seconds == 10
    assert state.sessions_completed == 0
    assert state.current_session_in_cycle == 1
    assert engine.countdown_armed is False


def test_start_arms_countdown_once(engine: TimerEngine, recorder):
    recorder.watch(engine.status_changed, "status")

    engine.start()
    engine.start()

    assert engine.status == TimerStatus.RUNNING
    assert engine.countdown_armed is True
    assert recorder.of("status") == [(TimerStatus.IDLE, TimerStatus.RUNNING)]


def test_pause_cancels_countdown_and_resume_continues(engine: TimerEngine):
    run_until(engine, 7)

    engine.pause()
    engine.advance()  # stray tick while paused

    assert engine.status == TimerStatus.PAUSED
    assert engine.countdown_armed is False
    assert engine.state.seconds_left == 7

    engine.start()
    engine.advance()

    assert engine.status == TimerStatus.RUNNING
    assert engine.state.seconds_left == 6


def test_pause_is_noop_when_idle(engine: TimerEngine, recorder):
    recorder.watch(engine.status_changed, "status")

    engine.pause()

    assert engine.status == TimerStatus.IDLE
    assert recorder.of("status") == []


def test_advance_does_nothing_unless_running(engine: TimerEngine):
    engine.advance()

    assert engine.state.seconds_left == 10


@pytest.mark.parametrize("phase", list(TimerPhase))
@pytest.mark.parametrize("status", ["idle", "running", "paused"])
def test_reset_refills_current_phase(engine: TimerEngine, phase, status):
    enter_phase(engine, phase)
    before = engine.state
    if status != "idle":
        run_until(engine, 1)
    if status == "paused":
        engine.pause()

    engine.reset()
    state = engine.state

    assert state.phase == phase
    assert state.status == TimerStatus.IDLE
    assert state.seconds_left == state.total_seconds == engine.settings.duration_for(phase)
    assert state.sessions_completed == before.sessions_completed
    assert state.current_session_in_cycle == before.current_session_in_cycle
    assert engine.countdown_armed is False


def test_last_work_session_of_cycle_leads_to_long_break(engine: TimerEngine, notifier):
    skip_to_cycle(engine, 4)
    run_until(engine, 1)
    completed_before = engine.state.sessions_completed

    engine.advance()
    state = engine.state

    assert state.sessions_completed == completed_before + 1
    assert state.current_session_in_cycle == 1
    assert state.phase == TimerPhase.LONG_BREAK
    assert state.status == TimerStatus.IDLE
    assert state.seconds_left == 6
    assert notifier.calls == [(NotificationKind.WORK, NotificationSound.CHIME, 0.5)]


def test_mid_cycle_work_session_leads_to_short_break(engine: TimerEngine):
    skip_to_cycle(engine, 2)
    run_until(engine, 1)

    engine.advance()
    state = engine.state

    assert state.phase == TimerPhase.BREAK
    assert state.current_session_in_cycle == 3
    assert state.seconds_left == 3


@pytest.mark.parametrize("phase", [TimerPhase.BREAK, TimerPhase.LONG_BREAK])
def test_finished_break_returns_to_work(engine: TimerEngine, notifier, phase):
    enter_phase(engine, phase)
    completed_before = engine.state.sessions_completed
    run_until(engine, 1)

    engine.advance()

    assert engine.phase == TimerPhase.WORK
    assert engine.state.sessions_completed == completed_before
    assert notifier.calls[-1][0] == NotificationKind.BREAK


def test_natural_completion_notifies_once(engine: TimerEngine, notifier, recorder):
    recorder.watch(engine.phase_completed, "completed")
    recorder.watch(engine.phase_changed, "phase")
    run_until(engine, 1)

    engine.advance()

    assert len(notifier.calls) == 1
    assert recorder.of("completed") == [(TimerPhase.WORK,)]
    assert recorder.of("phase") == [(TimerPhase.WORK, TimerPhase.BREAK)]


def test_phase_switch_waits_for_start(engine: TimerEngine):
    run_until(engine, 1)

    engine.advance()
    engine.advance()

    assert engine.status == TimerStatus.IDLE
    assert engine.countdown_armed is False
    assert engine.state.seconds_left == 3


def test_countdown_never_goes_negative(engine: TimerEngine, recorder):
    recorder.watch(engine.tick, "tick")
    run_until(engine, 1)

    engine.advance()
    engine.advance()

    assert min(state.seconds_left for (state,) in recorder.of("tick")) >= 0
    assert engine.state.seconds_left == engine.state.total_seconds


def test_skip_work_counts_the_session(engine: TimerEngine):
    engine.skip()
    state = engine.state

    assert state.phase == TimerPhase.BREAK
    assert state.sessions_completed == 1
    assert state.current_session_in_cycle == 2
    assert state.status == TimerStatus.IDLE


@pytest.mark.parametrize("phase", [TimerPhase.BREAK, TimerPhase.LONG_BREAK])
def test_skip_break_returns_to_work_without_counting(engine: TimerEngine, phase):
    enter_phase(engine, phase)
    completed_before = engine.state.sessions_completed

    engine.skip()

    assert engine.phase == TimerPhase.WORK
    assert engine.state.sessions_completed == completed_before


def test_skip_cycles_to_long_break_like_completion(engine: TimerEngine):
    skip_to_cycle(engine, 4)

    engine.skip()

    assert engine.phase == TimerPhase.LONG_BREAK
    assert engine.state.current_session_in_cycle == 1


def test_skip_is_silent(engine: TimerEngine, notifier, recorder):
    # Skipping is treated as silent: no sound and no phase_completed.
    recorder.watch(engine.phase_completed, "completed")
    engine.start()

    engine.skip()
    engine.skip()

    assert notifier.calls == []
    assert recorder.of("completed") == []
    assert engine.countdown_armed is False


def test_update_settings_while_idle_applies_immediately(engine: TimerEngine):
    engine.update_settings({"work_duration": 20})

    assert engine.settings.work_duration == 20
    assert engine.state.seconds_left == 20
    assert engine.state.total_seconds == 20


def test_update_settings_accepts_keyword_changes(engine: TimerEngine):
    engine.update_settings(break_duration=120, volume=0.25)

    assert engine.settings.break_duration == 120
    assert engine.settings.volume == 0.25


def test_negative_duration_is_ignored(engine: TimerEngine, recorder):
    recorder.watch(engine.settings_changed, "settings")

    engine.update_settings({"work_duration": -5})

    assert engine.settings.work_duration == 10
    assert engine.state.seconds_left == 10
    assert recorder.of("settings") == []


@pytest.mark.parametrize("value", [0, -1, "abc", "", None, True, 2.5, [10]])
def test_invalid_durations_are_ignored(engine: TimerEngine, value):
    engine.update_settings({"break_duration": value, "sessions_before_long_break": value})

    assert engine.settings.break_duration == 3
    assert engine.settings.sessions_before_long_break == 4


def test_numeric_strings_are_accepted(engine: TimerEngine):
    engine.update_settings({"work_duration": " 30 ", "volume": "0.8"})

    assert engine.settings.work_duration == 30
    assert engine.settings.volume == 0.8


def test_valid_fields_apply_when_others_are_rejected(engine: TimerEngine):
    engine.update_settings({"work_duration": 0, "long_break_duration": 600, "bogus": 1})

    assert engine.settings.work_duration == 10
    assert engine.settings.long_break_duration == 600


@pytest.mark.parametrize("value", [-0.1, 1.5, "loud", float("nan"), False])
def test_volume_outside_range_is_ignored(engine: TimerEngine, value):
    engine.update_settings({"volume": value})

    assert engine.settings.volume == 0.5


def test_notification_sound_accepts_known_names_only(engine: TimerEngine):
    engine.update_settings({"notification_sound": "ring"})
    assert engine.settings.notification_sound == NotificationSound.RING

    engine.update_settings({"notification_sound": "trumpet"})
    assert engine.settings.notification_sound == NotificationSound.RING


def test_update_settings_while_running_is_deferred(engine: TimerEngine):
    run_until(engine, 8)

    engine.update_settings({"work_duration": 100})

    assert engine.state.seconds_left == 8
    assert engine.state.total_seconds == 10

    engine.reset()

    assert engine.state.seconds_left == 100


def test_deferred_duration_applies_on_next_phase_switch(engine: TimerEngine):
    run_until(engine, 5)
    engine.update_settings({"break_duration": 42})

    engine.skip()

    assert engine.phase == TimerPhase.BREAK
    assert engine.state.seconds_left == 42


def test_shrinking_cycle_clamps_position(engine: TimerEngine):
    skip_to_cycle(engine, 4)

    engine.update_settings({"sessions_before_long_break": 2})

    assert engine.state.current_session_in_cycle == 2
    engine.skip()
    assert engine.phase == TimerPhase.LONG_BREAK


def test_notification_uses_current_sound_and_volume(engine: TimerEngine, notifier):
    engine.update_settings({"notification_sound": "digital", "volume": 0.9})
    run_until(engine, 1)

    engine.advance()

    assert notifier.calls == [(NotificationKind.WORK, NotificationSound.DIGITAL, 0.9)]


def test_engine_copies_initial_settings():
    settings = TimerSettings(work_duration=60)
    engine = TimerEngine(settings)

    settings.work_duration = 5

    assert engine.settings.work_duration == 60
    engine.cleanup()


def test_tick_carries_snapshot(engine: TimerEngine, recorder):
    recorder.watch(engine.tick, "tick")

    run_until(engine, 9)

    last = recorder.of("tick")[-1][0]
    assert last.seconds_left == 9
    assert last.format_remaining() == "00:09"
    assert last.elapsed_seconds == 1


def test_cleanup_cancels_countdown(engine: TimerEngine):
    engine.start()

    engine.cleanup()

    assert engine.countdown_armed is False
    assert engine.status == TimerStatus.IDLE


def test_set_notifier_swaps_the_sink(engine: TimerEngine, notifier):
    replacement = type(notifier)()
    engine.set_notifier(replacement)
    run_until(engine, 1)

    engine.advance()

    assert notifier.calls == []
    assert len(replacement.calls) == 1
