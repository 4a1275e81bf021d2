"""PlaybackEngine state machine tests"""

import random

import pytest

from arif_music.core.exceptions import NotFoundError, PlaybackError, ValidationError
from arif_music.playback.commands import (
    LoadTrack,
    Pause,
    Play,
    SeekTo,
    SetQueue,
    SkipToNext,
    Tick,
)
from arif_music.playback.engine import PlaybackEngine
from arif_music.playback.state import PlaybackStatus, RepeatMode
from tests.conftest import FakeClock, FakeSource, make_music


class ManualTime:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall():
    return ManualTime()


@pytest.fixture
def failing():
    """Track ids whose audio cannot be prepared"""
    return set()


@pytest.fixture
def engine(music_repo, listener, catalogue, clock, wall, failing):
    return PlaybackEngine(
        music_repo, clock=clock, source_factory=lambda music: FakeSource(music, failing),
        rng=random.Random(7), monotonic=wall
    )


def set_repeat(engine, mode):
    while engine.snapshot().repeat_mode is not mode:
        engine.toggle_repeat_mode()


class TestTransport:

    def test_initial_state(self, engine):
        state = engine.snapshot()
        assert state.status is PlaybackStatus.IDLE
        assert state.current_track is None
        assert state.queue == ()

    def test_load_play_pause(self, engine, clock):
        state = engine.load_track("m1")
        assert state.status is PlaybackStatus.LOADED
        assert state.current_track.id == "m1"
        assert state.duration_ms == 180000

        assert engine.play().status is PlaybackStatus.PLAYING
        assert clock.running

        assert engine.pause().status is PlaybackStatus.PAUSED
        assert not clock.running

    def test_play_when_idle(self, engine):
        with pytest.raises(PlaybackError):
            engine.play()

    def test_load_unknown_track(self, engine):
        with pytest.raises(NotFoundError):
            engine.load_track("ghost")

    def test_stop_keeps_queue(self, engine, clock):
        engine.set_queue(["m1", "m2"])
        engine.play()

        state = engine.stop()

        assert state.status is PlaybackStatus.IDLE
        assert state.current_track is None
        assert state.queue == ("m1", "m2")
        assert not clock.running

    def test_seek_is_clamped(self, engine):
        engine.load_track("m1")
        assert engine.seek_to(-50).position_ms == 0
        assert engine.seek_to(999999).position_ms == 180000
        assert engine.seek_to(42000).position_ms == 42000

    def test_seek_when_idle(self, engine):
        with pytest.raises(PlaybackError):
            engine.seek_to(10)

    def test_play_recorded_once(self, engine, store):
        engine.load_track("m1")
        engine.play()
        engine.pause()
        engine.play()
        assert store.get_music("m1").play_count == 1


class TestTick:

    def test_tick_only_while_playing(self, engine):
        engine.load_track("m1")
        assert engine.tick(5000).position_ms == 0

        engine.play()
        assert engine.tick(5000).position_ms == 5000

    def test_tick_measures_wall_time(self, engine, wall):
        engine.load_track("m1")
        engine.play()
        wall.now += 2.5
        assert engine.tick().position_ms == 2500

    def test_end_of_track_advances(self, engine):
        engine.set_queue(["m1", "m2"])
        engine.play()

        state = engine.tick(180000)

        assert state.current_track.id == "m2"
        assert state.position_ms == 0
        assert state.status is PlaybackStatus.PLAYING

    def test_end_of_queue_stops(self, engine, clock):
        engine.set_queue(["m1"])
        engine.play()

        state = engine.tick(180000)

        assert state.status is PlaybackStatus.IDLE
        assert not clock.running

    def test_unknown_duration_never_ends(self, engine, store):
        make_music(store, "live", duration_ms=0)
        engine.load_track("live")
        engine.play()
        state = engine.tick(10 ** 9)
        assert state.current_track.id == "live"
        assert state.status is PlaybackStatus.PLAYING


class TestQueue:

    def test_set_queue_validation(self, engine):
        with pytest.raises(ValidationError):
            engine.set_queue([])
        with pytest.raises(ValidationError):
            engine.set_queue(["m1"], start_index=3)
        with pytest.raises(NotFoundError):
            engine.set_queue(["m1", "ghost"])
        assert engine.snapshot().status is PlaybackStatus.IDLE

    def test_load_track_in_queue_moves_cursor(self, engine):
        engine.set_queue(["m1", "m2", "m3"])
        state = engine.load_track("m3")
        assert state.queue == ("m1", "m2", "m3")
        assert state.queue_index == 2

    def test_load_track_outside_queue_replaces_it(self, engine, store):
        make_music(store, "m4")
        engine.set_queue(["m1", "m2"])
        assert engine.load_track("m4").queue == ("m4",)

    def test_repeat_one_reloads_same_track(self, engine):
        engine.set_queue(["m1", "m2"])
        set_repeat(engine, RepeatMode.ONE)
        engine.play()
        engine.tick(60000)

        state = engine.skip_to_next()

        assert state.current_track.id == "m1"
        assert state.position_ms == 0
        assert state.status is PlaybackStatus.PLAYING

    def test_repeat_all_wraps(self, engine):
        engine.set_queue(["m1", "m2"], start_index=1)
        set_repeat(engine, RepeatMode.ALL)

        assert engine.skip_to_next().current_track.id == "m1"
        assert engine.skip_to_previous().current_track.id == "m2"

    def test_repeat_none_stops_at_end(self, engine):
        engine.set_queue(["m1", "m2"], start_index=1)
        assert engine.skip_to_next().status is PlaybackStatus.IDLE

    @pytest.mark.parametrize("mode", [RepeatMode.NONE, RepeatMode.ONE])
    def test_previous_at_start_stops(self, engine, clock, mode):
        engine.set_queue(["m1", "m2"])
        set_repeat(engine, mode)
        engine.play()
        engine.tick(30000)

        state = engine.skip_to_previous()

        assert state.status is PlaybackStatus.IDLE
        assert state.current_track is None
        assert state.queue == ("m1", "m2")
        assert not clock.running

    def test_unknown_next_track_keeps_cursor(self, engine, store):
        engine.set_queue(["m1", "m2"])
        engine.play()
        before = engine.snapshot()
        store.delete_music("m2")

        with pytest.raises(NotFoundError):
            engine.skip_to_next()

        assert engine.snapshot() == before
        assert engine.snapshot().queue_index == 0
        assert engine.snapshot().current_track.id == "m1"

    def test_unknown_previous_track_keeps_cursor(self, engine, store):
        engine.set_queue(["m1", "m2"], start_index=1)
        store.delete_music("m1")

        with pytest.raises(NotFoundError):
            engine.skip_to_previous()

        assert engine.snapshot().queue_index == 1
        assert engine.snapshot().current_track.id == "m2"

    def test_previous_without_queue(self, engine):
        with pytest.raises(PlaybackError):
            engine.skip_to_previous()

    def test_repeat_mode_cycles(self, engine):
        modes = [engine.toggle_repeat_mode().repeat_mode for _ in range(3)]
        assert modes == [RepeatMode.ONE, RepeatMode.ALL, RepeatMode.NONE]


class TestShuffle:

    def test_shuffle_keeps_current_and_permutes_rest(self, engine, store):
        for music_id in ("m4", "m5", "m6"):
            make_music(store, music_id)
        ids = ["m1", "m2", "m3", "m4", "m5", "m6"]
        engine.set_queue(ids, start_index=1)

        shuffled = engine.toggle_shuffle()

        assert shuffled.shuffle is True
        assert shuffled.queue[:2] == ("m1", "m2")
        assert sorted(shuffled.queue) == sorted(ids)
        assert shuffled.current_track.id == "m2"

        restored = engine.toggle_shuffle()
        assert restored.queue == tuple(ids)

    def test_set_queue_while_shuffled_starts_with_chosen_track(self, engine):
        engine.toggle_shuffle()
        state = engine.set_queue(["m1", "m2", "m3"], start_index=2)
        assert state.queue[0] == "m3"
        assert state.queue_index == 0
        assert sorted(state.queue) == ["m1", "m2", "m3"]


class TestFailures:

    def test_unplayable_track_pauses(self, engine, clock, failing):
        failing.add("m2")
        engine.set_queue(["m1", "m2"])
        engine.play()

        with pytest.raises(PlaybackError):
            engine.skip_to_next()

        state = engine.snapshot()
        assert state.current_track.id == "m2"
        assert state.status is PlaybackStatus.PAUSED
        assert not clock.running

    def test_play_retries_source(self, engine, failing):
        failing.add("m1")
        with pytest.raises(PlaybackError):
            engine.load_track("m1")

        with pytest.raises(PlaybackError):
            engine.play()

        failing.clear()
        assert engine.play().status is PlaybackStatus.PLAYING


class TestDispatch:

    def test_commands(self, engine):
        assert engine.dispatch(SetQueue(("m1", "m2"))).ok
        assert engine.dispatch(Play()).value.status is PlaybackStatus.PLAYING
        assert engine.dispatch(SeekTo(1000)).value.position_ms == 1000
        assert engine.dispatch(Tick(500)).value.position_ms == 1500
        assert engine.dispatch(SkipToNext()).value.current_track.id == "m2"
        assert engine.dispatch(Pause()).value.status is PlaybackStatus.PAUSED

    def test_errors_become_failures(self, engine):
        result = engine.dispatch(LoadTrack("ghost"))
        assert not result.ok
        assert isinstance(result.error, NotFoundError)

    def test_unknown_command(self, engine):
        result = engine.dispatch(object())
        assert isinstance(result.error, ValidationError)
