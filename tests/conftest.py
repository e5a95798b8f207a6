from datetime import datetime, timedelta, timezone

import pytest

from workout_tracker.services.durable_map import InMemoryDurableMap
from workout_tracker.services.profile_store import ProfileStore
from workout_tracker.services.tracker_service import TrackerService


class FakeClock:
    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeTimerHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Just enough of an event loop for call_later-driven timers, on a fake clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers = []

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.clock() + timedelta(seconds=delay), callback, args)
        self.timers.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.timers if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.clock() + timedelta(seconds=seconds)
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.timers.remove(handle)
            self.clock.now = handle.when
            handle.callback(*handle.args)
        self.clock.now = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_loop(clock):
    return FakeLoop(clock)


@pytest.fixture
def durable_map():
    return InMemoryDurableMap()


@pytest.fixture
def profile_store(durable_map):
    return ProfileStore(durable_map)


@pytest.fixture
def tracker(profile_store, fake_loop, clock):
    service = TrackerService(profile_store, loop=fake_loop, clock=clock)
    yield service
    service.close()
