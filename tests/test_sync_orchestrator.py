import asyncio
from datetime import datetime, timezone

import pytest

from workout_tracker.core.config import settings
from workout_tracker.enums import SignInStrategy, SyncStatus
from workout_tracker.exceptions import ExternalServiceError, SyncError
from workout_tracker.schemas.tracker_schemas import Dataset, Exercise, HealthEntry, WorkoutSession
from workout_tracker.services.fitness_sink import FitnessLogSink, RecordingFitnessSink
from workout_tracker.services.remote_store import InMemoryDocumentStore, RemoteDocumentStore
from workout_tracker.services.sync_orchestrator import SyncOrchestrator


class UnreachableStore(RemoteDocumentStore):
    async def read(self):
        raise SyncError("remote unreachable")

    async def write(self, dataset):
        raise SyncError("remote unreachable")


class BrokenSink(FitnessLogSink):
    async def _send_weight(self, entry, weight_kg):
        raise ExternalServiceError("fit down")

    async def _send_session(self, session):
        raise ExternalServiceError("fit down")


class DelayedStore(InMemoryDocumentStore):
    """Each write waits for the next delay in line before landing."""

    def __init__(self, delays):
        super().__init__()
        self.delays = list(delays)

    async def write(self, dataset):
        await asyncio.sleep(self.delays.pop(0) if self.delays else 0)
        await super().write(dataset)


class CorruptStore(RemoteDocumentStore):
    async def read(self):
        raise ValueError("document is not JSON")

    async def write(self, dataset):
        raise AssertionError("must not write after a failed read")


class ClosingStore(InMemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.closed = False

    async def aclose(self):
        self.closed = True


class ClosingSink(RecordingFitnessSink):
    def __init__(self):
        super().__init__()
        self.closed = False

    async def aclose(self):
        self.closed = True


def make_session(session_id, notes="", day=1):
    return WorkoutSession(
        id=session_id,
        timestamp=datetime(2024, 5, day, 8, 0, tzinfo=timezone.utc),
        notes=notes,
        exercises=[Exercise(name="Push-ups", sets=3, reps=10)],
        duration_minutes=20,
    )


async def test_sign_in_without_remote_pushes_local():
    store = InMemoryDocumentStore()
    orchestrator = SyncOrchestrator(store)
    local = Dataset(sessions=[make_session("s1")])

    result = await orchestrator.sign_in(local)

    assert result == local
    assert await store.read() == local
    assert orchestrator.reconciled
    assert orchestrator.status == SyncStatus.SUCCESS


async def test_sign_in_merges_with_remote_winning():
    store = InMemoryDocumentStore(Dataset(sessions=[make_session("s1", "remote"), make_session("s2", "200", day=2)]))
    orchestrator = SyncOrchestrator(store)

    result = await orchestrator.sign_in(Dataset(sessions=[make_session("s1", "100")]))

    assert [s.id for s in result.sessions] == ["s2", "s1"]
    assert result.find_session("s1").notes == "remote"
    assert await store.read() == result


async def test_sign_in_replace_discards_local():
    remote = Dataset(sessions=[make_session("r1")])
    orchestrator = SyncOrchestrator(InMemoryDocumentStore(remote))

    result = await orchestrator.sign_in(Dataset(sessions=[make_session("guest")]), SignInStrategy.REPLACE)

    assert [s.id for s in result.sessions] == ["r1"]


async def test_sign_in_failure_sets_error_and_stays_unreconciled():
    orchestrator = SyncOrchestrator(UnreachableStore())

    with pytest.raises(SyncError):
        await orchestrator.sign_in(Dataset())

    assert orchestrator.status == SyncStatus.ERROR
    assert orchestrator.last_error == "remote unreachable"
    assert not orchestrator.reconciled


async def test_failed_push_only_reports_error():
    orchestrator = SyncOrchestrator(UnreachableStore())
    orchestrator.reconciled = True
    dataset = Dataset(sessions=[make_session("s1")])

    await orchestrator.push(dataset)

    assert orchestrator.status == SyncStatus.ERROR
    assert [s.id for s in dataset.sessions] == ["s1"]


async def test_push_before_reconcile_merges_instead_of_overwriting():
    store = InMemoryDocumentStore(Dataset(sessions=[make_session("remote-only")]))
    adopted = []
    orchestrator = SyncOrchestrator(store, on_reconciled=lambda pushed, merged: adopted.append(merged))

    await orchestrator.push(Dataset(sessions=[make_session("local", day=2)]))

    remote = await store.read()
    assert sorted(s.id for s in remote.sessions) == ["local", "remote-only"]
    assert adopted and sorted(s.id for s in adopted[0].sessions) == ["local", "remote-only"]
    assert orchestrator.reconciled


async def test_push_writes_full_dataset_once_reconciled():
    store = InMemoryDocumentStore()
    orchestrator = SyncOrchestrator(store)
    await orchestrator.sign_in(Dataset())

    orchestrator.push(Dataset(sessions=[make_session("s1")]))
    await orchestrator.drain()

    assert store.write_count == 2
    assert [s.id for s in (await store.read()).sessions] == ["s1"]


async def test_status_returns_to_idle(monkeypatch):
    monkeypatch.setattr(settings, "SYNC_STATUS_RESET_SECONDS", 0.01)
    orchestrator = SyncOrchestrator(InMemoryDocumentStore())
    seen = []
    orchestrator.subscribe(seen.append)

    await orchestrator.sign_in(Dataset())
    await asyncio.sleep(0.05)

    assert seen == [SyncStatus.SYNCING, SyncStatus.SUCCESS, SyncStatus.IDLE]
    assert orchestrator.status == SyncStatus.IDLE


async def test_forwarding_is_best_effort():
    recording = RecordingFitnessSink()
    orchestrator = SyncOrchestrator(InMemoryDocumentStore(), fitness_sink=recording)
    entry = HealthEntry(bodyweight=176, bodyweight_unit="lb")

    orchestrator.forward_session(make_session("s1"))
    orchestrator.forward_health_entry(entry)
    orchestrator.forward_health_entry(HealthEntry(sleep_hours=8))
    await orchestrator.drain()

    assert recording.sessions == ["s1"]
    assert recording.weights == [(entry.id, pytest.approx(176 * 0.453592))]

    broken = SyncOrchestrator(InMemoryDocumentStore(), fitness_sink=BrokenSink())
    broken.forward_session(make_session("s1"))
    await broken.drain()
    assert broken.status == SyncStatus.IDLE


async def test_session_without_duration_is_not_forwarded():
    recording = RecordingFitnessSink()
    orchestrator = SyncOrchestrator(InMemoryDocumentStore(), fitness_sink=recording)

    orchestrator.forward_session(make_session("s1").model_copy(update={"duration_minutes": 0}))
    await orchestrator.drain()

    assert recording.sessions == []


async def test_slow_older_push_cannot_overwrite_newer_one():
    store = DelayedStore(delays=[0, 0.05, 0])
    orchestrator = SyncOrchestrator(store)
    await orchestrator.sign_in(Dataset())

    orchestrator.push(Dataset(sessions=[make_session("s1")]))
    # Let the older write start before the newer push is queued
    await asyncio.sleep(0)
    orchestrator.push(Dataset(sessions=[make_session("s1"), make_session("s2", day=2)]))
    await orchestrator.drain()

    assert sorted(s.id for s in (await store.read()).sessions) == ["s1", "s2"]
    assert store.write_count == 3


async def test_queued_pushes_collapse_into_the_newest():
    store = InMemoryDocumentStore()
    orchestrator = SyncOrchestrator(store)
    await orchestrator.sign_in(Dataset())

    for count in range(1, 4):
        orchestrator.push(Dataset(sessions=[make_session(f"s{i}", day=i) for i in range(1, count + 1)]))
    await orchestrator.drain()

    assert store.write_count == 2
    assert len((await store.read()).sessions) == 3


async def test_unexpected_store_failure_is_a_sync_error():
    orchestrator = SyncOrchestrator(CorruptStore())

    with pytest.raises(SyncError):
        await orchestrator.sign_in(Dataset())
    assert orchestrator.status == SyncStatus.ERROR

    # Same failure on the deferred reconcile path only reports
    await orchestrator.push(Dataset(sessions=[make_session("s1")]))
    assert orchestrator.status == SyncStatus.ERROR
    assert not orchestrator.reconciled


async def test_aclose_finishes_pushes_then_closes_clients():
    store = ClosingStore()
    sink = ClosingSink()
    orchestrator = SyncOrchestrator(store, fitness_sink=sink)
    await orchestrator.sign_in(Dataset())

    orchestrator.push(Dataset(sessions=[make_session("s1")]))
    orchestrator.forward_session(make_session("s1"))
    await orchestrator.aclose()

    assert [s.id for s in (await store.read()).sessions] == ["s1"]
    assert sink.sessions == ["s1"]
    assert store.closed and sink.closed


def test_merge_choice_needed_only_for_non_empty_local():
    assert not SyncOrchestrator.needs_merge_choice(Dataset())
    assert SyncOrchestrator.needs_merge_choice(Dataset(sessions=[make_session("s1")]))
