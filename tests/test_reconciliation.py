from datetime import datetime, timedelta, timezone

from workout_tracker.schemas.tracker_schemas import (
    Dataset,
    Exercise,
    HealthEntry,
    Routine,
    RoutineExercise,
    WorkoutSession,
)
from workout_tracker.services.reconciliation import merge, rebase, replace

BASE = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def session(session_id, days=0, notes=""):
    return WorkoutSession(
        id=session_id,
        timestamp=BASE + timedelta(days=days),
        notes=notes,
        exercises=[Exercise(name="Squat", sets=3, reps=5, weight=100)],
        duration_minutes=45,
    )


def ids(records):
    return [r.id for r in records]


def test_remote_wins_on_collision_and_unique_records_survive():
    local = Dataset(sessions=[session("s1", notes="100")])
    remote = Dataset(sessions=[session("s1", notes="remote"), session("s2", days=1, notes="200")])

    merged = merge(local, remote)

    assert ids(merged.sessions) == ["s2", "s1"]
    assert merged.find_session("s1").notes == "remote"
    assert merged.find_session("s2").notes == "200"


def test_merge_contains_union_of_ids_once():
    a = Dataset(
        sessions=[session("a1"), session("shared", days=2)],
        health_entries=[HealthEntry(id="h1", bodyweight=80, timestamp=BASE)],
        routines=[Routine(id="r1", name="Push", exercises=[RoutineExercise(name="Bench", sets=3, reps=8)])],
    )
    b = Dataset(
        sessions=[session("b1", days=1), session("shared", days=2, notes="b")],
        health_entries=[HealthEntry(id="h2", sleep_hours=7, timestamp=BASE + timedelta(days=1))],
        routines=[Routine(id="r2", name="Pull", exercises=[RoutineExercise(name="Row", sets=3, reps=10)])],
    )

    ab = merge(a, b)
    ba = merge(b, a)

    assert sorted(ids(ab.sessions)) == ["a1", "b1", "shared"]
    assert set(ids(ab.sessions)) == set(ids(ba.sessions))
    assert ids(ab.health_entries) == ["h2", "h1"]
    assert ids(ab.routines) == ["r1", "r2"]


def test_merge_with_itself_is_identity():
    dataset = Dataset(sessions=[session("s2", days=1), session("s1")])
    assert merge(dataset, dataset) == dataset


def test_last_duplicate_within_one_side_wins():
    local = Dataset(sessions=[session("s1", notes="first"), session("s1", notes="second")])
    merged = merge(local, Dataset())
    assert len(merged.sessions) == 1
    assert merged.sessions[0].notes == "second"


def test_merge_does_not_mutate_inputs():
    local = Dataset(sessions=[session("s1")])
    remote = Dataset(sessions=[session("s2", days=1)])
    merge(local, remote)
    assert ids(local.sessions) == ["s1"]
    assert ids(remote.sessions) == ["s2"]


def test_routines_keep_insertion_order():
    local = Dataset(routines=[Routine(id="r2", name="B", exercises=[]), Routine(id="r1", name="A", exercises=[])])
    merged = merge(local, Dataset(routines=[Routine(id="r3", name="C", exercises=[])]))
    assert ids(merged.routines) == ["r2", "r1", "r3"]


def test_replace_returns_remote():
    local = Dataset(sessions=[session("s1")])
    remote = Dataset(sessions=[session("s9", days=3)])
    assert replace(local, remote) == remote


def test_rebase_replays_edits_made_during_a_reconcile():
    before = Dataset(
        sessions=[session("s2", days=1), session("s1")],
        routines=[Routine(id="r1", name="A", exercises=[])],
    )
    after = Dataset(
        sessions=[session("s3", days=5), session("s1", notes="edited")],
        routines=[Routine(id="r1", name="A", exercises=[]), Routine(id="r2", name="B", exercises=[])],
    )
    reconciled = Dataset(
        sessions=[session("s4", days=3), session("s2", days=1), session("s1", notes="remote")],
        routines=[Routine(id="r0", name="Z", exercises=[]), Routine(id="r1", name="A", exercises=[])],
    )

    rebased = rebase(reconciled, before, after)

    assert ids(rebased.sessions) == ["s3", "s4", "s1"]
    assert rebased.find_session("s1").notes == "edited"
    assert ids(rebased.routines) == ["r0", "r1", "r2"]


def test_rebase_without_edits_keeps_the_reconciled_copy():
    snapshot = Dataset(sessions=[session("s1", notes="local")])
    reconciled = Dataset(sessions=[session("s2", days=1), session("s1", notes="remote")])
    assert rebase(reconciled, snapshot, snapshot.model_copy(deep=True)) == reconciled
