"""
Progress aggregation over a Dataset: per-session volume, per-exercise
totals, weekly frequency and the latest bodyweight. Every weight is
normalized to kg before it is summed or compared.
"""

from collections import defaultdict
from datetime import timedelta
from typing import Dict, List, Optional

from workout_tracker.schemas.progress_schemas import (
    ExercisePoint,
    ExerciseProgress,
    ProgressSummary,
    SessionVolume,
    WeeklyCount,
)
from workout_tracker.schemas.tracker_schemas import Dataset, WorkoutSession
from workout_tracker.utils.units import exercise_volume_kg, to_kg


def session_volume(session: WorkoutSession) -> SessionVolume:
    return SessionVolume(
        session_id=session.id,
        timestamp=session.timestamp,
        name=session.name,
        total_volume_kg=round(sum(exercise_volume_kg(e) for e in session.exercises), 2),
        total_reps=sum(e.sets * e.reps for e in session.exercises),
    )


def exercise_totals(sessions: List[WorkoutSession]) -> List[ExerciseProgress]:
    totals: Dict[str, ExerciseProgress] = {}
    for session in sessions:
        seen = set()
        for exercise in session.exercises:
            entry = totals.setdefault(exercise.name, ExerciseProgress(name=exercise.name))
            entry.total_volume_kg += exercise_volume_kg(exercise)
            entry.total_reps += exercise.sets * exercise.reps
            entry.best_weight_kg = max(entry.best_weight_kg, to_kg(exercise.weight, exercise.unit))
            if exercise.name not in seen:
                entry.session_count += 1
                seen.add(exercise.name)

    for entry in totals.values():
        entry.total_volume_kg = round(entry.total_volume_kg, 2)
        entry.best_weight_kg = round(entry.best_weight_kg, 2)
    return sorted(totals.values(), key=lambda e: e.total_volume_kg, reverse=True)


def exercise_history(sessions: List[WorkoutSession], exercise_name: str) -> List[ExercisePoint]:
    """Heaviest set per session for one exercise, oldest first."""
    points = []
    for session in sorted(sessions, key=lambda s: s.timestamp):
        matches = [e for e in session.exercises if e.name == exercise_name]
        if not matches:
            continue
        best = max(matches, key=lambda e: (to_kg(e.weight, e.unit), e.reps))
        points.append(ExercisePoint(
            timestamp=session.timestamp,
            weight_kg=round(to_kg(best.weight, best.unit), 2),
            reps=best.reps,
        ))
    return points


def weekly_counts(sessions: List[WorkoutSession]) -> List[WeeklyCount]:
    # Weeks start on Monday
    counts = defaultdict(int)
    for session in sessions:
        day = session.timestamp.date()
        counts[day - timedelta(days=day.weekday())] += 1
    return [WeeklyCount(week_start=week, sessions=count) for week, count in sorted(counts.items())]


def latest_bodyweight_kg(dataset: Dataset) -> Optional[float]:
    weighed = [h for h in dataset.health_entries if h.bodyweight is not None]
    if not weighed:
        return None
    latest = max(weighed, key=lambda h: h.timestamp)
    return round(to_kg(latest.bodyweight, latest.bodyweight_unit), 2)


def summarize(dataset: Dataset) -> ProgressSummary:
    sessions = [s for s in dataset.sessions if not s.is_draft]
    volumes = [session_volume(s) for s in sorted(sessions, key=lambda s: s.timestamp)]
    return ProgressSummary(
        total_sessions=len(sessions),
        total_volume_kg=round(sum(v.total_volume_kg for v in volumes), 2),
        total_reps=sum(v.total_reps for v in volumes),
        workout_days=len({s.timestamp.date() for s in sessions}),
        latest_bodyweight_kg=latest_bodyweight_kg(dataset),
        sessions=volumes,
        exercises=exercise_totals(sessions),
        weekly=weekly_counts(sessions),
    )
