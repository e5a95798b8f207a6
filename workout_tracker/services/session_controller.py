"""
Session Lifecycle Controller

State machine for the workout currently being logged:

    Idle --start_empty / start_from_routine / add_exercise--> Active(new)
    Idle --start_editing--> Active(editing)
    Active(*) --commit / cancel--> Idle

Active(new) sessions carry the "active" sentinel id and are auto-committed
after `session_timeout_minutes` without activity. Editing sessions never
time out.
"""

import asyncio
import math
from datetime import datetime
from typing import Callable, List, Optional

from workout_tracker.core.logger import get_logger
from workout_tracker.enums import SessionState
from workout_tracker.exceptions import NotFoundError
from workout_tracker.schemas.tracker_schemas import (
    ACTIVE_SESSION_ID,
    Exercise,
    ExerciseInput,
    Routine,
    UserSettings,
    WorkoutSession,
    new_id,
    utc_now,
)

logger = get_logger("session_controller")

EDITABLE_FIELDS = {"name", "warmup", "equipment", "notes", "timestamp", "duration_minutes"}


def upsert_session(sessions: List[WorkoutSession], session: WorkoutSession) -> List[WorkoutSession]:
    """Replace by id or append, newest first."""
    updated = [s for s in sessions if s.id != session.id] + [session]
    return sorted(updated, key=lambda s: s.timestamp, reverse=True)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    # Half-up rounding, never negative even if the start was edited into the future
    minutes = (end - start).total_seconds() / 60
    return max(0, int(math.floor(minutes + 0.5)))


class SessionLifecycleController:

    def __init__(
        self,
        on_commit: Callable[[WorkoutSession], None],
        find_session: Callable[[str], Optional[WorkoutSession]],
        get_settings: Callable[[], UserSettings],
        loop: asyncio.AbstractEventLoop = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            on_commit: receives every committed session; upserts it into the current Dataset
            find_session: looks up a persisted session for editing
            get_settings: current settings (timeout, default weight/unit)
            loop: event loop for the inactivity timer; the running loop when omitted
            clock: source of "now"
        """
        self._on_commit = on_commit
        self._find_session = find_session
        self._get_settings = get_settings
        self._loop = loop
        self._clock = clock

        self._session: Optional[WorkoutSession] = None
        self._state = SessionState.IDLE
        self._last_activity: Optional[datetime] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_generation = 0

    # ── Introspection ───────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_session(self) -> Optional[WorkoutSession]:
        return self._session.model_copy(deep=True) if self._session else None

    @property
    def last_activity(self) -> Optional[datetime]:
        return self._last_activity

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    # ── Transitions ─────────────────────────────────────────────────────────

    def start_empty(self) -> WorkoutSession:
        now = self._clock()
        return self._start_new(WorkoutSession(
            id=ACTIVE_SESSION_ID,
            timestamp=now,
            name=f"Workout - {now.date().isoformat()}",
        ))

    def start_from_routine(self, routine: Routine) -> WorkoutSession:
        settings = self._get_settings()
        exercises = [
            Exercise(
                id=new_id(),
                name=item.name,
                sets=item.sets,
                reps=item.reps,
                weight=settings.default_weight,
                unit=settings.default_unit,
            )
            for item in routine.exercises
        ]
        return self._start_new(WorkoutSession(
            id=ACTIVE_SESSION_ID,
            timestamp=self._clock(),
            name=f"Routine: {routine.name}",
            exercises=exercises,
        ))

    def add_exercise(self, logged: ExerciseInput) -> Exercise:
        """Log an exercise, starting a new session when Idle."""
        if self._session is None:
            exercise = Exercise(id=new_id(), **logged.model_dump())
            self._start_new(WorkoutSession(
                id=ACTIVE_SESSION_ID,
                timestamp=self._clock(),
                exercises=[exercise],
            ))
            return exercise

        key = logged.merge_key()
        for index, existing in enumerate(self._session.exercises):
            if existing.merge_key() == key:
                bumped = existing.model_copy(update={"sets": existing.sets + 1})
                self._session.exercises[index] = bumped
                self._touch()
                return bumped

        exercise = Exercise(id=new_id(), **logged.model_dump())
        self._session.exercises.append(exercise)
        self._touch()
        return exercise

    def update_fields(self, changes: dict) -> Optional[WorkoutSession]:
        if self._session is None:
            return None
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited on a session: {sorted(unknown)}")
        merged = {**self._session.model_dump(), **changes}
        self._session = WorkoutSession.model_validate(merged)
        self._touch()
        return self.active_session

    def start_editing(self, session_id: str) -> WorkoutSession:
        # Editing always displaces whatever is being logged
        self.commit()
        persisted = self._find_session(session_id)
        if persisted is None:
            raise NotFoundError(f"Session {session_id} not found.")

        self._session = persisted.model_copy(deep=True)
        self._state = SessionState.ACTIVE_EDITING
        self._last_activity = None
        self._cancel_timer()
        logger.info(f"Editing session {session_id}")
        return self.active_session

    def commit(self) -> Optional[WorkoutSession]:
        """Finalize the active session. Empty sessions are dropped without a trace."""
        session = self._session
        if session is None:
            return None
        if not session.exercises:
            logger.debug("Discarding empty session")
            self._reset()
            return None

        if self._state == SessionState.ACTIVE_NEW:
            committed = session.model_copy(update={
                "id": new_id(),
                "duration_minutes": elapsed_minutes(session.timestamp, self._clock()),
            })
        else:
            committed = session.model_copy()

        self._on_commit(committed)
        self._reset()
        logger.info(f"Committed session {committed.id} with {len(committed.exercises)} exercise(s)")
        return committed

    def cancel(self) -> None:
        if self._session is not None:
            logger.info("Active session cancelled")
        self._reset()

    def settings_changed(self) -> None:
        """Re-arm with the new timeout, still measured from the last activity."""
        self._arm_timer()

    def shutdown(self) -> None:
        self._cancel_timer()

    # ── Internals ───────────────────────────────────────────────────────────

    def _start_new(self, session: WorkoutSession) -> WorkoutSession:
        if self._session is not None:
            self.commit()
        self._session = session
        self._state = SessionState.ACTIVE_NEW
        self._touch()
        return self.active_session

    def _touch(self) -> None:
        if self._state == SessionState.ACTIVE_NEW:
            self._last_activity = self._clock()
            self._arm_timer()

    def _reset(self) -> None:
        self._cancel_timer()
        self._session = None
        self._state = SessionState.IDLE
        self._last_activity = None

    def _cancel_timer(self) -> None:
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm_timer(self) -> None:
        self._cancel_timer()
        if self._state != SessionState.ACTIVE_NEW or self._last_activity is None:
            return

        timeout_seconds = self._get_settings().session_timeout_minutes * 60
        idle_seconds = (self._clock() - self._last_activity).total_seconds()
        remaining = timeout_seconds - idle_seconds
        if remaining <= 0:
            self._auto_commit(self._timer_generation)
            return

        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; inactivity timer not armed")
                return
        self._timer = loop.call_later(remaining, self._auto_commit, self._timer_generation)

    def _auto_commit(self, generation: int) -> None:
        # A stale handle whose cancel raced with firing must do nothing
        if generation != self._timer_generation:
            return
        self._timer = None
        if self._state != SessionState.ACTIVE_NEW:
            return
        logger.info("Session inactivity timeout reached; auto-committing")
        self.commit()
