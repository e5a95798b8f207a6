"""
Tracker Service
Owns the current application mode and the Dataset that belongs to it, and
routes every mutation to where that mode persists it:

    LocalProfileMode  -> the profile in the Profile Store (durable map)
    CloudAccountMode  -> in memory, then pushed by the Sync Orchestrator
    UnauthenticatedMode -> in memory only

The Dataset is always replaced wholesale when the mode changes.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from workout_tracker.core.logger import get_logger
from workout_tracker.enums import BackupKey, SignInStrategy, SyncStatus
from workout_tracker.exceptions import ModeError, NotFoundError, ValidationError
from workout_tracker.schemas.progress_schemas import ProgressSummary
from workout_tracker.schemas.tracker_schemas import (
    Dataset,
    HealthEntry,
    HealthEntryInput,
    Profile,
    Routine,
    RoutineExercise,
    UserSettings,
    WorkoutSession,
    utc_now,
)
from workout_tracker.services import backup, progress_service, reconciliation
from workout_tracker.services.fitness_sink import FitnessLogSink
from workout_tracker.services.profile_store import ProfileStore
from workout_tracker.services.remote_store import RemoteDocumentStore
from workout_tracker.services.session_controller import SessionLifecycleController, upsert_session
from workout_tracker.services.sync_orchestrator import SyncOrchestrator

logger = get_logger("tracker_service")


@dataclass(frozen=True)
class LocalProfileMode:
    profile_id: str


@dataclass(frozen=True)
class CloudAccountMode:
    account: str


@dataclass(frozen=True)
class UnauthenticatedMode:
    pass


AppMode = Union[LocalProfileMode, CloudAccountMode, UnauthenticatedMode]


class TrackerService:

    def __init__(
        self,
        profile_store: ProfileStore,
        loop: asyncio.AbstractEventLoop = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.profile_store = profile_store
        self._loop = loop
        self._clock = clock

        self.mode: AppMode = UnauthenticatedMode()
        self.dataset = Dataset()
        self.settings = UserSettings()
        self.sync: Optional[SyncOrchestrator] = None
        self._retiring: Set[asyncio.Task] = set()

        self.sessions = SessionLifecycleController(
            on_commit=self._store_committed_session,
            find_session=lambda session_id: self.dataset.find_session(session_id),
            get_settings=lambda: self.settings,
            loop=loop,
            clock=clock,
        )
        self._unsubscribe = profile_store.subscribe(self._on_profiles_changed)

    # ── Mode ────────────────────────────────────────────────────────────────

    @property
    def active_profile(self) -> Optional[Profile]:
        if isinstance(self.mode, LocalProfileMode):
            return self.profile_store.get(self.mode.profile_id)
        return None

    @property
    def sync_status(self) -> SyncStatus:
        return self.sync.status if self.sync else SyncStatus.IDLE

    def _switch_mode(self, mode: AppMode, dataset: Dataset, settings: UserSettings) -> None:
        # Whatever is being logged belongs to the mode we are leaving
        self.sessions.commit()
        if not isinstance(mode, CloudAccountMode):
            self._retire_sync()
        self.mode = mode
        self.dataset = dataset.model_copy(deep=True)
        self.settings = settings.model_copy()
        logger.info(f"Mode is now {type(mode).__name__}")

    def _retire_sync(self) -> None:
        """Drop the orchestrator; its pending pushes finish and its HTTP clients close in the background."""
        sync, self.sync = self.sync, None
        if sync is None:
            return
        task = asyncio.get_running_loop().create_task(sync.aclose())
        self._retiring.add(task)
        task.add_done_callback(self._retiring.discard)

    def _enter_profile(self, profile: Profile) -> None:
        self._switch_mode(LocalProfileMode(profile.id), profile.dataset, profile.settings)

    def _enter_unauthenticated(self) -> None:
        self._switch_mode(UnauthenticatedMode(), Dataset(), UserSettings())

    def restore(self) -> AppMode:
        """Re-enter the local profile the durable map says was last active."""
        active_id = self.profile_store.get_active_id()
        profile = self.profile_store.get(active_id) if active_id else None
        if profile is not None:
            self._enter_profile(profile)
        elif active_id:
            logger.warning(f"Active profile {active_id} no longer exists; clearing pointer")
            self.profile_store.set_active_id(None)
        return self.mode

    def register(self, username: str, password: str) -> Tuple[Profile, str]:
        """Create a local profile, make it active, and return it with its recovery code."""
        profile, recovery_code = self.profile_store.register(username, password)
        self._enter_profile(profile)
        self.profile_store.set_active_id(profile.id)
        return profile, recovery_code

    def login_local(self, username: str, password: str) -> Profile:
        profile = self.profile_store.authenticate(username, password)
        self._enter_profile(profile)
        self.profile_store.set_active_id(profile.id)
        logger.info(f"Logged into local profile {profile.id}")
        return profile

    def reset_password(self, username: str, recovery_code: str, new_password: str) -> bool:
        return self.profile_store.reset_password(username, recovery_code, new_password)

    def logout(self) -> None:
        if isinstance(self.mode, LocalProfileMode):
            self.profile_store.set_active_id(None)
        self._enter_unauthenticated()

    # ── Cloud ───────────────────────────────────────────────────────────────

    def needs_merge_choice(self) -> bool:
        return SyncOrchestrator.needs_merge_choice(self.dataset)

    async def sign_in_cloud(
        self,
        account: str,
        remote_store: RemoteDocumentStore,
        fitness_sink: FitnessLogSink = None,
        strategy: SignInStrategy = SignInStrategy.MERGE,
    ) -> Dataset:
        """
        Enter cloud mode carrying the current Dataset as the pre-sign-in data,
        then reconcile it with the remote document.

        If the remote cannot be reached the mode still switches; the
        orchestrator stays unreconciled and its next push reconciles first.
        """
        self.sessions.commit()
        if isinstance(self.mode, LocalProfileMode):
            # A local profile and a cloud account are never active together
            self.profile_store.set_active_id(None)
        previous, self.sync = self.sync, None
        if previous is not None:
            await previous.aclose()

        before = self.dataset
        sync = SyncOrchestrator(
            remote_store,
            fitness_sink=fitness_sink,
            on_reconciled=self._adopt_background_reconcile,
            loop=self._loop,
        )
        self.sync = sync
        self.mode = CloudAccountMode(account)
        logger.info(f"Signing in to cloud account {account} ({strategy.value})")

        result = await sync.sign_in(before.model_copy(deep=True), strategy)
        return self._adopt_reconciled(sync, before, result)

    async def sync_now(self) -> Dataset:
        sync = self._require_cloud()
        self.sessions.commit()
        before = self.dataset
        result = await sync.sync_now(before)
        return self._adopt_reconciled(sync, before, result)

    def _adopt_reconciled(self, sync: SyncOrchestrator, before: Dataset, result: Dataset) -> Dataset:
        """Take the reconciled Dataset, keeping whatever changed while it was being built."""
        if self.sync is not sync:
            # Signed out or into another account during the round trip
            return result
        if self.dataset is before:
            self.dataset = result
            return result

        logger.info("Dataset changed during sync; replaying those changes on the reconciled copy")
        self.dataset = reconciliation.rebase(result, before, self.dataset)
        sync.push(self.dataset)
        return self.dataset

    def _require_cloud(self) -> SyncOrchestrator:
        if not isinstance(self.mode, CloudAccountMode) or self.sync is None:
            raise ModeError("Sign in to a cloud account first.")
        return self.sync

    def _adopt_background_reconcile(self, pushed: Dataset, merged: Dataset) -> None:
        if not isinstance(self.mode, CloudAccountMode) or self.sync is None:
            return
        # Changes made while the reconcile was in flight are replayed on the merged snapshot
        self.dataset = reconciliation.rebase(merged, pushed, self.dataset)
        if self.dataset != merged:
            self.sync.push(self.dataset)

    # ── Mutations ───────────────────────────────────────────────────────────

    def _mutate(self, transform: Callable[[Dataset], Dataset]) -> Dataset:
        updated = transform(self.dataset.model_copy(deep=True))
        self.dataset = updated

        if isinstance(self.mode, LocalProfileMode):
            stored = self.profile_store.update(
                self.mode.profile_id,
                lambda profile: profile.model_copy(update={"dataset": updated}),
            )
            if stored is None:
                logger.warning(f"Profile {self.mode.profile_id} is gone; change kept in memory only")
        elif isinstance(self.mode, CloudAccountMode) and self.sync is not None:
            self.sync.push(updated)
        return updated

    def _store_committed_session(self, session: WorkoutSession) -> None:
        self._mutate(lambda d: d.model_copy(update={"sessions": upsert_session(d.sessions, session)}))
        if isinstance(self.mode, CloudAccountMode) and self.sync is not None:
            self.sync.forward_session(session)

    def delete_session(self, session_id: str) -> None:
        if self.dataset.find_session(session_id) is None:
            raise NotFoundError(f"Session {session_id} not found.")
        active = self.sessions.active_session
        if active is not None and active.id == session_id:
            self.sessions.cancel()
        self._mutate(lambda d: d.model_copy(
            update={"sessions": [s for s in d.sessions if s.id != session_id]}
        ))
        logger.info(f"Deleted session {session_id}")

    def add_health_entry(self, measurement: HealthEntryInput) -> HealthEntry:
        entry = HealthEntry(**measurement.model_dump(), timestamp=self._clock())
        self._mutate(lambda d: d.model_copy(update={
            "health_entries": sorted(d.health_entries + [entry], key=lambda h: h.timestamp, reverse=True)
        }))
        if isinstance(self.mode, CloudAccountMode) and self.sync is not None:
            self.sync.forward_health_entry(entry)
        return entry

    def delete_health_entry(self, entry_id: str) -> None:
        if not any(h.id == entry_id for h in self.dataset.health_entries):
            raise NotFoundError(f"Health entry {entry_id} not found.")
        self._mutate(lambda d: d.model_copy(
            update={"health_entries": [h for h in d.health_entries if h.id != entry_id]}
        ))

    def save_routine(self, routine: Routine) -> Routine:
        """Insert or replace by id; replaced routines keep their position."""
        name = routine.name.strip()
        if not name:
            raise ValidationError("Routine name is required.")
        if not routine.exercises:
            raise ValidationError("A routine needs at least one exercise.")
        routine = routine.model_copy(update={"name": name})

        def upsert(d: Dataset) -> Dataset:
            routines = list(d.routines)
            for index, existing in enumerate(routines):
                if existing.id == routine.id:
                    routines[index] = routine
                    break
            else:
                routines.append(routine)
            return d.model_copy(update={"routines": routines})

        self._mutate(upsert)
        return routine

    def save_routine_from_session(
        self,
        session_id: str,
        name: str = None,
        exercise_ids: Optional[Iterable[str]] = None,
    ) -> Routine:
        session = self.dataset.find_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found.")

        included = set(exercise_ids) if exercise_ids is not None else None
        exercises = [
            RoutineExercise(name=e.name, sets=e.sets, reps=e.reps)
            for e in session.exercises
            if included is None or e.id in included
        ]
        default_name = session.name or f"Routine from {session.timestamp.date().isoformat()}"
        return self.save_routine(Routine(name=name if name is not None else default_name, exercises=exercises))

    def delete_routine(self, routine_id: str) -> None:
        if not any(r.id == routine_id for r in self.dataset.routines):
            raise NotFoundError(f"Routine {routine_id} not found.")
        self._mutate(lambda d: d.model_copy(
            update={"routines": [r for r in d.routines if r.id != routine_id]}
        ))

    def start_routine(self, routine_id: str) -> WorkoutSession:
        routine = next((r for r in self.dataset.routines if r.id == routine_id), None)
        if routine is None:
            raise NotFoundError(f"Routine {routine_id} not found.")
        return self.sessions.start_from_routine(routine)

    def update_settings(self, changes: dict) -> UserSettings:
        try:
            updated = UserSettings.model_validate({**self.settings.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid settings: {e.errors()[0]['msg']}") from e
        self._apply_settings(updated)
        return updated

    def _apply_settings(self, updated: UserSettings) -> None:
        self.settings = updated
        if isinstance(self.mode, LocalProfileMode):
            self.profile_store.update(
                self.mode.profile_id,
                lambda profile: profile.model_copy(update={"settings": updated}),
            )
        self.sessions.settings_changed()

    # ── Backup / progress ───────────────────────────────────────────────────

    def export_backup(self, keys: Iterable[BackupKey] = tuple(BackupKey)) -> dict:
        return backup.export_backup(self.dataset, self.settings, keys)

    def import_backup(self, content, keys: Optional[Iterable[BackupKey]] = None) -> Dataset:
        """Overwrite the selected keys of the current Dataset and settings."""
        document = backup.read_backup(content)
        dataset, settings = backup.apply_backup(self.dataset, self.settings, document, keys)
        self.sessions.cancel()
        self._mutate(lambda _: dataset)
        if settings != self.settings:
            self._apply_settings(settings)
        return self.dataset

    def progress(self) -> ProgressSummary:
        return progress_service.summarize(self.dataset)

    def history(self) -> List[WorkoutSession]:
        return sorted(self.dataset.sessions, key=lambda s: s.timestamp, reverse=True)

    # ── Destructive ─────────────────────────────────────────────────────────

    def delete_active_profile(self) -> None:
        if not isinstance(self.mode, LocalProfileMode):
            raise ModeError("No local profile is active.")
        profile_id = self.mode.profile_id
        self.sessions.cancel()
        self.profile_store.delete(profile_id)
        self._enter_unauthenticated()

    def reset_app(self) -> None:
        self.sessions.cancel()
        self.profile_store.reset_all()
        self._enter_unauthenticated()

    # ── Cross-tab ───────────────────────────────────────────────────────────

    def _on_profiles_changed(self) -> None:
        """Another tab rewrote the profiles or the active pointer: follow it wholesale."""
        if isinstance(self.mode, CloudAccountMode):
            return

        active_id = self.profile_store.get_active_id()
        profile = self.profile_store.get(active_id) if active_id else None

        if isinstance(self.mode, LocalProfileMode) and profile is not None and profile.id == self.mode.profile_id:
            self.dataset = profile.dataset.model_copy(deep=True)
            self.settings = profile.settings.model_copy()
            self.sessions.settings_changed()
            return

        if profile is not None:
            self._enter_profile(profile)
        elif isinstance(self.mode, LocalProfileMode):
            # Logged out or deleted elsewhere; nothing to commit into
            self.sessions.cancel()
            self._enter_unauthenticated()

    async def drain(self) -> None:
        if self.sync is not None:
            await self.sync.drain()
        while self._retiring:
            await asyncio.gather(*list(self._retiring), return_exceptions=True)

    def close(self) -> None:
        self.sessions.shutdown()
        self._unsubscribe()
        if self.sync is not None:
            self.sync.close()

    async def aclose(self) -> None:
        """Stop timers and listeners, finish background sync work, and release HTTP clients."""
        self.sessions.shutdown()
        self._unsubscribe()
        sync, self.sync = self.sync, None
        if sync is not None:
            await sync.aclose()
        await self.drain()
