"""
Sync Orchestrator
Decides when the Reconciliation Engine runs and ships cloud-mode mutations
to the remote document store and the fitness-log sink.

Nothing in here blocks the in-memory state machines: pushes and sink
notifications run as background tasks and only report through `status`.
"""

import asyncio
from typing import Callable, List, Optional, Set

from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker.enums import SignInStrategy, SyncStatus
from workout_tracker.exceptions import SyncError
from workout_tracker.schemas.tracker_schemas import Dataset, HealthEntry, WorkoutSession
from workout_tracker.services import reconciliation
from workout_tracker.services.fitness_sink import FitnessLogSink
from workout_tracker.services.remote_store import RemoteDocumentStore

logger = get_logger("sync_orchestrator")

StatusListener = Callable[[SyncStatus], None]


class SyncOrchestrator:

    def __init__(
        self,
        remote_store: RemoteDocumentStore,
        fitness_sink: FitnessLogSink = None,
        on_reconciled: Callable[[Dataset, Dataset], None] = None,
        loop: asyncio.AbstractEventLoop = None,
    ):
        """
        Args:
            remote_store: document store scoped to the signed-in identity
            fitness_sink: optional fitness platform for finished sessions / weights
            on_reconciled: receives (pushed snapshot, merged Dataset) after a background push reconciled
            loop: event loop for background tasks; the running loop when omitted
        """
        self.remote_store = remote_store
        self.fitness_sink = fitness_sink
        self.on_reconciled = on_reconciled
        self._loop = loop

        self._status = SyncStatus.IDLE
        self.last_error: Optional[str] = None
        self._status_listeners: List[StatusListener] = []
        self._status_reset: Optional[asyncio.TimerHandle] = None
        self._pending: Set[asyncio.Task] = set()
        # One remote write at a time; a push older than the newest one is skipped
        self._write_lock = asyncio.Lock()
        self._push_generation = 0
        # Until one reconcile succeeded, a blind full-document write could erase remote history
        self.reconciled = False

    # ── Status ──────────────────────────────────────────────────────────────

    @property
    def status(self) -> SyncStatus:
        return self._status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)
        return lambda: self._status_listeners.remove(listener) if listener in self._status_listeners else None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def _set_status(self, status: SyncStatus, error: str = None) -> None:
        if self._status_reset is not None:
            self._status_reset.cancel()
            self._status_reset = None

        self._status = status
        self.last_error = error
        for listener in list(self._status_listeners):
            listener(status)

        if status in (SyncStatus.SUCCESS, SyncStatus.ERROR):
            delay = settings.SYNC_STATUS_RESET_SECONDS if status == SyncStatus.SUCCESS else settings.SYNC_ERROR_RESET_SECONDS
            self._status_reset = self._get_loop().call_later(delay, self._set_status, SyncStatus.IDLE)

    # ── Reconciliation points ───────────────────────────────────────────────

    @staticmethod
    def needs_merge_choice(local: Dataset) -> bool:
        """A first sign-in over non-empty local data must ask: merge, or let the cloud replace it?"""
        return not local.is_empty()

    async def sign_in(self, local: Dataset, strategy: SignInStrategy = SignInStrategy.MERGE) -> Dataset:
        """
        Fetch the remote Dataset, reconcile it with `local`, write the result
        back so both sides hold the same value, and return it.
        """
        async with self._write_lock:
            return await self._reconcile(local, strategy)

    async def _reconcile(self, local: Dataset, strategy: SignInStrategy) -> Dataset:
        self._set_status(SyncStatus.SYNCING)
        try:
            remote = await self.remote_store.read()
            if remote is None:
                result = local.model_copy(deep=True)
            elif strategy == SignInStrategy.REPLACE and not local.is_empty():
                logger.info("Cloud data replaces local data at sign-in")
                result = reconciliation.replace(local, remote)
            else:
                result = reconciliation.merge(local, remote)
            await self.remote_store.write(result)
        except SyncError as e:
            self._set_status(SyncStatus.ERROR, e.message)
            raise
        except Exception as e:
            logger.error(f"Unexpected error reconciling with remote store: {e}", exc_info=True)
            self._set_status(SyncStatus.ERROR, str(e))
            raise SyncError(f"Sync failed: {e}") from e

        self.reconciled = True
        self._set_status(SyncStatus.SUCCESS)
        logger.info(
            f"Reconciled dataset: {len(result.sessions)} sessions, "
            f"{len(result.health_entries)} health entries, {len(result.routines)} routines"
        )
        return result

    async def sync_now(self, local: Dataset) -> Dataset:
        return await self.sign_in(local, SignInStrategy.MERGE)

    # ── Fire-and-forget work ────────────────────────────────────────────────

    def _spawn(self, coro) -> asyncio.Task:
        task = self._get_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def push(self, dataset: Dataset) -> asyncio.Task:
        """Write the full Dataset in the background; the caller has already applied it."""
        self._push_generation += 1
        # Decided now: a snapshot taken before the first reconcile must never be written blind
        return self._spawn(self._push(
            dataset.model_copy(deep=True),
            reconcile_first=not self.reconciled,
            generation=self._push_generation,
        ))

    async def _push(self, dataset: Dataset, reconcile_first: bool, generation: int) -> None:
        async with self._write_lock:
            if generation != self._push_generation:
                logger.debug(f"Skipping push {generation}; push {self._push_generation} is newer")
                return
            await self._write(dataset, reconcile_first)

    async def _write(self, dataset: Dataset, reconcile_first: bool) -> None:
        if reconcile_first:
            try:
                merged = await self._reconcile(dataset, SignInStrategy.MERGE)
            except SyncError as e:
                logger.error(f"Deferred reconcile failed; local changes kept in memory: {e.message}")
                return
            if self.on_reconciled is not None:
                self.on_reconciled(dataset, merged)
            return

        self._set_status(SyncStatus.SYNCING)
        try:
            await self.remote_store.write(dataset)
        except SyncError as e:
            logger.error(f"Push to remote store failed: {e.message}")
            self._set_status(SyncStatus.ERROR, e.message)
            return
        except Exception as e:
            logger.error(f"Unexpected error pushing dataset: {e}", exc_info=True)
            self._set_status(SyncStatus.ERROR, str(e))
            return
        self._set_status(SyncStatus.SUCCESS)

    def forward_session(self, session: WorkoutSession) -> Optional[asyncio.Task]:
        if self.fitness_sink is None:
            return None
        return self._spawn(self._forward(self.fitness_sink.log_session, session))

    def forward_health_entry(self, entry: HealthEntry) -> Optional[asyncio.Task]:
        if self.fitness_sink is None:
            return None
        return self._spawn(self._forward(self.fitness_sink.log_weight, entry))

    async def _forward(self, send, record) -> None:
        # The primary commit already happened; a sink failure is only worth a warning
        try:
            await send(record)
        except Exception as e:
            logger.warning(f"Could not forward {type(record).__name__} {record.id} to fitness log: {e}")

    async def drain(self) -> None:
        """Wait for every background push/notification started so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        if self._status_reset is not None:
            self._status_reset.cancel()
            self._status_reset = None

    async def aclose(self) -> None:
        """Finish background work, then release the store and sink HTTP clients."""
        await self.drain()
        self.close()
        for resource in (self.remote_store, self.fitness_sink):
            closer = getattr(resource, "aclose", None)
            if closer is not None:
                await closer()
