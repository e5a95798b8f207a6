"""
Reconciliation Engine

Combines a local and a remote Dataset that describe the same user. Every
record with a unique id survives; on an id collision the remote copy wins,
since the remote document is normally the result of an earlier merge.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, TypeVar

from workout_tracker.schemas.tracker_schemas import Dataset

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _merge_by_id(local: Iterable[T], remote: Iterable[T]) -> List[T]:
    # Local first, then remote overwrites: remote wins on collision, and within
    # one side the last duplicate wins. Dict order keeps first-insertion order.
    by_id: Dict[str, T] = {}
    for record in list(local) + list(remote):
        by_id[record.id] = record
    return list(by_id.values())


def _newest_first(records: List[T]) -> List[T]:
    return sorted(records, key=lambda r: getattr(r, "timestamp", None) or _EPOCH, reverse=True)


def merge(local: Dataset, remote: Dataset) -> Dataset:
    """Pure, data-preserving merge of two Datasets."""
    return Dataset(
        sessions=_newest_first(_merge_by_id(local.sessions, remote.sessions)),
        health_entries=_newest_first(_merge_by_id(local.health_entries, remote.health_entries)),
        routines=_merge_by_id(local.routines, remote.routines),
    )


def replace(local: Dataset, remote: Dataset) -> Dataset:
    """Discard local in favour of remote (first sign-in over throwaway guest data)."""
    return remote.model_copy(deep=True)


def _replay(base: Iterable[T], before: Iterable[T], after: Iterable[T]) -> List[T]:
    previous = {record.id: record for record in before}
    current = {record.id: record for record in after}
    removed = previous.keys() - current.keys()
    changed = {rid: record for rid, record in current.items() if previous.get(rid) != record}

    result = [changed.pop(record.id, record) for record in base if record.id not in removed]
    return result + list(changed.values())


def rebase(base: Dataset, before: Dataset, after: Dataset) -> Dataset:
    """
    Replay the edits that turned `before` into `after` on top of `base`.

    Used when a reconcile ran from the `before` snapshot while the user kept
    logging: additions and edits made meanwhile land in the reconciled
    Dataset, and records deleted meanwhile leave it.
    """
    return Dataset(
        sessions=_newest_first(_replay(base.sessions, before.sessions, after.sessions)),
        health_entries=_newest_first(_replay(base.health_entries, before.health_entries, after.health_entries)),
        routines=_replay(base.routines, before.routines, after.routines),
    )
