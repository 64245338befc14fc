# -*- coding: utf-8 -*-
"""Last-writer-wins merging of remote log versions into the local store.

Conflicts are settled per day on the whole record: the version with the later
``last_modified`` wins, local on ties. A remote version that is back at its
defaults counts as a deletion, and a local deletion (tombstone) beats any
remote version older than it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Tuple

from ..logs.defaults import is_at_default
from ..logs.models import DailyLog
from ..logs.reconciler import DailyLogReconciler
from ..logs.storage import SyncableLogStore
from .models import MergeOutcome, SyncDeletion

logger = logging.getLogger(__name__)


def _store(reconciler: DailyLogReconciler) -> SyncableLogStore:
    return reconciler.store  # type: ignore[return-value]


def merge_remote_log(reconciler: DailyLogReconciler, remote: DailyLog) -> MergeOutcome:
    store = _store(reconciler)
    with reconciler.day_lock(remote.day):
        local = store.find(remote.day)
        remote_is_default = is_at_default(remote, reconciler.defaults)

        if local is None:
            deleted_at = store.tombstone(remote.day)
            if deleted_at is not None and deleted_at >= remote.last_modified:
                return MergeOutcome.kept_local
            if remote_is_default:
                return MergeOutcome.ignored
            store.put(remote)
            logger.info("Sync: inserted remote log for %s", remote.day)
            return MergeOutcome.inserted

        if remote.last_modified <= local.last_modified:
            return MergeOutcome.kept_local

        if remote_is_default:
            store.delete(local, deleted_at=remote.last_modified)
            logger.info("Sync: remote reset %s to defaults, removed local log", remote.day)
            return MergeOutcome.deleted

        store.put(remote)
        logger.info("Sync: replaced local log for %s with newer remote version", remote.day)
        return MergeOutcome.replaced


def merge_remote_deletion(reconciler: DailyLogReconciler, day: date, deleted_at: datetime) -> MergeOutcome:
    store = _store(reconciler)
    with reconciler.day_lock(day):
        local = store.find(day)
        if local is None:
            known = store.tombstone(day)
            if known is None or deleted_at > known:
                store.delete(reconciler.draft(day), deleted_at=deleted_at)
            return MergeOutcome.ignored
        if deleted_at <= local.last_modified:
            return MergeOutcome.kept_local
        store.delete(local, deleted_at=deleted_at)
        logger.info("Sync: applied remote deletion of %s", day)
        return MergeOutcome.deleted


def pull_changes(
    reconciler: DailyLogReconciler, cursor: int = 0
) -> Tuple[int, List[DailyLog], List[SyncDeletion]]:
    """Everything the server stored after ``cursor``, plus the cursor for the next pull.

    The cursor counts server writes, so a version pushed late by an offline
    device is still picked up even though its ``last_modified`` is old.
    """
    store = _store(reconciler)
    # Read first: writes landing during the reads are returned now and again
    # next time, never skipped.
    next_cursor = store.change_cursor()
    logs = store.changed_after(cursor)
    deletions = [SyncDeletion(day=d, deleted_at=ts) for d, ts in store.deleted_after(cursor)]
    return next_cursor, logs, deletions
