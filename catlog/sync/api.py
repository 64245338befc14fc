# -*- coding: utf-8 -*-
"""Sync — API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from ..logs.reconciler import DailyLogReconciler
from ..logs.service import get_reconciler
from ..logs.storage import LogStoreError
from .merge import merge_remote_deletion, merge_remote_log, pull_changes
from .models import MergeOutcome, SyncPullResponse, SyncPushRequest, SyncPushResponse

router = APIRouter(prefix="/api/sync", tags=["Sync"])


def _server_time() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/push", response_model=SyncPushResponse, summary="Merge log versions from another device")
def push(request: SyncPushRequest, reconciler: DailyLogReconciler = Depends(get_reconciler)):
    outcomes: Dict[str, MergeOutcome] = {}
    try:
        for log in request.logs:
            outcomes[log.day.isoformat()] = merge_remote_log(reconciler, log)
        for deletion in request.deletions:
            outcomes[deletion.day.isoformat()] = merge_remote_deletion(
                reconciler, deletion.day, deletion.deleted_at
            )
    except LogStoreError as exc:
        raise HTTPException(status_code=503, detail=f"Failed to merge sync data: {exc}") from exc
    return SyncPushResponse(device_id=request.device_id, outcomes=outcomes, server_time=_server_time())


@router.get("/pull", response_model=SyncPullResponse, summary="Logs and deletions stored since the previous pull")
def pull(
    cursor: int = Query(default=0, ge=0, description="next_cursor of the previous pull; 0 for everything"),
    reconciler: DailyLogReconciler = Depends(get_reconciler),
):
    try:
        next_cursor, logs, deletions = pull_changes(reconciler, cursor)
    except LogStoreError as exc:
        raise HTTPException(status_code=503, detail=f"Failed to read changes: {exc}") from exc
    return SyncPullResponse(
        cursor=cursor,
        next_cursor=next_cursor,
        server_time=_server_time(),
        logs=logs,
        deletions=deletions,
    )
