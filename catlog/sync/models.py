# -*- coding: utf-8 -*-
"""Sync — Pydantic models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from ..logs.models import DailyLog


class MergeOutcome(str, Enum):
    inserted = "inserted"
    replaced = "replaced"
    deleted = "deleted"
    kept_local = "kept_local"
    ignored = "ignored"


class SyncDeletion(BaseModel):
    day: date
    deleted_at: datetime

    @field_validator("deleted_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class SyncPushRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    logs: List[DailyLog] = Field(default_factory=list)
    deletions: List[SyncDeletion] = Field(default_factory=list)


class SyncPushResponse(BaseModel):
    status: str = "ok"
    device_id: str
    outcomes: Dict[str, MergeOutcome] = Field(default_factory=dict, description="day -> outcome")
    server_time: str


class SyncPullResponse(BaseModel):
    cursor: int = Field(0, description="Cursor the pull was made with")
    next_cursor: int = Field(..., description="Pass as cursor on the next pull")
    server_time: str
    logs: List[DailyLog] = Field(default_factory=list)
    deletions: List[SyncDeletion] = Field(default_factory=list)
