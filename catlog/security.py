# -*- coding: utf-8 -*-
"""Shared API key check for the single-user deployment."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import HTTPException, Request

from .config import settings


def get_api_key_from_request(request: Request) -> Optional[str]:
    header = request.headers.get("x-api-key")
    if header and header.strip():
        return header.strip()
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("api-key "):
        token = auth.split(" ", 1)[1].strip()
        return token or None
    return None


def check_api_key(request: Request) -> None:
    """Raise 401 unless the request carries the configured key (no key configured: open)."""
    expected = settings.api_key
    if not expected:
        return
    provided = get_api_key_from_request(request)
    if not provided:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid API key")
