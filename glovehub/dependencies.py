from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException

from glovehub.db import SessionLocal
from glovehub.services import Pipeline, build_services


@lru_cache(maxsize=1)
def get_pipeline() -> Pipeline:
    """Process-wide services bound to the default session factory. Overridden in tests."""
    return build_services(SessionLocal)


def get_actor(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Acting user id. Authentication happens upstream; the gateway forwards the
    authenticated user in X-User-Id.
    """
    actor = (x_user_id or "").strip()
    if not actor:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return actor
