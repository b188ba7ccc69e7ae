from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Always answers 200 while the process serves requests; it does not touch
    the database.
    """
    return {"status": "ok"}
