from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and monitoring.

    Not exempt from rate limiting: it is counted against the caller's IP
    like any other default-tier request.
    """

    return {"status": "ok"}
