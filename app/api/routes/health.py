from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict[str, str]:
    """Liveness check for load balancers and uptime checks.

    Not rate limited and never touches the upstream.
    """

    return {"status": "ok"}
