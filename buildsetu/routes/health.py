from fastapi import APIRouter

from buildsetu.responses import ok

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    """Liveness probe."""
    return ok({"message": "Server is running"})
