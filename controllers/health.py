from fastapi import APIRouter

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health():
    return {"ok": True}


@router.get("/ping")
def ping():
    """Liveness probe used by keep-alive pingers."""
    return {"ok": True, "service": "verification"}
