from fastapi import APIRouter

from config import get_bucket_name
from services.auth import get_credential_state
from utils.metrics import snapshot

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health():
    return {
        "status": "OK",
        "credentials": get_credential_state().value,
        "bucket_configured": bool(get_bucket_name()),
        "metrics": snapshot(),
    }
