from fastapi import APIRouter, Depends

from schemas.auth import VerifiedIdentity
from services.auth import require_verified_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/verify")
# User value: lets the client check who it is signed in as and whether it may post.
async def verify(identity: VerifiedIdentity = Depends(require_verified_user)):
    return identity.model_dump(by_alias=True)
