from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class VerifiedIdentity(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    is_authorized: bool = Field(default=False, alias="isAuthorized")
