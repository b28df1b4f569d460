# User value: keeps the stored post shape stable so every viewer reads the same fields.
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class PostMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    country: str = ""
    city: str = ""
    server: str = ""
    nsfw: bool = False
    media_files: List[str] = Field(default_factory=list, alias="mediaFiles")
    created_at: str = Field(..., alias="createdAt")

    def to_storage_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class PostUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Post uploaded successfully"
    post_id: str = Field(..., alias="postId")
    media_count: int = Field(..., ge=1, alias="mediaCount")


class UploadErrorResponse(BaseModel):
    error: str
    error_code: str
    details: Optional[str] = None
