# routes/upload.py
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse

from schemas.posts import PostUploadResponse, UploadErrorResponse
from services.errors import UploadError, UploadErrorKind
from services.post_upload import MediaPayload, submit_post_upload

UPLOAD_PATH = "/upload"

router = APIRouter()
logger = logging.getLogger("api.upload")


async def to_media_payloads(files: Optional[List[UploadFile]]) -> Optional[List[MediaPayload]]:
    if files is None:
        return None
    payloads = []
    for f in files:
        payloads.append(
            MediaPayload(
                data=await f.read(),
                filename=f.filename,
                content_type=f.content_type,
            )
        )
    return payloads


def upload_error_from_form_errors(errors) -> UploadError:
    """
    Map form-parsing failures (e.g. `media` sent as a text field) onto the
    same upload error kinds the validation sequence uses, checked in its order.
    """
    fields = set()
    for err in errors or []:
        loc = list(err.get("loc") or [])
        if len(loc) >= 2 and loc[0] == "body":
            fields.add(str(loc[1]))

    if "media" in fields:
        return UploadError(UploadErrorKind.INVALID_MEDIA_FORMAT)
    if "thumbnail" in fields:
        return UploadError(UploadErrorKind.MISSING_THUMBNAIL)
    return UploadError(UploadErrorKind.MISSING_FIELDS)


@router.post(
    UPLOAD_PATH,
    response_model=PostUploadResponse,
    responses={400: {"model": UploadErrorResponse}, 500: {"model": UploadErrorResponse}},
)
# User value: turns a filled-in post form into stored media plus metadata in one request.
async def upload_post(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    country: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    server: Optional[str] = Form(None),
    nsfw: Optional[str] = Form(None),
    media: Optional[List[UploadFile]] = File(None),
    thumbnail: Optional[List[UploadFile]] = File(None),
):
    try:
        result = await submit_post_upload(
            title=title,
            description=description,
            country=country,
            city=city,
            server=server,
            nsfw=nsfw,
            media=await to_media_payloads(media),
            thumbnail=await to_media_payloads(thumbnail),
        )
    except UploadError:
        raise
    except Exception as exc:
        logger.exception("upload_failed_unexpected error=%s: %s", exc.__class__.__name__, exc)
        raise UploadError(UploadErrorKind.UNEXPECTED, details=str(exc)) from exc

    return JSONResponse(status_code=200, content=result)
