# User value: turns one form submission into a stored post (thumbnail, media, metadata) or a clear error.
import logging
import os
import re
import time
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from schemas.posts import PostMetadata, PostUploadResponse
from services.errors import UploadError, UploadErrorKind
from services.storage import (
    get_servers_list,
    update_servers_list,
    upload_media_file,
    upload_post_metadata_with_thumbnail,
)
from utils.metrics import incr
from utils.stage_logging import log_stage

logger = logging.getLogger("api.upload")

DEFAULT_THUMBNAIL_CONTENT_TYPE = "image/jpeg"
DEFAULT_MEDIA_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class MediaPayload:
    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class RegistryUpdateResult:
    ok: bool
    servers: list[str] = field(default_factory=list)
    added: bool = False
    error: Optional[str] = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def parse_nsfw(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value == "true"


def generate_post_id(now_ms: int | None = None) -> str:
    # Millisecond ids collide for same-millisecond uploads; kept as-is.
    return str(now_ms if now_ms is not None else _now_ms())


def make_thumbnail_file_name(now_ms: int | None = None) -> str:
    return f"thumbnail-{now_ms if now_ms is not None else _now_ms()}"


def sanitize_media_name(original_name: str | None, index: int) -> str:
    base = os.path.basename(str(original_name or "").replace("\\", "/")).strip()
    base = unicodedata.normalize("NFKC", base)
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", base).strip("._")
    return base or f"media-{index + 1}"


def make_media_file_name(original_name: str | None, index: int, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else _now_ms()
    return f"{stamp}-{index}-{sanitize_media_name(original_name, index)}"


def merge_server_name(servers: Sequence[str], name: str) -> list[str]:
    return sorted(set(servers) | {name})


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value)
    return True


def validate_upload_request(
    *,
    title: Optional[str],
    description: Optional[str],
    media: Any,
    thumbnail: Any,
) -> None:
    if not (_present(title) and _present(description) and _present(media) and _present(thumbnail)):
        logger.warning(
            "upload_validation_failed missing_fields title=%s description=%s media=%s media_count=%s thumbnail=%s",
            _present(title),
            _present(description),
            _present(media),
            len(media) if isinstance(media, list) else 0,
            _present(thumbnail),
        )
        incr("api_posts_rejected_total", reason="missing_fields")
        raise UploadError(UploadErrorKind.MISSING_FIELDS)

    if not isinstance(media, list):
        logger.warning("upload_validation_failed invalid_media_format media_type=%s", type(media).__name__)
        incr("api_posts_rejected_total", reason="invalid_media_format")
        raise UploadError(UploadErrorKind.INVALID_MEDIA_FORMAT)

    if not media:
        logger.warning("upload_validation_failed empty_media")
        incr("api_posts_rejected_total", reason="empty_media")
        raise UploadError(UploadErrorKind.EMPTY_MEDIA)

    if not isinstance(thumbnail, list) or not thumbnail:
        logger.warning(
            "upload_validation_failed missing_thumbnail thumbnail_type=%s thumbnail_count=%s",
            type(thumbnail).__name__,
            len(thumbnail) if isinstance(thumbnail, list) else 0,
        )
        incr("api_posts_rejected_total", reason="missing_thumbnail")
        raise UploadError(UploadErrorKind.MISSING_THUMBNAIL)


async def update_server_registry(server: str, *, post_id: str = "") -> RegistryUpdateResult:
    """
    Add a server name to the shared registry.

    Never raises: a failed read or write comes back as a failed result.
    The read-modify-write is not atomic, so concurrent uploads naming
    different servers can drop one of them (last writer wins).
    """
    name = server.strip()
    try:
        current = await run_in_threadpool(get_servers_list)
        if name in current:
            return RegistryUpdateResult(ok=True, servers=sorted(set(current)), added=False)

        updated = merge_server_name(current, name)
        await run_in_threadpool(update_servers_list, updated)
        return RegistryUpdateResult(ok=True, servers=updated, added=True)
    except Exception as exc:
        logger.exception("server_registry_update_failed post_id=%s server=%s", post_id, name)
        return RegistryUpdateResult(ok=False, error=f"{exc.__class__.__name__}: {exc}")


async def submit_post_upload(
    *,
    title: Optional[str],
    description: Optional[str],
    media: Any,
    thumbnail: Any,
    country: Optional[str] = None,
    city: Optional[str] = None,
    server: Optional[str] = None,
    nsfw: Any = None,
) -> dict:
    validate_upload_request(title=title, description=description, media=media, thumbnail=thumbnail)

    post_id = generate_post_id()
    thumbnail_file: MediaPayload = thumbnail[0]
    thumbnail_file_name = make_thumbnail_file_name()

    log_stage(
        post_id=post_id,
        stage="POST_UPLOAD",
        event="STARTED",
        server=server,
        media_count=len(media),
    )

    stage = "THUMBNAIL_UPLOAD"
    try:
        log_stage(post_id=post_id, stage=stage, event="STARTED", file_name=thumbnail_file_name)
        thumbnail_url = await run_in_threadpool(
            upload_media_file,
            post_id,
            thumbnail_file_name,
            thumbnail_file.data,
            thumbnail_file.content_type or DEFAULT_THUMBNAIL_CONTENT_TYPE,
        )
        log_stage(post_id=post_id, stage=stage, event="COMPLETED", thumbnail_url=thumbnail_url)

        stage = "MEDIA_UPLOAD"
        media_file_names: list[str] = []
        for index, media_file in enumerate(media):
            media_file_name = make_media_file_name(media_file.filename, index)
            log_stage(
                post_id=post_id,
                stage=stage,
                event="STARTED",
                file_name=media_file_name,
                position=f"{index + 1}/{len(media)}",
            )
            await run_in_threadpool(
                upload_media_file,
                post_id,
                media_file_name,
                media_file.data,
                media_file.content_type or DEFAULT_MEDIA_CONTENT_TYPE,
            )
            media_file_names.append(media_file_name)
        log_stage(post_id=post_id, stage=stage, event="COMPLETED", uploaded=len(media_file_names))

        stage = "METADATA_UPLOAD"
        metadata = PostMetadata(
            id=post_id,
            title=title,
            description=description,
            country=country or "",
            city=city or "",
            server=server or "",
            nsfw=parse_nsfw(nsfw),
            media_files=media_file_names,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        await run_in_threadpool(
            upload_post_metadata_with_thumbnail,
            post_id,
            metadata.to_storage_dict(),
            thumbnail_url,
        )
        log_stage(post_id=post_id, stage=stage, event="COMPLETED")
    except Exception as exc:
        error_message = str(exc) or exc.__class__.__name__
        log_stage(
            post_id=post_id,
            stage=stage,
            event="FAILED",
            server=server,
            error=f"{exc.__class__.__name__}: {error_message}",
        )
        logger.exception("post_upload_storage_failed post_id=%s stage=%s", post_id, stage)
        incr("api_posts_failed_total", stage=stage)
        raise UploadError(UploadErrorKind.STORAGE_FAILURE, details=error_message) from exc

    if server and server.strip():
        registry = await update_server_registry(server, post_id=post_id)
        if registry.ok:
            log_stage(
                post_id=post_id,
                stage="SERVER_REGISTRY",
                event="COMPLETED",
                server=server,
                added=registry.added,
                server_count=len(registry.servers),
            )
        else:
            log_stage(
                post_id=post_id,
                stage="SERVER_REGISTRY",
                event="FAILED",
                server=server,
                error=registry.error,
            )

    incr("api_posts_uploaded_total")
    log_stage(post_id=post_id, stage="POST_UPLOAD", event="COMPLETED", media_count=len(media_file_names))

    response = PostUploadResponse(post_id=post_id, media_count=len(media_file_names))
    return response.model_dump(by_alias=True)
