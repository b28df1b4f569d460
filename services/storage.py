import os
import json
import base64
import logging

from google.cloud import storage

from config import get_bucket_name, get_media_public_base_url
from services.errors import StorageError

logger = logging.getLogger("api.storage")

POSTS_PREFIX = "posts"
METADATA_FILE_NAME = "metadata.json"
SERVERS_LIST_PATH = "servers.json"

# =========================================================
# LAZY CLIENT
# =========================================================
_client = None


def _get_client():
    global _client
    if _client is not None:
        return _client

    creds_b64 = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    if creds_b64:
        creds = json.loads(base64.b64decode(creds_b64))
        _client = storage.Client.from_service_account_info(creds)
    else:
        _client = storage.Client()

    return _client


def _get_bucket():
    bucket_name = get_bucket_name()
    if not bucket_name:
        raise StorageError("GCS_BUCKET_NAME not set")
    return _get_client().bucket(bucket_name)


def post_object_path(post_id: str, file_name: str) -> str:
    return f"{POSTS_PREFIX}/{post_id}/{file_name}"


def _public_url(blob, object_path: str) -> str:
    base_url = get_media_public_base_url()
    if base_url:
        return f"{base_url}/{object_path}"
    return blob.public_url


# =========================================================
# MEDIA
# =========================================================
def upload_media_file(post_id: str, file_name: str, data: bytes, content_type: str) -> str:
    object_path = post_object_path(post_id, file_name)
    blob = _get_bucket().blob(object_path)
    blob.upload_from_string(data, content_type=content_type)

    logger.info(
        "storage_media_uploaded post_id=%s object=%s size_bytes=%s content_type=%s",
        post_id,
        object_path,
        len(data),
        content_type,
    )
    return _public_url(blob, object_path)


# =========================================================
# POST METADATA
# =========================================================
def upload_post_metadata(post_id: str, metadata: dict) -> None:
    object_path = post_object_path(post_id, METADATA_FILE_NAME)
    blob = _get_bucket().blob(object_path)
    blob.upload_from_string(
        json.dumps(metadata, ensure_ascii=False),
        content_type="application/json; charset=utf-8",
    )
    logger.info("storage_metadata_uploaded post_id=%s object=%s", post_id, object_path)


def upload_post_metadata_with_thumbnail(post_id: str, metadata: dict, thumbnail_url: str) -> None:
    upload_post_metadata(post_id, {**metadata, "thumbnailUrl": thumbnail_url})


# =========================================================
# SERVER REGISTRY
# =========================================================
def get_servers_list() -> list[str]:
    """
    Read the shared server registry. A registry that was never written is empty.
    """
    blob = _get_bucket().blob(SERVERS_LIST_PATH)
    if not blob.exists():
        return []

    raw = blob.download_as_text()
    try:
        servers = json.loads(raw) if raw.strip() else []
    except json.JSONDecodeError as exc:
        raise StorageError(f"{SERVERS_LIST_PATH} is not valid JSON") from exc

    if not isinstance(servers, list) or not all(isinstance(s, str) for s in servers):
        raise StorageError(f"{SERVERS_LIST_PATH} must be a JSON array of strings")
    return servers


def update_servers_list(servers: list[str]) -> None:
    blob = _get_bucket().blob(SERVERS_LIST_PATH)
    blob.upload_from_string(
        json.dumps(list(servers), ensure_ascii=False),
        content_type="application/json; charset=utf-8",
    )
    logger.info("storage_servers_updated count=%s", len(servers))
