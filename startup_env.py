import logging
import os
from typing import List

from config import (
    AUTHORIZED_EMAILS_ENV,
    CREDENTIAL_ENV_KEYS,
    FALSE_VALUES,
    GCS_BUCKET_NAME_ENV,
    LEGACY_AUTHORIZED_EMAILS_ENV,
    MEDIA_PUBLIC_BASE_URL_ENV,
    TRUE_VALUES,
    get_authorized_emails_raw,
)

logger = logging.getLogger("api.startup")


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _validate_cors_allow_origins(value: str | None, errors: List[str]) -> None:
    if _is_blank(value):
        return

    origins = [x.strip() for x in str(value).split(",") if x.strip()]
    for origin in origins:
        if origin == "*":
            errors.append("CORS_ALLOW_ORIGINS must not contain '*' in strict allowlist mode")
            continue
        if not (origin.startswith("http://") or origin.startswith("https://")):
            errors.append(f"CORS origin must start with http:// or https://: {origin}")


def _validate_bool_flag_env(key: str, errors: List[str]) -> None:
    raw = os.getenv(key)
    if _is_blank(raw):
        return
    if str(raw).strip().lower() not in TRUE_VALUES | FALSE_VALUES:
        errors.append(f"{key} must be one of {sorted(TRUE_VALUES | FALSE_VALUES)}")


def _validate_public_base_url(value: str | None, errors: List[str]) -> None:
    if _is_blank(value):
        return
    if not (value.startswith("http://") or value.startswith("https://")):
        errors.append(f"{MEDIA_PUBLIC_BASE_URL_ENV} must start with http:// or https://")


def validate_startup_env() -> None:
    errors: List[str] = []
    warnings: List[str] = []

    if _is_blank(os.getenv(GCS_BUCKET_NAME_ENV)):
        errors.append(f"{GCS_BUCKET_NAME_ENV} is required")

    _validate_cors_allow_origins(os.getenv("CORS_ALLOW_ORIGINS"), errors)
    _validate_bool_flag_env("DEV_MODE", errors)
    _validate_public_base_url(os.getenv(MEDIA_PUBLIC_BASE_URL_ENV), errors)

    missing_credentials = [key for key in CREDENTIAL_ENV_KEYS if _is_blank(os.getenv(key))]
    if missing_credentials:
        warnings.append(
            f"{', '.join(missing_credentials)} not set; token verification will be unavailable"
        )

    if not [x for x in get_authorized_emails_raw().split(",") if x.strip()]:
        warnings.append(
            f"{AUTHORIZED_EMAILS_ENV} (or {LEGACY_AUTHORIZED_EMAILS_ENV}) is empty; no user will be authorized"
        )

    if _is_blank(os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")):
        warnings.append(
            "GOOGLE_APPLICATION_CREDENTIALS_JSON is not set; relying on ambient ADC credentials"
        )

    if errors:
        for err in errors:
            logger.error("startup_env_invalid %s", err)
        raise RuntimeError("Startup env validation failed: " + "; ".join(errors))

    for warning in warnings:
        logger.warning("startup_env_warning %s", warning)

    logger.info(
        "startup_env_validated keys=%s",
        [GCS_BUCKET_NAME_ENV, *CREDENTIAL_ENV_KEYS, AUTHORIZED_EMAILS_ENV],
    )
