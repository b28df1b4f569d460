import os
from dotenv import load_dotenv

load_dotenv()

GCS_BUCKET_NAME_ENV = "GCS_BUCKET_NAME"
MEDIA_PUBLIC_BASE_URL_ENV = "MEDIA_PUBLIC_BASE_URL"

FIREBASE_PROJECT_ID_ENV = "FIREBASE_PROJECT_ID"
FIREBASE_PRIVATE_KEY_ENV = "FIREBASE_PRIVATE_KEY"
FIREBASE_CLIENT_EMAIL_ENV = "FIREBASE_CLIENT_EMAIL"
CREDENTIAL_ENV_KEYS = (FIREBASE_PROJECT_ID_ENV, FIREBASE_PRIVATE_KEY_ENV, FIREBASE_CLIENT_EMAIL_ENV)

AUTHORIZED_EMAILS_ENV = "AUTHORIZED_EMAILS"
LEGACY_AUTHORIZED_EMAILS_ENV = "VITE_AUTHORIZED_EMAILS"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _flag(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "1" if default else "0")).strip().lower()
    return raw in TRUE_VALUES


def env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name) or default).strip()


# User value: only developers ever see raw storage errors; posters get a stable message.
def is_development_mode() -> bool:
    if env_str("APP_ENV").lower() == "development":
        return True
    return _flag("DEV_MODE", False)


def get_bucket_name() -> str:
    return env_str(GCS_BUCKET_NAME_ENV)


def get_media_public_base_url() -> str:
    return env_str(MEDIA_PUBLIC_BASE_URL_ENV).rstrip("/")


def get_authorized_emails_raw() -> str:
    raw = os.getenv(AUTHORIZED_EMAILS_ENV)
    if raw is None:
        raw = os.getenv(LEGACY_AUTHORIZED_EMAILS_ENV, "")
    return raw or ""


def get_credential_fields() -> dict:
    return {
        "project_id": os.getenv(FIREBASE_PROJECT_ID_ENV),
        "private_key": os.getenv(FIREBASE_PRIVATE_KEY_ENV),
        "client_email": os.getenv(FIREBASE_CLIENT_EMAIL_ENV),
    }
