# services/auth.py
import logging
from typing import Optional

from fastapi import Header
from google.auth.transport import requests
from google.oauth2 import id_token, service_account
from starlette.concurrency import run_in_threadpool

from config import get_authorized_emails_raw, get_credential_fields
from schemas.auth import VerifiedIdentity
from services.errors import AuthConfigError, MissingAuthHeaderError, TokenError
from utils.state_machine import CredentialState, StateMachine

logger = logging.getLogger("api.auth")

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------

TOKEN_URI = "https://oauth2.googleapis.com/token"
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
PEM_BEGIN_MARKER = "BEGIN PRIVATE KEY"
PEM_END_MARKER = "END PRIVATE KEY"

# -----------------------------------------------------------------------------
# Credential client (process-wide)
# -----------------------------------------------------------------------------


class IdentityTokenClient:
    """Service-account credentials plus the project whose ID tokens we accept."""

    def __init__(self, project_id: str, credentials: service_account.Credentials):
        self.project_id = project_id
        self.credentials = credentials
        self._request = requests.Request()

    @property
    def issuer(self) -> str:
        return f"{FIREBASE_ISSUER_PREFIX}{self.project_id}"

    @property
    def service_account_email(self) -> str:
        return self.credentials.service_account_email

    def verify_id_token(self, token: str) -> dict:
        claims = id_token.verify_firebase_token(token, self._request, audience=self.project_id)
        if not claims:
            raise ValueError("Token verification returned no claims")

        issuer = str(claims.get("iss") or "").strip()
        if issuer != self.issuer:
            raise ValueError(f"Invalid token issuer: {issuer}")

        uid = str(claims.get("sub") or claims.get("user_id") or "").strip()
        if not uid:
            raise ValueError("Token has no subject")
        return {**claims, "uid": uid}


_state = StateMachine("credential_client")
_client: Optional[IdentityTokenClient] = None


def get_credential_state() -> CredentialState:
    return _state.state


def normalize_private_key(raw: str) -> str:
    return raw.replace("\\n", "\n")


def has_pem_markers(key: str) -> bool:
    return PEM_BEGIN_MARKER in key and PEM_END_MARKER in key


def _fail(reason: str, **flags) -> CredentialState:
    logger.error("credential_init_failed reason=%s %s", reason, " ".join(f"{k}={v}" for k, v in flags.items()))
    _state.transition(CredentialState.FAILED, context=reason)
    return _state.state


def initialize_credentials() -> CredentialState:
    """
    Build the credential client from FIREBASE_* env vars.

    Runs at most once per process. READY and FAILED are both final: a
    failed setup stays failed until the process restarts with fixed config.
    """
    global _client
    if _state.state != CredentialState.UNINITIALIZED:
        return _state.state

    _state.transition(CredentialState.INITIALIZING, context="startup")

    fields = get_credential_fields()
    project_id = fields["project_id"]
    private_key = fields["private_key"]
    client_email = fields["client_email"]

    if not project_id or not private_key or not client_email:
        return _fail(
            "missing_config",
            has_project_id=bool(project_id),
            has_private_key=bool(private_key),
            has_client_email=bool(client_email),
        )

    private_key = normalize_private_key(private_key)
    if not has_pem_markers(private_key):
        return _fail("invalid_private_key_format", project_id=project_id)

    try:
        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "project_id": project_id,
                "private_key": private_key,
                "client_email": client_email,
                "token_uri": TOKEN_URI,
            }
        )
    except Exception as exc:
        return _fail("credential_construction_error", error=exc.__class__.__name__)

    _client = IdentityTokenClient(project_id, credentials)
    _state.transition(CredentialState.READY, context="startup")
    logger.info(
        "credential_init_completed project_id=%s service_account=%s",
        project_id,
        _client.service_account_email,
    )
    return _state.state


def get_identity_client() -> IdentityTokenClient:
    if _state.state != CredentialState.READY or _client is None:
        raise AuthConfigError()
    return _client


# -----------------------------------------------------------------------------
# Allow-list
# -----------------------------------------------------------------------------


def parse_allow_list(raw: str | None) -> tuple[str, ...]:
    return tuple(e.strip().lower() for e in str(raw or "").split(",") if e.strip())


def is_email_authorized(email: str | None, allow_list: tuple[str, ...]) -> bool:
    if not allow_list or not email:
        return False

    lower_email = email.lower()
    for entry in allow_list:
        if entry.startswith("@"):
            if lower_email.endswith(entry):
                return True
        elif lower_email == entry:
            return True
    return False


# -----------------------------------------------------------------------------
# Verification
# -----------------------------------------------------------------------------


async def verify_firebase_token(token: str) -> VerifiedIdentity:
    if _state.state == CredentialState.UNINITIALIZED:
        initialize_credentials()

    client = get_identity_client()

    try:
        if not token:
            raise ValueError("Empty token")
        claims = await run_in_threadpool(client.verify_id_token, token)
    except Exception as exc:
        logger.warning("token_verification_failed error=%s: %s", exc.__class__.__name__, exc)
        raise TokenError() from None

    email = claims.get("email")
    is_authorized = is_email_authorized(email, parse_allow_list(get_authorized_emails_raw()))

    logger.info(
        "token_verified uid=%s email=%s authorized=%s",
        claims["uid"],
        email,
        is_authorized,
    )
    return VerifiedIdentity(uid=claims["uid"], email=email, is_authorized=is_authorized)


# -----------------------------------------------------------------------------
# FastAPI dependencies
# -----------------------------------------------------------------------------


async def require_verified_user(authorization: str = Header(None)) -> VerifiedIdentity:
    """Resolve the Bearer token to an identity. AuthError subclasses are mapped to responses in app.py."""
    if not authorization or not authorization.startswith("Bearer "):
        raise MissingAuthHeaderError()

    token = authorization.replace("Bearer ", "", 1).strip()
    return await verify_firebase_token(token)
