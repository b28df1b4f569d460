from enum import Enum


class UploadErrorKind(str, Enum):
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_MEDIA_FORMAT = "INVALID_MEDIA_FORMAT"
    EMPTY_MEDIA = "EMPTY_MEDIA"
    MISSING_THUMBNAIL = "MISSING_THUMBNAIL"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    UNEXPECTED = "UNEXPECTED"


class AuthErrorKind(str, Enum):
    MISSING_AUTH_HEADER = "MISSING_AUTH_HEADER"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"


UPLOAD_ERROR_STATUS = {
    UploadErrorKind.MISSING_FIELDS: 400,
    UploadErrorKind.INVALID_MEDIA_FORMAT: 400,
    UploadErrorKind.EMPTY_MEDIA: 400,
    UploadErrorKind.MISSING_THUMBNAIL: 400,
    UploadErrorKind.STORAGE_FAILURE: 500,
    UploadErrorKind.UNEXPECTED: 500,
}

UPLOAD_ERROR_MESSAGES = {
    UploadErrorKind.MISSING_FIELDS: "Missing required fields",
    UploadErrorKind.INVALID_MEDIA_FORMAT: "Media files format is invalid",
    UploadErrorKind.EMPTY_MEDIA: "At least one media file is required",
    UploadErrorKind.MISSING_THUMBNAIL: "Thumbnail is required",
    UploadErrorKind.STORAGE_FAILURE: "Upload to storage failed",
    UploadErrorKind.UNEXPECTED: "Upload failed",
}

AUTH_ERROR_STATUS = {
    AuthErrorKind.MISSING_AUTH_HEADER: 401,
    AuthErrorKind.NOT_INITIALIZED: 503,
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: 401,
}

AUTH_ERROR_CODES = {
    AuthErrorKind.MISSING_AUTH_HEADER: "AUTH_MISSING_AUTH_HEADER",
    AuthErrorKind.NOT_INITIALIZED: "AUTH_NOT_INITIALIZED",
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: "AUTH_INVALID_TOKEN",
}

# What callers see; the internal message stays in logs.
AUTH_ERROR_MESSAGES = {
    AuthErrorKind.MISSING_AUTH_HEADER: "Missing Authorization header",
    AuthErrorKind.NOT_INITIALIZED: "Authentication is not configured",
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token",
}

# Every kind must map to a status; a new kind without one fails at import.
for _kind in UploadErrorKind:
    if _kind not in UPLOAD_ERROR_STATUS or _kind not in UPLOAD_ERROR_MESSAGES:
        raise RuntimeError(f"Upload error kind {_kind.value} has no HTTP mapping")
for _kind in AuthErrorKind:
    if _kind not in AUTH_ERROR_STATUS or _kind not in AUTH_ERROR_CODES or _kind not in AUTH_ERROR_MESSAGES:
        raise RuntimeError(f"Auth error kind {_kind.value} has no HTTP mapping")


class UploadError(Exception):
    """A failed post upload, carrying the kind that decides the HTTP status."""

    def __init__(self, kind: UploadErrorKind, message: str | None = None, *, details: str | None = None):
        self.kind = kind
        self.message = message or UPLOAD_ERROR_MESSAGES[kind]
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return UPLOAD_ERROR_STATUS[self.kind]

    @property
    def is_validation_error(self) -> bool:
        return self.status_code == 400

    def to_body(self, *, include_details: bool) -> dict:
        body = {"error": self.message, "error_code": self.kind.value}
        if include_details and self.details:
            body["details"] = self.details
        return body


class StorageError(Exception):
    pass


class AuthError(Exception):
    kind: AuthErrorKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return AUTH_ERROR_STATUS[self.kind]

    @property
    def error_code(self) -> str:
        return AUTH_ERROR_CODES[self.kind]

    @property
    def public_message(self) -> str:
        return AUTH_ERROR_MESSAGES[self.kind]


class AuthConfigError(AuthError):
    kind = AuthErrorKind.NOT_INITIALIZED

    def __init__(self, message: str = "Credential client not initialized"):
        super().__init__(message)


class TokenError(AuthError):
    kind = AuthErrorKind.INVALID_OR_EXPIRED_TOKEN

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class MissingAuthHeaderError(AuthError):
    kind = AuthErrorKind.MISSING_AUTH_HEADER

    def __init__(self, message: str = "Missing Authorization header"):
        super().__init__(message)
