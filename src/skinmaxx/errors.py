"""Error taxonomy for skinmaxx.

Every failure carries a stable ``code`` so that callers on the other side
of a JSON envelope can branch on it (retake photo, try again later, ...).
"""

from __future__ import annotations


class SkinmaxxError(Exception):
    """Base class for all skinmaxx errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(SkinmaxxError):
    """Provider credentials (or other required settings) are missing."""

    code = "CONFIGURATION_ERROR"


class ProviderError(SkinmaxxError):
    """Base class for failures reported by the face-analysis provider."""

    code = "PROVIDER_ERROR"


class ProviderInfrastructureError(ProviderError):
    """HTML error page, non-JSON body, or network failure on every endpoint."""

    code = "PROVIDER_UNAVAILABLE"


class ProviderTimeoutError(ProviderInfrastructureError):
    """The last endpoint attempt timed out."""

    code = "PROVIDER_TIMEOUT"


class ProviderAuthError(ProviderError):
    """Credentials were rejected by every endpoint."""

    code = "PROVIDER_AUTH_FAILED"


class ProviderRejectedError(ProviderError):
    """Provider returned an explicit, non-auth error (bad image, size, ...)."""

    code = "PROVIDER_ERROR"


class NoFaceDetectedError(SkinmaxxError):
    """The provider answered but found no face. Never retried."""

    code = "NO_FACE_DETECTED"


class TransientParseError(SkinmaxxError):
    """The calling layer could not parse the transport envelope."""

    code = "PARSE_ERROR"


class RateLimitError(SkinmaxxError):
    """Too many concurrent requests for this caller."""

    code = "TOO_MANY_REQUESTS"


class InvalidImageError(SkinmaxxError):
    """Image could not be decoded or is unusable for analysis."""

    code = "INVALID_IMAGE"


class UnauthorizedError(SkinmaxxError):
    """No authenticated user for a protected operation."""

    code = "UNAUTHORIZED"


class NotFoundError(SkinmaxxError):
    """Referenced user, scan or method does not exist."""

    code = "NOT_FOUND"


class BadRequestError(SkinmaxxError):
    """Request payload is missing fields or malformed."""

    code = "BAD_REQUEST"


_BY_CODE: dict[str, type[SkinmaxxError]] = {
    cls.code: cls
    for cls in (
        SkinmaxxError,
        ConfigurationError,
        ProviderInfrastructureError,
        ProviderTimeoutError,
        ProviderAuthError,
        ProviderRejectedError,
        NoFaceDetectedError,
        TransientParseError,
        RateLimitError,
        InvalidImageError,
        UnauthorizedError,
        NotFoundError,
        BadRequestError,
    )
}


def error_from_code(code: str | None, message: str) -> SkinmaxxError:
    """Rebuild an exception from an error envelope.

    Unknown codes map to the base class so the message is never lost.
    """
    cls = _BY_CODE.get(code or "", SkinmaxxError)
    return cls(message)
