"""Provider gateway: Face++ detect with regional endpoint fallback.

One call walks the configured endpoints in order, never in parallel, and
hits each endpoint at most once. Each attempt is classified
into an AttemptOutcome and the TRANSITIONS table decides whether to stop,
move on to the next endpoint, or fail right away.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests

from skinmaxx.config import ProviderConfig, mask_secret
from skinmaxx.errors import (
    ConfigurationError,
    NoFaceDetectedError,
    ProviderAuthError,
    ProviderError,
    ProviderInfrastructureError,
    ProviderRejectedError,
    ProviderTimeoutError,
)
from skinmaxx.scoring.types import RawDetectionAttributes

logger = logging.getLogger(__name__)

NO_FACE_MESSAGE = "No face detected in the image"
UNAVAILABLE_MESSAGE = (
    "Face++ service is temporarily unavailable. Please try again in a few moments."
)
UNEXPECTED_MESSAGE = (
    "Face++ API returned an unexpected response. "
    "The service may be experiencing issues."
)
AUTH_FAILED_MESSAGE = (
    "Face++ API authentication failed. Please verify your API key and secret "
    "are correct and your account is active."
)

AUTH_MARKERS = (
    "AUTHORIZATION_ERROR",
    "AUTHENTICATION_ERROR",
    "Invalid API Key",
    "api_key",
    "api_secret",
)

_TITLE_RE = re.compile(r"<title>([^<]+)</title>", re.IGNORECASE)


class AttemptOutcome(str, Enum):
    """Classification of a single endpoint attempt."""

    SUCCESS = "success"
    HTML_ERROR = "html_error"
    NON_JSON = "non_json"
    AUTH_ERROR = "auth_error"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"


class Action(str, Enum):
    STOP = "stop"  # success, return payload
    NEXT = "next"  # record failure, try next endpoint
    FAIL = "fail"  # semantic failure, raise now


TRANSITIONS: dict[AttemptOutcome, Action] = {
    AttemptOutcome.SUCCESS: Action.STOP,
    AttemptOutcome.HTML_ERROR: Action.NEXT,
    AttemptOutcome.NON_JSON: Action.NEXT,
    AttemptOutcome.AUTH_ERROR: Action.NEXT,
    AttemptOutcome.NETWORK_ERROR: Action.NEXT,
    AttemptOutcome.TIMEOUT: Action.NEXT,
    AttemptOutcome.API_ERROR: Action.FAIL,
}


@dataclass(frozen=True)
class Attempt:
    """Result of POSTing to one endpoint."""

    endpoint: str
    outcome: AttemptOutcome
    status: int | None = None
    message: str = ""
    payload: dict[str, Any] | None = None


@dataclass
class FallbackState:
    """Progress through the endpoint list for one detect call."""

    index: int = 0
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def last(self) -> Attempt | None:
        return self.attempts[-1] if self.attempts else None

    def record(self, attempt: Attempt) -> Action:
        self.attempts.append(attempt)
        self.index += 1
        return TRANSITIONS[attempt.outcome]


def is_html(text: str) -> bool:
    stripped = text.lstrip()
    return stripped.startswith("<!") or stripped.lower().startswith("<html")


def is_auth_error(message: str) -> bool:
    return any(marker in message for marker in AUTH_MARKERS)


def has_valid_faces(payload: Mapping[str, Any]) -> bool:
    """True if `faces` is absent or a list of face objects."""
    faces = payload.get("faces")
    if faces is None:
        return True
    return isinstance(faces, list) and all(isinstance(f, Mapping) for f in faces)


def classify_response(
    endpoint: str, status: int, content_type: str, text: str
) -> Attempt:
    """Classify one HTTP response from the provider."""
    if is_html(text):
        match = _TITLE_RE.search(text)
        title = match.group(1).strip() if match else "Unknown error"
        return Attempt(
            endpoint,
            AttemptOutcome.HTML_ERROR,
            status,
            f"Face++ returned HTML error page (status {status}): {title}",
        )

    if "application/json" not in content_type:
        return Attempt(
            endpoint,
            AttemptOutcome.NON_JSON,
            status,
            f"Non-JSON response from {endpoint} (content-type: {content_type})",
        )

    try:
        payload = json.loads(text)
    except ValueError as e:
        return Attempt(
            endpoint,
            AttemptOutcome.NON_JSON,
            status,
            f"Invalid JSON from {endpoint}: {e}",
        )
    if not isinstance(payload, dict):
        return Attempt(
            endpoint,
            AttemptOutcome.NON_JSON,
            status,
            f"Unexpected JSON body from {endpoint}",
        )

    error_message = payload.get("error_message")
    if error_message:
        outcome = (
            AttemptOutcome.AUTH_ERROR
            if is_auth_error(str(error_message))
            else AttemptOutcome.API_ERROR
        )
        return Attempt(endpoint, outcome, status, str(error_message), payload)

    if not has_valid_faces(payload):
        return Attempt(
            endpoint,
            AttemptOutcome.NON_JSON,
            status,
            f"Malformed faces list from {endpoint}",
        )

    return Attempt(endpoint, AttemptOutcome.SUCCESS, status, payload=payload)


def exhausted_error(last: Attempt | None, timeout: float) -> ProviderError:
    """Summarize the failure after every endpoint was tried."""
    if last is None:
        return ProviderInfrastructureError("Face++ API request failed")
    if last.outcome is AttemptOutcome.HTML_ERROR:
        return ProviderInfrastructureError(UNAVAILABLE_MESSAGE)
    if last.outcome is AttemptOutcome.NON_JSON:
        return ProviderInfrastructureError(UNEXPECTED_MESSAGE)
    if last.outcome is AttemptOutcome.AUTH_ERROR:
        return ProviderAuthError(AUTH_FAILED_MESSAGE)
    if last.outcome is AttemptOutcome.TIMEOUT:
        return ProviderTimeoutError(
            f"Face++ API request timed out after {timeout:g}s"
        )
    return ProviderInfrastructureError(last.message or "Face++ API request failed")


class FaceDetectionGateway:
    """Face++ detect client with sequential regional fallback."""

    def __init__(
        self,
        config: ProviderConfig,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._http = session if session is not None else requests
        self._sleep = sleep

    def _form(self, image_base64: str) -> dict[str, str]:
        return {
            "api_key": self.config.api_key or "",
            "api_secret": self.config.api_secret or "",
            "image_base64": image_base64,
            "return_attributes": self.config.return_attributes,
        }

    def _attempt(self, endpoint: str, image_base64: str) -> Attempt:
        try:
            response = self._http.post(
                endpoint, data=self._form(image_base64), timeout=self.config.timeout
            )
        except requests.exceptions.Timeout as e:
            return Attempt(endpoint, AttemptOutcome.TIMEOUT, message=str(e))
        except requests.exceptions.RequestException as e:
            return Attempt(endpoint, AttemptOutcome.NETWORK_ERROR, message=str(e))

        content_type = response.headers.get("Content-Type") or ""
        text = response.text
        logger.debug(
            "Face++ %s status=%s content-type=%s body=%s",
            endpoint,
            response.status_code,
            content_type,
            text[:1000],
        )
        return classify_response(endpoint, response.status_code, content_type, text)

    def detect(self, image_base64: str) -> dict[str, Any]:
        """Run face detection, falling back across regional endpoints.

        Args:
            image_base64: Base64 image payload (no data-URL prefix).

        Returns:
            Parsed provider body with at least one face.

        Raises:
            ConfigurationError: Credentials or endpoints missing.
            NoFaceDetectedError: Provider found no face.
            ProviderRejectedError: Provider returned a non-auth error.
            ProviderAuthError: Every endpoint rejected the credentials.
            ProviderTimeoutError: Last attempt timed out.
            ProviderInfrastructureError: Endpoints unavailable.
        """
        if not self.config.is_configured:
            raise ConfigurationError("Face++ API credentials not configured")
        endpoints = self.config.endpoints
        if not endpoints:
            raise ConfigurationError("No Face++ endpoints configured")

        logger.debug(
            "Face++ credentials: key=%s secret=%s",
            mask_secret(self.config.api_key),
            mask_secret(self.config.api_secret),
        )

        state = FallbackState()
        while state.index < len(endpoints):
            endpoint = endpoints[state.index]
            logger.info("Trying Face++ endpoint %s", endpoint)
            attempt = self._attempt(endpoint, image_base64)
            action = state.record(attempt)

            if action is Action.STOP:
                logger.info("Face++ detect succeeded via %s", endpoint)
                break
            if action is Action.FAIL:
                logger.warning("Face++ rejected request: %s", attempt.message)
                raise ProviderRejectedError(attempt.message)

            logger.warning(
                "Face++ endpoint %s failed (%s): %s",
                endpoint,
                attempt.outcome.value,
                attempt.message,
            )
            if (
                attempt.outcome is AttemptOutcome.HTML_ERROR
                and attempt.status is not None
                and attempt.status >= 500
            ):
                self._sleep(self.config.html_backoff)
        else:
            logger.error("All Face++ endpoints failed")
            raise exhausted_error(state.last, self.config.timeout)

        payload = state.last.payload or {}  # type: ignore[union-attr]
        if not payload.get("faces"):
            raise NoFaceDetectedError(NO_FACE_MESSAGE)
        return payload

    def detect_face(self, image_base64: str) -> RawDetectionAttributes:
        """Detect and return the attributes of the first face."""
        payload = self.detect(image_base64)
        return RawDetectionAttributes.from_face(payload["faces"][0])
