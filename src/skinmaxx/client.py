"""Calling-layer client for the scans RPC surface.

Unwraps JSON envelopes, turns error envelopes back into skinmaxx
exceptions, and retries ``scans.analyze`` exactly once when the envelope
itself could not be parsed.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from skinmaxx.errors import TransientParseError, error_from_code
from skinmaxx.scoring import AnalysisResult
from skinmaxx.service import ScanService

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 1.0

Transport = Callable[[str, Mapping[str, Any]], str]


def parse_envelope(text: str) -> dict[str, Any]:
    """Parse raw envelope text. Raises TransientParseError if malformed."""
    try:
        envelope = json.loads(text)
    except (TypeError, ValueError) as e:
        raise TransientParseError(f"JSON Parse error: {e}") from e
    if not isinstance(envelope, dict) or not ("result" in envelope or "error" in envelope):
        raise TransientParseError("JSON Parse error: unexpected envelope")
    return envelope


class LocalTransport:
    """In-process transport: JSON-encodes what ScanService.dispatch returns."""

    def __init__(self, service: ScanService, user_id: str | None) -> None:
        self.service = service
        self.user_id = user_id

    def __call__(self, method: str, payload: Mapping[str, Any]) -> str:
        return json.dumps(self.service.dispatch(method, self.user_id, payload))


class ScanClient:
    """Client for scans.* calls over any text transport."""

    def __init__(
        self,
        transport: Transport,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.retry_delay = retry_delay
        self._sleep = sleep

    def call(self, method: str, payload: Mapping[str, Any] | None = None) -> Any:
        envelope = parse_envelope(self.transport(method, payload or {}))
        error = envelope.get("error")
        if error is not None:
            if not isinstance(error, Mapping):
                raise error_from_code(None, str(error))
            raise error_from_code(error.get("code"), str(error.get("message", "")))
        return envelope["result"]

    def analyze_scan(self, image_uri: str) -> AnalysisResult:
        """Analyze a photo, retrying once on an envelope parse error only."""
        payload = {"imageUri": image_uri}
        try:
            data = self.call("scans.analyze", payload)
        except TransientParseError as e:
            logger.warning("%s; retrying once in %gs", e.message, self.retry_delay)
            self._sleep(self.retry_delay)
            data = self.call("scans.analyze", payload)
        return AnalysisResult.from_wire(data)

    def save_scan(self, result: AnalysisResult, image_uri: str) -> dict[str, Any]:
        payload = dict(result.to_wire(), imageUri=image_uri)
        return self.call("scans.save", payload)["scan"]

    def get_history(self) -> list[dict[str, Any]]:
        return self.call("scans.getHistory")["scans"]

    def delete_scan(self, scan_id: str) -> None:
        self.call("scans.delete", {"scanId": scan_id})
