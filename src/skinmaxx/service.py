"""Scan service: the ``scans.*`` RPC surface over analyzer and journal.

Callers are identified by a user id that an outer auth layer resolved from
a bearer token. Every method refuses to run without one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from skinmaxx.analyze import Analyzer
from skinmaxx.db import Database, Scan
from skinmaxx.errors import (
    BadRequestError,
    NotFoundError,
    SkinmaxxError,
    UnauthorizedError,
)
from skinmaxx.ingest import compute_image_hash
from skinmaxx.scoring import AnalysisResult

logger = logging.getLogger(__name__)


def require_user(user_id: str | None) -> str:
    if not user_id:
        raise UnauthorizedError("Authentication required")
    return user_id


class ScanService:
    """Analyze, save, list and delete scans for an authenticated user."""

    def __init__(self, analyzer: Analyzer, db: Database) -> None:
        self.analyzer = analyzer
        self.db = db
        self._methods: dict[str, Callable[[str, Mapping[str, Any]], Any]] = {
            "scans.analyze": self._rpc_analyze,
            "scans.save": self._rpc_save,
            "scans.getHistory": self._rpc_history,
            "scans.delete": self._rpc_delete,
        }

    def analyze(self, user_id: str | None, image_uri: str) -> AnalysisResult:
        user_id = require_user(user_id)
        logger.info("Analyzing image for user %s", user_id)
        return self.analyzer.analyze(image_uri)

    def save(
        self, user_id: str | None, result: AnalysisResult, image_uri: str
    ) -> Scan:
        user_id = require_user(user_id)
        image_hash = None
        if image_uri.startswith("data:"):
            image_hash = compute_image_hash(image_uri)
        scan = self.db.save_scan(user_id, result, image_uri, image_hash=image_hash)
        logger.info("Saved scan %s for user %s", scan.id, user_id)
        return scan

    def get_history(self, user_id: str | None) -> list[Scan]:
        return self.db.get_history(require_user(user_id))

    def delete(self, user_id: str | None, scan_id: str) -> None:
        user_id = require_user(user_id)
        if not self.db.delete_scan(user_id, scan_id):
            raise NotFoundError(f"Scan not found: {scan_id}")

    # RPC

    def _rpc_analyze(self, user_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self.analyze(user_id, _require_str(payload, "imageUri")).to_wire()

    def _rpc_save(self, user_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        image_uri = _require_str(payload, "imageUri")
        try:
            result = AnalysisResult.from_wire(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise BadRequestError(f"Invalid scan payload: {e}") from e
        scan = self.save(user_id, result, image_uri)
        return {"success": True, "scan": scan.to_wire()}

    def _rpc_history(self, user_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        return {"scans": [s.to_wire() for s in self.get_history(user_id)]}

    def _rpc_delete(self, user_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.delete(user_id, _require_str(payload, "scanId"))
        return {"success": True}

    def dispatch(
        self,
        method: str,
        user_id: str | None,
        payload: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Route one RPC call and wrap the outcome in a JSON envelope.

        Returns ``{"result": ...}`` on success and
        ``{"error": {"code": ..., "message": ...}}`` for skinmaxx errors.
        """
        handler = self._methods.get(method)
        try:
            if handler is None:
                raise NotFoundError(f"Unknown method: {method}")
            return {"result": handler(require_user(user_id), payload or {})}
        except SkinmaxxError as e:
            logger.warning("%s failed: [%s] %s", method, e.code, e.message)
            return {"error": {"code": e.code, "message": e.message}}


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise BadRequestError(f"Missing field: {key}")
    return value
