"""Analyze module: one photo in, one AnalysisResult out.

Stages run strictly in order: credentials, image ingest, face detection,
scoring. The first failure aborts the run and propagates unchanged; no
partial result is ever returned.
"""

from __future__ import annotations

import logging
from typing import Protocol

from skinmaxx.config import ProviderConfig, load_provider_config
from skinmaxx.errors import ConfigurationError
from skinmaxx.gateway import FaceDetectionGateway
from skinmaxx.ingest import DEFAULT_MAX_DIM, prepare_upload
from skinmaxx.scoring import AnalysisResult, RawDetectionAttributes, score_attributes

logger = logging.getLogger(__name__)


class FaceDetector(Protocol):
    config: ProviderConfig

    def detect_face(self, image_base64: str) -> RawDetectionAttributes: ...


class Analyzer:
    """Sequences gateway and scoring passes for a single analysis."""

    def __init__(self, gateway: FaceDetector, max_dim: int = DEFAULT_MAX_DIM) -> None:
        self.gateway = gateway
        self.max_dim = max_dim

    def analyze(self, image_uri: str) -> AnalysisResult:
        """Analyze one photo.

        Args:
            image_uri: Base64 string or data URL.

        Returns:
            AnalysisResult for the first detected face.
        """
        if not self.gateway.config.is_configured:
            raise ConfigurationError("Face++ API credentials not configured")

        logger.info("Analyzing image (%d chars)", len(image_uri))
        image_base64 = prepare_upload(image_uri, max_dim=self.max_dim)

        raw = self.gateway.detect_face(image_base64)
        logger.debug("Skin status: %s", dict(raw.skin_status))

        result = score_attributes(raw)
        logger.info(
            "Analysis complete: score=%d type=%s radiance=%d",
            result.score,
            result.skin_type.value,
            result.radiance_score,
        )
        return result


def analyze(image_uri: str, config: ProviderConfig | None = None) -> AnalysisResult:
    """Analyze a photo with a gateway built from config (or the environment)."""
    if config is None:
        config = load_provider_config()
    return Analyzer(FaceDetectionGateway(config)).analyze(image_uri)
