"""Build the service graph from settings."""
from __future__ import annotations

import logging

from currency_recognition.adapters.inference_gateway import HttpInferenceGateway, InferenceGateway
from currency_recognition.adapters.speech import NullSpeaker, Pyttsx3Speaker
from currency_recognition.app.settings import AppSettings
from currency_recognition.core.announcer import Speaker
from currency_recognition.services.detection_service import DetectionService

LOGGER = logging.getLogger(__name__)


def build_gateway(settings: AppSettings) -> InferenceGateway:
    if settings.inference_backend == "yolo":
        # deferred so the http backend never needs ultralytics installed
        from currency_recognition.adapters.yolo_gateway import UltralyticsGateway

        return UltralyticsGateway(settings.model_path, confidence=settings.confidence_threshold)
    if not settings.inference_api_key:
        LOGGER.warning("No inference API key configured; requests may be rejected")
    return HttpInferenceGateway(
        settings.inference_url,
        settings.inference_model_id,
        api_key=settings.inference_api_key,
        timeout=settings.inference_timeout_seconds,
        confidence=settings.confidence_threshold,
    )


def build_speaker(settings: AppSettings) -> Speaker:
    if not settings.speech_enabled:
        return NullSpeaker()
    return Pyttsx3Speaker(volume=settings.speech_volume, rate=settings.speech_rate)


def build_service(settings: AppSettings) -> DetectionService:
    return DetectionService(
        build_gateway(settings),
        build_speaker(settings),
        settings.allowed_denominations,
        confidence_threshold=settings.confidence_threshold,
        rounds=settings.confirmation_rounds,
        cooldown_seconds=settings.announcement_cooldown_seconds,
        currency_name=settings.currency_name,
        history_limit=settings.history_limit,
    )
