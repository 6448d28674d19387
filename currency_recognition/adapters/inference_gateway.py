"""Hosted object-detection client used as the inference gateway."""
from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional, Protocol

import cv2
import numpy as np
import requests

from currency_recognition.core.errors import InferenceError

LOGGER = logging.getLogger(__name__)


class InferenceGateway(Protocol):
    async def infer(self, image: np.ndarray) -> List[Any]:
        """Return the raw predictions for one still image."""
        ...


def encode_jpeg(image: np.ndarray, quality: int = 90) -> bytes:
    success, encoded = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not success:
        raise InferenceError("Unable to encode frame as JPEG")
    return encoded.tobytes()


class HttpInferenceGateway:
    """Post base64 JPEG frames to a Roboflow-style detection endpoint.

    The endpoint is ``{base_url}/{model_id}`` and answers with
    ``{"predictions": [{"class", "confidence", "x", "y", "width", "height"}, ...]}``.
    """

    def __init__(
        self,
        base_url: str,
        model_id: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        confidence: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = f"{base_url.rstrip('/')}/{model_id.strip('/')}"
        self.api_key = api_key
        self.timeout = timeout
        self.confidence = confidence
        self._session = session or requests.Session()

    async def infer(self, image: np.ndarray) -> List[Any]:
        return await asyncio.to_thread(self.infer_sync, image)

    def infer_sync(self, image: np.ndarray) -> List[Any]:
        payload = base64.b64encode(encode_jpeg(image))
        params: Dict[str, Any] = {}
        if self.api_key:
            params["api_key"] = self.api_key
        if self.confidence is not None:
            # the service takes an integer percentage
            params["confidence"] = int(round(self.confidence * 100))
        try:
            response = self._session.post(
                self.endpoint,
                params=params,
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise InferenceError(f"Inference request failed: {exc}") from exc
        if response.status_code >= 400:
            raise InferenceError(f"Inference service returned status {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise InferenceError("Inference service returned malformed JSON") from exc
        predictions = self._extract_predictions(body)
        LOGGER.debug("Inference returned %d predictions", len(predictions))
        return predictions

    @staticmethod
    def _extract_predictions(body: object) -> List[Any]:
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            predictions = body.get("predictions")
            if predictions is None:
                predictions = body.get("detections", [])
            if isinstance(predictions, list):
                return predictions
        raise InferenceError("Inference response did not contain a predictions list")

    def close(self) -> None:
        self._session.close()
