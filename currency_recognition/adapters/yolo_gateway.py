"""Local YOLO weights as an inference gateway."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

try:  # pragma: no cover - import guarded for environments without ultralytics
    from ultralytics import YOLO
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "ultralytics package is required for the local YOLO backend. Install it via "
        "`pip install -e .[yolo]` or switch CURRENCY_INFERENCE_BACKEND to http."
    ) from exc

from currency_recognition.core.errors import InferenceError

LOGGER = logging.getLogger(__name__)


class UltralyticsGateway:
    """Run currency weights locally and emit center-origin raw predictions."""

    def __init__(self, model_path: Path, confidence: float = 0.25) -> None:
        self.model_path = model_path
        self.confidence = confidence
        LOGGER.info("Loading YOLO model from %s", model_path)
        self._model = YOLO(str(model_path))
        self._class_map = self._model.names

    async def infer(self, image: np.ndarray) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.predict, image)

    def predict(self, image: np.ndarray) -> List[Dict[str, Any]]:
        try:
            results = self._model(image, verbose=False, conf=self.confidence)
        except Exception as exc:
            raise InferenceError(f"YOLO inference failed: {exc}") from exc
        predictions: List[Dict[str, Any]] = []
        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue
            for box in boxes:
                class_id = int(box.cls.item())
                x, y, width, height = box.xywh.cpu().numpy().flatten().tolist()
                predictions.append(
                    {
                        "class": self._class_map.get(class_id, str(class_id)),
                        "class_id": class_id,
                        "confidence": float(box.conf.item()),
                        "x": x,
                        "y": y,
                        "width": width,
                        "height": height,
                    }
                )
        LOGGER.debug("Detected %d candidate bills", len(predictions))
        return predictions
