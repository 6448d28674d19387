from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

pytest.importorskip("ultralytics")

from currency_recognition.adapters import yolo_gateway  # noqa: E402
from currency_recognition.core.errors import InferenceError  # noqa: E402
from currency_recognition.core.normalizer import normalize_batch  # noqa: E402


class FakeTensor:
    def __init__(self, values) -> None:
        self._values = np.asarray(values, dtype=np.float32)

    def item(self) -> float:
        return float(self._values.reshape(-1)[0])

    def cpu(self) -> "FakeTensor":
        return self

    def numpy(self) -> np.ndarray:
        return self._values


class FakeYOLO:
    def __init__(self, weights: str) -> None:
        self.weights = weights
        self.names = {0: "100", 1: "500"}
        self.fail = False

    def __call__(self, image, verbose=False, conf=0.25):
        if self.fail:
            raise RuntimeError("CUDA out of memory")
        box = SimpleNamespace(cls=FakeTensor([1]), conf=FakeTensor([0.88]), xywh=FakeTensor([[50, 40, 30, 20]]))
        return [SimpleNamespace(boxes=[box]), SimpleNamespace(boxes=None)]


def test_yolo_gateway_emits_center_origin_predictions(monkeypatch) -> None:
    monkeypatch.setattr(yolo_gateway, "YOLO", FakeYOLO)
    gateway = yolo_gateway.UltralyticsGateway(Path("weights.pt"), confidence=0.3)

    predictions = asyncio.run(gateway.infer(np.zeros((8, 8, 3), dtype=np.uint8)))

    detections = normalize_batch(predictions)
    assert len(detections) == 1
    assert detections[0].denomination == "500"
    assert detections[0].confidence == pytest.approx(0.88)
    assert detections[0].bounding_box.x == 50.0
    assert detections[0].bounding_box.width == 30.0


def test_yolo_gateway_wraps_model_errors(monkeypatch) -> None:
    monkeypatch.setattr(yolo_gateway, "YOLO", FakeYOLO)
    gateway = yolo_gateway.UltralyticsGateway(Path("weights.pt"))
    gateway._model.fail = True

    with pytest.raises(InferenceError):
        gateway.predict(np.zeros((8, 8, 3), dtype=np.uint8))
