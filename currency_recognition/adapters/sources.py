"""Still-image sources: camera frames, image files and uploaded bytes."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

import cv2
import numpy as np

from currency_recognition.core.errors import SourceUnavailableError

LOGGER = logging.getLogger(__name__)


class ImageSource(Protocol):
    def read(self) -> np.ndarray:
        ...


def decode_image(payload: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, ...) into a BGR array."""

    if not payload:
        raise SourceUnavailableError("No image data received")
    buffer = np.frombuffer(payload, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise SourceUnavailableError("Uploaded file is not a readable image")
    return image


class ImageFileSource:
    """Serve the same still image from disk on every read."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._image: Optional[np.ndarray] = None

    def read(self) -> np.ndarray:
        if self._image is None:
            if not self.path.is_file():
                raise SourceUnavailableError(f"Image file not found: {self.path}")
            image = cv2.imread(str(self.path), cv2.IMREAD_COLOR)
            if image is None:
                raise SourceUnavailableError(f"Unable to read image file: {self.path}")
            self._image = image
        return self._image


class CameraSource:
    """Grab single frames from an OpenCV capture device, opened on first use."""

    def __init__(self, device: Union[int, str] = 0) -> None:
        self.device = device
        self._capture: Optional[cv2.VideoCapture] = None

    def open(self) -> cv2.VideoCapture:
        if self._capture is None:
            capture = cv2.VideoCapture(self.device)
            if not capture.isOpened():
                capture.release()
                raise SourceUnavailableError(f"Unable to open camera: {self.device}")
            LOGGER.info("Camera %s opened successfully", self.device)
            self._capture = capture
        return self._capture

    def read(self) -> np.ndarray:
        capture = self.open()
        success, frame = capture.read()
        if not success or frame is None:
            raise SourceUnavailableError(f"Camera {self.device} returned no frame")
        return frame

    def close(self) -> None:
        if self._capture is not None:
            LOGGER.info("Releasing camera %s", self.device)
            self._capture.release()
            self._capture = None
