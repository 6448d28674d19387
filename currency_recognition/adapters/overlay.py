"""Draw detections and the confirmed caption onto a frame."""
from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from currency_recognition.core.models import ConfirmedResult, Detection

BOX_COLOR: Tuple[int, int, int] = (0, 255, 0)
CAPTION_COLOR: Tuple[int, int, int] = (0, 255, 255)


def draw_detections(
    frame: np.ndarray,
    detections: Iterable[Detection],
    font_scale: float = 0.7,
    color: Sequence[int] = BOX_COLOR,
) -> np.ndarray:
    output = frame.copy()
    height, width = output.shape[:2]
    for detection in detections:
        x1, y1, x2, y2 = detection.bounding_box.corners()
        x1, y1 = max(0, int(x1)), max(0, int(y1))
        x2, y2 = min(width - 1, int(x2)), min(height - 1, int(y2))
        cv2.rectangle(output, (x1, y1), (x2, y2), tuple(color), 2)
        label = f"{detection.denomination} {detection.confidence:.0%}"
        cv2.putText(
            output,
            label,
            (x1, max(0, y1 - 5)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            tuple(color),
            2,
            lineType=cv2.LINE_AA,
        )
    return output


def annotate_frame(
    frame: np.ndarray,
    detections: Iterable[Detection],
    result: Optional[ConfirmedResult] = None,
    font_scale: float = 0.7,
) -> np.ndarray:
    output = draw_detections(frame, detections, font_scale=font_scale)
    if result is None:
        caption = "Scanning..."
    else:
        caption = result.label or "No bill detected"
    cv2.putText(
        output,
        caption,
        (10, 30),
        cv2.FONT_HERSHEY_SIMPLEX,
        font_scale,
        CAPTION_COLOR,
        2,
        lineType=cv2.LINE_AA,
    )
    return output
