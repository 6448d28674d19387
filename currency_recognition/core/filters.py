from typing import Collection, Iterable, List

from currency_recognition.core.errors import EmptyCandidateSetError
from currency_recognition.core.models import Detection

DEFAULT_CONFIDENCE_THRESHOLD = 0.25


def filter_detections(
    batch: Iterable[Detection],
    allowed: Collection[str],
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> List[Detection]:
    """Keep allow-listed detections at or above the threshold, in input order."""

    return [
        detection
        for detection in batch
        if detection.denomination in allowed and detection.confidence >= threshold
    ]


def select_best(detections: Iterable[Detection]) -> Detection:
    """Return the highest-confidence detection; the first one wins ties."""

    best = None
    for detection in detections:
        if best is None or detection.confidence > best.confidence:
            best = detection
    if best is None:
        raise EmptyCandidateSetError("Cannot select a best candidate from an empty detection list")
    return best
