"""Canonicalize raw inference predictions into Detection records."""
from __future__ import annotations

import math
import numbers
from collections.abc import Iterable, Mapping
from typing import Any, List, Optional, Sequence

from currency_recognition.core.models import BoundingBox, Detection

UNKNOWN_LABEL = "unknown"

LABEL_ALIASES = ("class", "label", "class_name", "name", "denomination")
CONFIDENCE_ALIASES = ("confidence", "score", "conf", "probability")
BOX_CONTAINERS = ("bbox", "box", "bounding_box")
X_ALIASES = ("x", "x_center", "cx")
Y_ALIASES = ("y", "y_center", "cy")
WIDTH_ALIASES = ("width", "w")
HEIGHT_ALIASES = ("height", "h")


def _lookup(source: object, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(key)
    try:
        return getattr(source, key, None)
    except Exception:
        return None


def _first(sources: Sequence[object], aliases: Sequence[str]) -> Any:
    for source in sources:
        for alias in aliases:
            value = _lookup(source, alias)
            if value is not None:
                return value
    return None


def _coerce_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _coerce_label(value: object) -> str:
    if value is None or isinstance(value, bool):
        return UNKNOWN_LABEL
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isfinite(number) and number.is_integer():
            return str(int(number))
        return str(number)
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or UNKNOWN_LABEL
    return UNKNOWN_LABEL


def normalize_prediction(raw: object) -> Detection:
    """Map one raw prediction of any shape onto a Detection.

    Aliases are tried in a fixed order; nested box containers win over flat
    keys on the record. Missing numbers default to 0 and a missing label to
    ``"unknown"``. Never raises.
    """

    box_sources: List[object] = [_lookup(raw, key) for key in BOX_CONTAINERS]
    box_sources = [source for source in box_sources if source is not None]
    box_sources.append(raw)

    confidence = _coerce_float(_first([raw], CONFIDENCE_ALIASES))
    if confidence < 0:
        confidence = 0.0

    return Detection(
        denomination=_coerce_label(_first([raw], LABEL_ALIASES)),
        confidence=confidence,
        bounding_box=BoundingBox(
            x=_coerce_float(_first(box_sources, X_ALIASES)),
            y=_coerce_float(_first(box_sources, Y_ALIASES)),
            width=_coerce_float(_first(box_sources, WIDTH_ALIASES)),
            height=_coerce_float(_first(box_sources, HEIGHT_ALIASES)),
        ),
    )


def normalize_batch(raws: Optional[Iterable[object]]) -> List[Detection]:
    if raws is None or isinstance(raws, (str, bytes, Mapping)):
        return []
    try:
        items = list(raws)
    except TypeError:
        return []
    return [normalize_prediction(item) for item in items]
