from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Center-origin box in source-image pixel space."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def corners(self) -> Tuple[float, float, float, float]:
        half_w = self.width / 2.0
        half_h = self.height / 2.0
        return (self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h)


class Detection(BaseModel):
    denomination: str
    confidence: float = Field(default=0.0, ge=0.0)
    bounding_box: BoundingBox = Field(default_factory=BoundingBox)


class ConfirmedResult(BaseModel):
    denomination: Optional[str] = None
    support_count: int = 0
    rounds: int
    unanimous: bool = False

    @classmethod
    def none(cls, rounds: int) -> "ConfirmedResult":
        return cls(denomination=None, support_count=0, rounds=rounds, unanimous=False)

    @property
    def is_none(self) -> bool:
        return self.denomination is None

    @property
    def label(self) -> Optional[str]:
        if self.denomination is None:
            return None
        if self.unanimous:
            return self.denomination
        return f"{self.denomination} ({self.support_count}/{self.rounds})"


class ConfirmationRecord(BaseModel):
    session_id: int
    mode: str
    confirmed_at: datetime
    result: ConfirmedResult
    announced: bool = False
