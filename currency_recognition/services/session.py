from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from currency_recognition.core.announcer import AnnouncementDeduplicator
from currency_recognition.core.confirmer import TripleCheckConfirmer
from currency_recognition.core.models import ConfirmedResult, Detection


class DetectionMode(str, Enum):
    LIVE = "live"
    CAPTURE = "capture"
    UPLOAD = "upload"


@dataclass
class Session:
    """One continuous stream of rounds under a single mode.

    A session is never reused: mode switches, uploads and manual clears
    supersede it with a new one, and results that arrive for a superseded
    session are dropped.
    """

    session_id: int
    mode: DetectionMode
    confirmer: TripleCheckConfirmer
    announcer: AnnouncementDeduplicator
    started_at: datetime
    superseded: bool = False
    rounds_run: int = 0
    result: Optional[ConfirmedResult] = None
    detections: List[Detection] = field(default_factory=list)
    last_error: Optional[str] = None

    def supersede(self) -> None:
        self.superseded = True
