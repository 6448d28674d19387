import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

import numpy as np

from currency_recognition.adapters.inference_gateway import InferenceGateway
from currency_recognition.core.announcer import AnnouncementDeduplicator, Speaker
from currency_recognition.core.confirmer import DEFAULT_ROUNDS, TripleCheckConfirmer
from currency_recognition.core.errors import InferenceError
from currency_recognition.core.filters import DEFAULT_CONFIDENCE_THRESHOLD, filter_detections
from currency_recognition.core.models import ConfirmationRecord, ConfirmedResult
from currency_recognition.core.normalizer import normalize_batch
from currency_recognition.services.session import DetectionMode, Session


logger = logging.getLogger(__name__)


class DetectionService:
    """Coordinate inference, filtering, confirmation and announcements per session."""

    def __init__(
        self,
        gateway: InferenceGateway,
        speaker: Speaker,
        allowed_denominations: Iterable[str],
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        rounds: int = DEFAULT_ROUNDS,
        cooldown_seconds: float = 5.0,
        currency_name: str = "",
        history_limit: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.speaker = speaker
        self.allowed_denominations = list(dict.fromkeys(allowed_denominations))
        self.confidence_threshold = confidence_threshold
        self.rounds = rounds
        self.cooldown_seconds = cooldown_seconds
        self.currency_name = currency_name
        self.history_limit = max(history_limit, 1)
        self.clock = clock
        self._session_counter = 0
        self._history: List[ConfirmationRecord] = []
        self.current_session = self._new_session(DetectionMode.LIVE)

    def _new_session(self, mode: DetectionMode) -> Session:
        self._session_counter += 1
        return Session(
            session_id=self._session_counter,
            mode=mode,
            confirmer=TripleCheckConfirmer(self.rounds),
            announcer=AnnouncementDeduplicator(
                self.speaker,
                cooldown_seconds=self.cooldown_seconds,
                clock=self.clock,
                currency_name=self.currency_name,
            ),
            started_at=datetime.now(timezone.utc),
        )

    def start_session(self, mode: DetectionMode) -> Session:
        previous = self.current_session
        previous.supersede()
        session = self._new_session(mode)
        session.announcer.state.last_phrase = previous.announcer.state.last_phrase
        self.current_session = session
        logger.info("Started %s session %d", mode.value, session.session_id)
        return session

    def clear(self) -> Session:
        """Drop the current result and buffer, keeping the current mode."""

        return self.start_session(self.current_session.mode)

    async def run_round(self, session: Session, image: np.ndarray) -> bool:
        """Run one inference round and record it on the session.

        Returns False when the session was superseded and the result dropped.
        """

        if session.superseded:
            return False
        raw_predictions = None
        try:
            raw_predictions = await self.gateway.infer(image)
        except InferenceError as exc:
            logger.warning("Inference failed for session %d, recording absent round: %s", session.session_id, exc)
        except Exception:
            logger.exception("Inference gateway raised unexpectedly for session %d", session.session_id)
        if session.superseded:
            logger.debug("Discarding round result for superseded session %d", session.session_id)
            return False

        detections = normalize_batch(raw_predictions)
        filtered = filter_detections(detections, self.allowed_denominations, self.confidence_threshold)
        entry = session.confirmer.record_detections(filtered)
        session.detections = filtered
        session.rounds_run += 1
        logger.debug(
            "Session %d round %d | candidates=%d | entry=%s | buffer=%s",
            session.session_id,
            session.rounds_run,
            len(filtered),
            entry,
            session.confirmer.buffer.entries(),
        )
        return True

    async def run_live_round(self, session: Session, image: np.ndarray) -> Optional[ConfirmedResult]:
        if not await self.run_round(session, image):
            return None
        result = session.confirmer.check_unanimous()
        if result is not None:
            self._apply_result(session, result)
        return result

    async def run_burst(
        self, image: np.ndarray, mode: DetectionMode = DetectionMode.UPLOAD
    ) -> Optional[ConfirmedResult]:
        """Run a fresh session of exactly ``rounds`` rounds on one image.

        Returns None when a newer session superseded the burst midway.
        """

        session = self.start_session(mode)
        for _ in range(self.rounds):
            if not await self.run_round(session, image):
                return None
        result = session.confirmer.resolve_majority()
        self._apply_result(session, result)
        return result

    def _apply_result(self, session: Session, result: ConfirmedResult) -> None:
        session.result = result
        announced = False
        if result.denomination is not None:
            announced = session.announcer.announce(result.denomination)
        if announced or session.mode is not DetectionMode.LIVE:
            logger.info(
                "Session %d confirmed %s", session.session_id, result.label or "no bill"
            )
            self._history.append(
                ConfirmationRecord(
                    session_id=session.session_id,
                    mode=session.mode.value,
                    confirmed_at=datetime.now(timezone.utc),
                    result=result,
                    announced=announced,
                )
            )
            del self._history[: -self.history_limit]

    def record_error(self, session: Session, message: str) -> None:
        session.last_error = message
        logger.error("Session %d halted: %s", session.session_id, message)

    def replay(self) -> bool:
        return self.current_session.announcer.replay()

    def history(self, limit: Optional[int] = None) -> List[ConfirmationRecord]:
        items = list(self._history)
        if limit is not None:
            return items[-limit:]
        return items

    def snapshot(self) -> dict:
        session = self.current_session
        result = session.result
        return {
            "session_id": session.session_id,
            "mode": session.mode.value,
            "state": session.confirmer.state.value,
            "buffer": session.confirmer.buffer.entries(),
            "rounds": self.rounds,
            "rounds_run": session.rounds_run,
            "result": result.model_dump() if result is not None else None,
            "label": result.label if result is not None else None,
            "detections": [detection.model_dump() for detection in session.detections],
            "active_announcement": session.announcer.active,
            "last_error": session.last_error,
            "started_at": session.started_at,
            "confidence_threshold": self.confidence_threshold,
            "allowed_denominations": list(self.allowed_denominations),
        }
