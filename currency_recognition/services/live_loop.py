"""Throttled, cancellable live detection loop."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from currency_recognition.adapters.sources import ImageSource
from currency_recognition.core.errors import SourceUnavailableError
from currency_recognition.services.detection_service import DetectionService
from currency_recognition.services.session import DetectionMode, Session

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 0.3


class LiveDetectionLoop:
    """Drive one live round at a time, then wait before scheduling the next.

    The loop follows the service's current session, so a manual clear keeps
    it running on a fresh buffer, while switching to another mode ends it.
    """

    def __init__(
        self,
        service: DetectionService,
        source: ImageSource,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.service = service
        self.source = source
        self.interval_seconds = max(interval_seconds, 0.0)
        self._task: Optional[asyncio.Task] = None
        self._stopped = True

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            return self._task
        self._stopped = False
        self.service.start_session(DetectionMode.LIVE)
        self._task = asyncio.create_task(self._run(), name="live-detection")
        return self._task

    async def stop(self) -> None:
        self._stopped = True
        session = self.service.current_session
        if session.mode is DetectionMode.LIVE:
            session.supersede()
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    def _active_session(self) -> Optional[Session]:
        if self._stopped:
            return None
        session = self.service.current_session
        if session.mode is not DetectionMode.LIVE:
            return None
        return session

    async def _run(self) -> None:
        while True:
            session = self._active_session()
            if session is None:
                logger.info("Live detection loop ended")
                return
            try:
                frame = await asyncio.to_thread(self.source.read)
            except SourceUnavailableError as exc:
                self.service.record_error(session, str(exc))
                self._stopped = True
                return
            result = await self.service.run_live_round(session, frame)
            if result is not None:
                logger.debug("Live session %d holds %s", session.session_id, result.label)
            if self._active_session() is None:
                logger.info("Live detection loop ended")
                return
            await asyncio.sleep(self.interval_seconds)
