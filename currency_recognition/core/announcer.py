"""Deduplicate spoken announcements of confirmed denominations."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 5.0
DEFAULT_PHRASE_TEMPLATE = "{denomination} {currency}"


class Speaker(Protocol):
    def speak(self, text: str) -> None:
        ...

    def cancel(self) -> None:
        ...


@dataclass
class AnnouncementState:
    active: Optional[str] = None
    deadline: float = 0.0
    last_phrase: Optional[str] = None

    def reset(self) -> None:
        self.active = None
        self.deadline = 0.0


class AnnouncementDeduplicator:
    """Speak a denomination unless it is still the active announcement."""

    def __init__(
        self,
        speaker: Speaker,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        currency_name: str = "",
        phrase_template: str = DEFAULT_PHRASE_TEMPLATE,
    ) -> None:
        self.speaker = speaker
        self.cooldown_seconds = max(cooldown_seconds, 0.0)
        self.clock = clock
        self.currency_name = currency_name
        self.phrase_template = phrase_template
        self.state = AnnouncementState()
        self.announcements = 0

    @property
    def active(self) -> Optional[str]:
        self._expire(self.clock())
        return self.state.active

    def phrase_for(self, denomination: str) -> str:
        return self.phrase_template.format(denomination=denomination, currency=self.currency_name).strip()

    def announce(self, denomination: str) -> bool:
        now = self.clock()
        self._expire(now)
        if self.state.active == denomination:
            logger.debug("Skipping repeat announcement of %s", denomination)
            return False

        phrase = self.phrase_for(denomination)
        self.speaker.cancel()
        self.speaker.speak(phrase)
        self.state.active = denomination
        self.state.deadline = now + self.cooldown_seconds
        self.state.last_phrase = phrase
        self.announcements += 1
        logger.info("Announced %s", phrase)
        return True

    def replay(self) -> bool:
        if not self.state.last_phrase:
            return False
        self.speaker.cancel()
        self.speaker.speak(self.state.last_phrase)
        return True

    def clear(self) -> None:
        self.state.reset()

    def _expire(self, now: float) -> None:
        if self.state.active is not None and now >= self.state.deadline:
            self.state.reset()
