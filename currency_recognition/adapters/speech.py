"""Text-to-speech output for announcements."""
from __future__ import annotations

import logging
import threading
from typing import Optional

try:  # pragma: no cover - import guarded for environments without pyttsx3
    import pyttsx3
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "pyttsx3 is required for spoken announcements. Install dependencies via "
        "`pip install -e .` before running the app."
    ) from exc

LOGGER = logging.getLogger(__name__)


class Pyttsx3Speaker:
    """Offline speech through pyttsx3, one utterance at a time.

    Each utterance runs on its own worker thread with a fresh engine, so
    ``speak`` returns immediately and ``cancel`` can stop the current one.
    """

    def __init__(self, volume: float = 1.0, rate: Optional[int] = None) -> None:
        self.volume = min(max(volume, 0.0), 1.0)
        self.rate = rate
        self._lock = threading.Lock()
        self._engine = None
        self._worker: Optional[threading.Thread] = None

    def speak(self, text: str) -> None:
        worker = threading.Thread(target=self._run, args=(text,), name="speech", daemon=True)
        with self._lock:
            self._worker = worker
        worker.start()

    def cancel(self) -> None:
        with self._lock:
            engine = self._engine
            self._engine = None
        if engine is not None:
            try:
                engine.stop()
            except RuntimeError as exc:
                LOGGER.debug("Speech engine stop failed: %s", exc)

    def _run(self, text: str) -> None:
        try:
            engine = pyttsx3.init()
            engine.setProperty("volume", self.volume)
            if self.rate:
                engine.setProperty("rate", self.rate)
        except Exception:
            LOGGER.exception("Unable to initialise speech engine")
            return
        with self._lock:
            if self._worker is not threading.current_thread():
                # superseded before the engine came up
                return
            self._engine = engine
        try:
            engine.say(text)
            engine.runAndWait()
        except RuntimeError as exc:
            LOGGER.warning("Speech playback interrupted: %s", exc)
        finally:
            with self._lock:
                if self._engine is engine:
                    self._engine = None


class NullSpeaker:
    """Captions-only output used when speech is disabled."""

    def __init__(self) -> None:
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        LOGGER.info("Announcement (speech disabled): %s", text)
        self.spoken.append(text)

    def cancel(self) -> None:
        return None
