from __future__ import annotations

from typing import List

from currency_recognition.core.announcer import AnnouncementDeduplicator


class RecordingSpeaker:
    def __init__(self) -> None:
        self.events: List[str] = []

    def speak(self, text: str) -> None:
        self.events.append(f"speak:{text}")

    def cancel(self) -> None:
        self.events.append("cancel")

    @property
    def spoken(self) -> List[str]:
        return [event.split(":", 1)[1] for event in self.events if event.startswith("speak:")]


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def build(speaker: RecordingSpeaker, clock: FakeClock) -> AnnouncementDeduplicator:
    return AnnouncementDeduplicator(speaker, cooldown_seconds=5.0, clock=clock, currency_name="rupees")


def test_repeat_within_cooldown_is_announced_once() -> None:
    speaker, clock = RecordingSpeaker(), FakeClock()
    announcer = build(speaker, clock)

    assert announcer.announce("100") is True
    clock.now += 2.0
    assert announcer.announce("100") is False

    assert speaker.spoken == ["100 rupees"]
    assert announcer.active == "100"


def test_different_denomination_supersedes_previous() -> None:
    speaker, clock = RecordingSpeaker(), FakeClock()
    announcer = build(speaker, clock)

    announcer.announce("100")
    clock.now += 1.0
    announcer.announce("50")

    assert speaker.spoken == ["100 rupees", "50 rupees"]
    # the in-flight "100" announcement is cancelled before "50" starts
    assert speaker.events == ["cancel", "speak:100 rupees", "cancel", "speak:50 rupees"]
    assert announcer.active == "50"


def test_cooldown_expiry_allows_reannouncement() -> None:
    speaker, clock = RecordingSpeaker(), FakeClock()
    announcer = build(speaker, clock)

    announcer.announce("200")
    clock.now += 5.0
    assert announcer.active is None
    assert announcer.announce("200") is True
    assert speaker.spoken == ["200 rupees", "200 rupees"]


def test_clear_resets_active_marker() -> None:
    speaker, clock = RecordingSpeaker(), FakeClock()
    announcer = build(speaker, clock)

    announcer.announce("500")
    announcer.clear()
    assert announcer.active is None
    assert announcer.announce("500") is True
    assert announcer.announcements == 2


def test_replay_repeats_last_phrase_without_touching_cooldown() -> None:
    speaker, clock = RecordingSpeaker(), FakeClock()
    announcer = build(speaker, clock)

    assert announcer.replay() is False
    announcer.announce("20")
    assert announcer.replay() is True

    assert speaker.spoken == ["20 rupees", "20 rupees"]
    assert announcer.announce("20") is False
