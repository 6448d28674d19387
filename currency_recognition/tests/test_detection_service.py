from __future__ import annotations

import asyncio
from typing import Any, List

import numpy as np

from currency_recognition.adapters.speech import NullSpeaker
from currency_recognition.core.errors import InferenceError
from currency_recognition.services.detection_service import DetectionService
from currency_recognition.services.session import DetectionMode

ALLOWED = ["20", "50", "100", "200", "500"]
FRAME = np.zeros((8, 8, 3), dtype=np.uint8)


def bill(denomination: str, confidence: float = 0.9) -> dict:
    return {"class": denomination, "confidence": confidence, "x": 4, "y": 4, "width": 4, "height": 2}


class ScriptedGateway:
    """Replay one scripted response (or exception) per inference call."""

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls = 0

    async def infer(self, image: np.ndarray) -> List[Any]:
        self.calls += 1
        response = self.responses.pop(0) if self.responses else []
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def build_service(responses: List[Any], clock: FakeClock | None = None) -> DetectionService:
    return DetectionService(
        ScriptedGateway(responses),
        NullSpeaker(),
        ALLOWED,
        confidence_threshold=0.25,
        rounds=3,
        cooldown_seconds=5.0,
        currency_name="rupees",
        clock=clock or FakeClock(),
    )


def test_burst_majority_fallback() -> None:
    service = build_service([[bill("100")], [bill("100"), bill("50", 0.4)], [bill("50")]])

    result = asyncio.run(service.run_burst(FRAME))

    assert result is not None
    assert result.denomination == "100"
    assert result.support_count == 2
    assert result.unanimous is False
    assert result.label == "100 (2/3)"
    assert service.speaker.spoken == ["100 rupees"]
    assert service.history()[-1].mode == "upload"


def test_burst_all_absent_returns_none() -> None:
    service = build_service([[], [bill("unknown")], [bill("100", 0.1)]])

    result = asyncio.run(service.run_burst(FRAME, DetectionMode.CAPTURE))

    assert result is not None
    assert result.is_none
    assert service.speaker.spoken == []
    assert service.history()[-1].result.is_none


def test_inference_failure_counts_as_absent_round() -> None:
    service = build_service([[bill("200")], InferenceError("timeout"), RuntimeError("boom")])

    result = asyncio.run(service.run_burst(FRAME))

    assert result is not None
    assert result.denomination == "200"
    assert result.support_count == 1
    assert service.current_session.confirmer.buffer.entries() == ["200", None, None]
    assert service.current_session.rounds_run == 3


def test_live_rounds_confirm_only_on_unanimity() -> None:
    service = build_service([[bill("100")], [bill("100")], [bill("50")], [bill("100")], [bill("100")], [bill("100")]])
    session = service.start_session(DetectionMode.LIVE)

    async def drive() -> list:
        return [await service.run_live_round(session, FRAME) for _ in range(6)]

    results = asyncio.run(drive())

    assert results[:5] == [None, None, None, None, None]
    assert results[5] is not None and results[5].denomination == "100"
    assert session.result is not None and session.result.unanimous
    assert service.speaker.spoken == ["100 rupees"]


def test_live_repeat_confirmations_are_deduplicated() -> None:
    clock = FakeClock()
    service = build_service([[bill("500")]] * 5, clock=clock)
    session = service.start_session(DetectionMode.LIVE)

    async def drive() -> None:
        for _ in range(5):
            await service.run_live_round(session, FRAME)
            clock.now += 1.0

    asyncio.run(drive())

    assert service.speaker.spoken == ["500 rupees"]
    assert len(service.history()) == 1


def test_superseded_session_discards_in_flight_result() -> None:
    service = build_service([])
    stale = service.start_session(DetectionMode.LIVE)

    class SwitchingGateway:
        async def infer(self, image: np.ndarray) -> List[Any]:
            service.start_session(DetectionMode.UPLOAD)
            return [bill("100")]

    service.gateway = SwitchingGateway()

    applied = asyncio.run(service.run_round(stale, FRAME))

    assert applied is False
    assert len(stale.confirmer.buffer) == 0
    assert len(service.current_session.confirmer.buffer) == 0
    assert service.current_session.mode is DetectionMode.UPLOAD


def test_clear_resets_buffer_and_announcement() -> None:
    service = build_service([[bill("100")]] * 5)
    session = service.start_session(DetectionMode.LIVE)

    async def drive(target) -> None:
        for _ in range(3):
            await service.run_live_round(target, FRAME)

    asyncio.run(drive(session))
    assert session.announcer.active == "100"

    fresh = service.clear()

    assert session.superseded
    assert fresh.mode is DetectionMode.LIVE
    assert len(fresh.confirmer.buffer) == 0
    assert fresh.announcer.active is None

    async def two_rounds() -> list:
        return [await service.run_live_round(fresh, FRAME) for _ in range(2)]

    assert asyncio.run(two_rounds()) == [None, None]
    assert service.speaker.spoken == ["100 rupees"]


def test_replay_survives_session_switch() -> None:
    service = build_service([[bill("20")]] * 3)
    asyncio.run(service.run_burst(FRAME))

    service.start_session(DetectionMode.LIVE)

    assert service.replay() is True
    assert service.speaker.spoken == ["20 rupees", "20 rupees"]


def test_snapshot_reports_session_state() -> None:
    service = build_service([[bill("50")]])
    session = service.start_session(DetectionMode.LIVE)
    asyncio.run(service.run_live_round(session, FRAME))

    snapshot = service.snapshot()

    assert snapshot["mode"] == "live"
    assert snapshot["state"] == "accumulating"
    assert snapshot["buffer"] == ["50"]
    assert snapshot["result"] is None
    assert snapshot["detections"][0]["denomination"] == "50"
