from collections import deque
from enum import Enum
from typing import Deque, Dict, List, Optional, Sequence

from currency_recognition.core.filters import select_best
from currency_recognition.core.models import ConfirmedResult, Detection

ABSENT = None
DEFAULT_ROUNDS = 3


class ConfirmerState(str, Enum):
    ACCUMULATING = "accumulating"
    READY = "ready"


class ConfirmationBuffer:
    """Fixed-capacity sliding window of round results, oldest first."""

    def __init__(self, capacity: int = DEFAULT_ROUNDS) -> None:
        if capacity < 1:
            raise ValueError("Confirmation buffer capacity must be at least 1")
        self.capacity = capacity
        self._entries: Deque[Optional[str]] = deque(maxlen=capacity)

    def push(self, entry: Optional[str]) -> None:
        self._entries.append(entry)

    def entries(self) -> List[Optional[str]]:
        return list(self._entries)

    def is_full(self) -> bool:
        return len(self._entries) == self.capacity

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TripleCheckConfirmer:
    """Confirm a denomination only once enough rounds agree."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.buffer = ConfirmationBuffer(rounds)

    @property
    def rounds(self) -> int:
        return self.buffer.capacity

    @property
    def state(self) -> ConfirmerState:
        return ConfirmerState.READY if self.buffer.is_full() else ConfirmerState.ACCUMULATING

    def record_round(self, denomination: Optional[str]) -> None:
        self.buffer.push(denomination)

    def record_detections(self, filtered: Sequence[Detection]) -> Optional[str]:
        """Record the best filtered candidate, or an absent round when there is none."""

        entry = select_best(filtered).denomination if filtered else ABSENT
        self.record_round(entry)
        return entry

    def check_unanimous(self) -> Optional[ConfirmedResult]:
        if self.state is not ConfirmerState.READY:
            return None
        entries = self.buffer.entries()
        first = entries[0]
        if first is ABSENT or any(entry != first for entry in entries):
            return None
        return ConfirmedResult(
            denomination=first,
            support_count=self.rounds,
            rounds=self.rounds,
            unanimous=True,
        )

    def resolve_majority(self) -> ConfirmedResult:
        """Evaluate a completed burst, falling back to the most frequent denomination."""

        if self.state is not ConfirmerState.READY:
            raise ValueError(
                f"Majority requires {self.rounds} rounds, only {len(self.buffer)} recorded"
            )
        unanimous = self.check_unanimous()
        if unanimous is not None:
            return unanimous

        # dicts keep insertion order, so max() resolves ties to the first-seen denomination
        tally: Dict[str, int] = {}
        for entry in self.buffer.entries():
            if entry is ABSENT:
                continue
            tally[entry] = tally.get(entry, 0) + 1
        if not tally:
            return ConfirmedResult.none(self.rounds)
        majority = max(tally, key=lambda denomination: tally[denomination])
        return ConfirmedResult(
            denomination=majority,
            support_count=tally[majority],
            rounds=self.rounds,
            unanimous=False,
        )

    def reset(self) -> None:
        self.buffer.clear()
