from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class SearchSnapshot:
    """Minimal immutable snapshot of search progress."""

    state_version: int
    complete: bool
    length: int
    max_length: int
    workers: int
    candidates_total: int
    candidates_tried: int
    elapsed_ms: int
    found: Optional[str] = None

    @property
    def completion_percent(self) -> float:
        if not self.candidates_total:
            return 0.0
        return min(100.0, self.candidates_tried / self.candidates_total * 100)

    @property
    def rate(self) -> float:
        """Candidates per second in the current round."""
        if self.elapsed_ms <= 0:
            return 0.0
        return self.candidates_tried / (self.elapsed_ms / 1000)
