# gesture/backoff.py
from dataclasses import dataclass

from config import SAMPLE_BASE_INTERVAL_MS, BACKOFF_STEP_MS, BACKOFF_MAX_MS


@dataclass
class BackoffState:
    """Admission gate for classifier calls: base interval plus additive backoff."""
    last_sample_ms: int = 0
    backoff_ms: int = 0
    base_interval_ms: int = SAMPLE_BASE_INTERVAL_MS
    step_ms: int = BACKOFF_STEP_MS
    max_ms: int = BACKOFF_MAX_MS

    @property
    def interval_ms(self) -> int:
        return self.base_interval_ms + self.backoff_ms

    def due(self, now_ms: int) -> bool:
        return now_ms - self.last_sample_ms >= self.interval_ms

    def mark(self, now_ms: int) -> None:
        self.last_sample_ms = now_ms

    def success(self) -> None:
        self.backoff_ms = 0

    def failure(self) -> int:
        self.backoff_ms = min(self.backoff_ms + self.step_ms, self.max_ms)
        return self.backoff_ms

    def reset(self) -> None:
        self.backoff_ms = 0
