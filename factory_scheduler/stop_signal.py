# Timeout and abort signal for long-running optimization.
# Version: 1.0.0
# Checked by the search strategies at each permutation, generation, and solver callback.

import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class StopSignal:
    """Externally observed stop condition for one optimization run.

    The signal trips when the wall-clock limit passes or when the caller's
    ``should_stop`` callback returns True. Nothing is interrupted; the
    strategies poll ``is_set`` at their natural boundaries.

    Attributes:
        time_limit_seconds: Wall-clock limit for the run (None = unlimited).
        should_stop: Optional callback polled for an external abort.
        clock: Monotonic clock, injectable for tests.
        started_at: Clock reading when the signal was created.
    """
    time_limit_seconds: float | None = None
    should_stop: Callable[[], bool] | None = None
    clock: Callable[[], float] = time.monotonic
    started_at: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        self.started_at = self.clock()

    @property
    def elapsed_seconds(self) -> float:
        return self.clock() - self.started_at

    def remaining_seconds(self) -> float | None:
        """Seconds left before the time limit, or None when unlimited."""
        if self.time_limit_seconds is None:
            return None
        return max(0.0, self.time_limit_seconds - self.elapsed_seconds)

    def is_set(self) -> bool:
        """True once the time limit has passed or an abort was requested."""
        return self.reason() is not None

    def reason(self) -> str | None:
        """Why the run should stop ("aborted" or "timeout"), or None."""
        if self.should_stop is not None and self.should_stop():
            return "aborted"
        if self.time_limit_seconds is not None and self.elapsed_seconds >= self.time_limit_seconds:
            return "timeout"
        return None


def never_stop() -> StopSignal:
    """A signal that never trips."""
    return StopSignal()
