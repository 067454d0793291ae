"""Fixed-interval polling shared by the readiness and health checks."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Aggregate outcome of a polling loop."""

    ok: bool
    attempts: int

    def __bool__(self) -> bool:
        return self.ok


def poll_until(
    check: Callable[[], bool],
    max_attempts: int,
    interval: float,
    on_attempt: Optional[Callable[[int, bool], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Call ``check`` until it returns truthy or ``max_attempts`` is reached.

    A check that raises counts as a failed attempt. ``on_attempt(n, ok)`` is
    called after every attempt (1-based). No sleep follows the final attempt.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            ok = bool(check())
        except Exception as e:
            logger.debug("Attempt %d failed: %s", attempt, e)
            ok = False

        if on_attempt:
            on_attempt(attempt, ok)

        if ok:
            return PollResult(ok=True, attempts=attempt)

        if attempt < max_attempts:
            sleep(interval)

    return PollResult(ok=False, attempts=max_attempts)
