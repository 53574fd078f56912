import logging
import random
from typing import Optional

logger = logging.getLogger(__name__)

# Each backlog item shaves this much off max_delay, up to BACKLOG_STEPS items
BACKLOG_STEP_MS = 1000
BACKLOG_STEPS = 7

# Jitter is drawn from 8 buckets of 1s: -4s .. +3s
JITTER_BUCKETS = 8
JITTER_OFFSET = 4
JITTER_STEP_MS = 1000


def next_delay(
    backlog: int, min_delay: int, max_delay: int, rng: Optional[random.Random] = None
) -> int:
    """
    Compute the delay in milliseconds before the next send cycle.

    A larger backlog pulls the delay down towards min_delay, and a random
    jitter keeps several dispatchers sharing one destination from firing in
    lockstep. The result is never below min_delay.
    """
    rng = rng or random
    base = max_delay - min(backlog, BACKLOG_STEPS) * BACKLOG_STEP_MS
    jitter = (rng.randint(0, JITTER_BUCKETS - 1) - JITTER_OFFSET) * JITTER_STEP_MS
    delay = max(min_delay, base + jitter)

    logger.debug(
        f"Next delay: backlog={backlog}, base={base}ms, jitter={jitter}ms -> {delay}ms"
    )
    return delay
