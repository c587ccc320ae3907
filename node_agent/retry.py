# node_agent/retry.py
"""
Retry with bounded, jittered exponential backoff

Control-plane calls are retried until they succeed or the agent is
cancelled. The delay function is injected so tests can replace the
real wait with an instant one.
"""

import random
import logging
import threading
from typing import Callable, Optional, TypeVar

logger = logging.getLogger('relay-agent.retry')

T = TypeVar("T")

DEFAULT_RETRY_BASE = 1.0      # seconds
DEFAULT_RETRY_MAX = 120.0     # seconds


class AgentCancelled(Exception):
    """Cancellation was observed while waiting to retry"""


def sleep_delay(cancel: threading.Event, seconds: float) -> None:
    """Wait `seconds`, returning early with AgentCancelled if `cancel` is set"""
    if cancel.wait(seconds):
        raise AgentCancelled()


DelayFunc = Callable[[threading.Event, float], None]


def jittered(backoff: float, rng: Optional[random.Random] = None) -> float:
    """Uniformly random wait between half of `backoff` and `backoff`"""
    rng = rng or random
    if backoff <= 0:
        return 0.001
    return rng.uniform(backoff / 2, backoff)


def with_retry(
    fn: Callable[[], T],
    cancel: threading.Event,
    label: str = "call",
    base: float = DEFAULT_RETRY_BASE,
    maximum: float = DEFAULT_RETRY_MAX,
    delay: DelayFunc = sleep_delay,
) -> T:
    """
    Call `fn` until it returns without raising

    The first wait is `base`; each failure doubles it up to `maximum`.
    Below the ceiling the wait is jittered, at the ceiling it is `maximum`.

    Raises:
        AgentCancelled: `cancel` was set before or during a wait
    """
    backoff = base if base > 0 else DEFAULT_RETRY_BASE
    attempt = 0

    while True:
        attempt += 1
        try:
            return fn()
        except AgentCancelled:
            raise
        except Exception as e:
            if cancel.is_set():
                raise AgentCancelled() from e
            wait = jittered(backoff) if backoff < maximum else maximum
            logger.warning(f"{label} attempt {attempt} failed: {e}; retrying in {wait:.1f}s")

        delay(cancel, wait)

        backoff = min(backoff * 2, maximum)
