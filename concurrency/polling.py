"""
Chain Tutor - Bounded Polling
Fixed-attempt, fixed-delay polling for asynchronous remote jobs
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from core.logger import log_warning

T = TypeVar('T')


@dataclass
class PollOutcome(Generic[T]):
    """
    Result of a bounded poll.

    Attributes:
        value: Last value returned by the check function (None if never called)
        done: True if the check reported completion
        timed_out: True if every attempt was used without completion
        attempts: Number of check calls made
    """
    value: Optional[T]
    done: bool
    timed_out: bool
    attempts: int


def poll_until(
    check: Callable[[], T],
    is_done: Callable[[T], bool],
    max_attempts: int = 50,
    delay: float = 1.0,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "job"
) -> PollOutcome[T]:
    """
    Call `check` until `is_done` accepts its value or attempts run out.

    Sleeps `delay` seconds before every attempt. Exceptions raised by
    `check` propagate to the caller; running out of attempts does not
    raise, it returns an outcome with timed_out=True.

    Args:
        check: Fetches the current state of the job
        is_done: Predicate deciding whether polling can stop
        max_attempts: Upper bound on calls to `check`
        delay: Fixed delay between attempts in seconds
        sleep: Sleep function (injectable for tests)
        label: Name used in log output

    Returns:
        PollOutcome describing how polling ended
    """
    value: Optional[T] = None

    for attempt in range(max_attempts):
        sleep(delay)
        value = check()
        if is_done(value):
            return PollOutcome(value=value, done=True, timed_out=False, attempts=attempt + 1)

    log_warning(f"Polling {label} gave up after {max_attempts} attempts ({delay:.1f}s apart)")
    return PollOutcome(value=value, done=False, timed_out=True, attempts=max_attempts)
