"""
Retry policy - exponential backoff with a ceiling.

Attempts are numbered from 0 (the initial request). ``max_attempts`` bounds
the number of retries, so a request that keeps failing is sent
``max_attempts + 1`` times in total.
"""

from dataclasses import dataclass, replace

from storefront.services.errors import ClassifiedError, ErrorKind

NON_RETRYABLE_KINDS = frozenset({ErrorKind.NOT_FOUND, ErrorKind.INVALID_RESPONSE})


@dataclass(frozen=True)
class AttemptContext:
    """Progress of one logical request through its retry sequence."""

    attempt_number: int = 0
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float | None = 5.0  # None disables the ceiling

    @property
    def exhausted(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def next(self) -> "AttemptContext":
        return replace(self, attempt_number=self.attempt_number + 1)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of consulting the retry policy."""

    retry: bool
    delay: float = 0.0

    @classmethod
    def give_up(cls) -> "RetryDecision":
        return cls(retry=False)

    @classmethod
    def retry_after(cls, delay: float) -> "RetryDecision":
        return cls(retry=True, delay=delay)


def backoff_delay(
    attempt_number: int, base_delay: float = 1.0, max_delay: float | None = 5.0
) -> float:
    """``min(base_delay * 2**attempt_number, max_delay)``"""
    delay = base_delay * (2**attempt_number)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def decide(error: ClassifiedError, context: AttemptContext) -> RetryDecision:
    """Decide whether a failed attempt should be retried, and after how long."""
    if error.kind in NON_RETRYABLE_KINDS:
        return RetryDecision.give_up()

    if context.exhausted:
        return RetryDecision.give_up()

    return RetryDecision.retry_after(
        backoff_delay(context.attempt_number, context.base_delay, context.max_delay)
    )
