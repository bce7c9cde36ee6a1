"""tenacity retry policies used by vksconnect.

Two policies exist. Network probes back off exponentially. Privileged vcf
calls retry immediately, with the operator re-authenticating in between.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _logging_hook(
    event: str,
    max_attempts: int,
    then: Callable[[BaseException | None, int], None] | None = None,
) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            event,
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            exception=type(error).__name__ if error else None,
            message=str(error) if error else None,
        )
        if then is not None:
            then(error, retry_state.attempt_number)

    return before_sleep


def retry_on_exception(
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Callable[[F], F]:
    """Decorator retrying transient failures with exponential backoff.

    Args:
        exceptions: Exception types worth retrying
        max_attempts: Total number of attempts
        min_wait: Minimum wait between attempts (seconds)
        max_wait: Maximum wait between attempts (seconds)

    Returns:
        Decorator; the last exception is re-raised when attempts run out
    """
    return retry(
        retry=retry_if_exception_type(exceptions),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=_logging_hook("retry_attempt", max_attempts),
        reraise=True,
    )


def reauthenticating_retry(
    exception: type[Exception],
    on_retry: Callable[[BaseException | None, int], None],
    max_attempts: int = 2,
) -> Retrying:
    """Build a retry controller that re-authenticates between attempts.

    No backoff is applied: the pause between attempts is the operator
    re-entering credentials inside ``on_retry``. The last exception is
    re-raised once ``max_attempts`` calls have failed.

    Args:
        exception: Exception type that triggers re-authentication
        on_retry: Called with (exception, attempt_number) before each retry
        max_attempts: Total number of attempts, including the first one

    Returns:
        Configured tenacity Retrying instance
    """
    return Retrying(
        retry=retry_if_exception_type(exception),
        stop=stop_after_attempt(max_attempts),
        wait=wait_none(),
        before_sleep=_logging_hook("reauthentication_required", max_attempts, then=on_retry),
        reraise=True,
    )
