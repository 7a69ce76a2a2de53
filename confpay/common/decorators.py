"""Operation decorators for session coordination.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

from confpay.client.domain.entities import OperationKind, OperationOutcome
from confpay.common.exceptions import (
    InvalidInput,
    OperationNotReady,
    PayrollError,
    StaleOperation,
)

logger = logging.getLogger(__name__)


def single_flight(kind: OperationKind) -> Callable:
    """Decorator that runs at most one invocation of ``kind`` at a time.

    The decorated coroutine method belongs to an object exposing ``flags``,
    ``set_message`` and ``report_error``. A second call while the first is
    suspended returns ``OperationOutcome.SKIPPED`` without touching any state.
    Every failure is converted into a status message and an outcome; the flag
    is always cleared.

    Args:
        kind: The operation kind whose flag guards the method

    Returns:
        Decorated coroutine function returning an OperationOutcome
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> OperationOutcome:
            if not self.flags.try_acquire(kind):
                logger.debug("%s already in progress, ignoring request", kind.value)
                return OperationOutcome.SKIPPED
            try:
                return await func(self, *args, **kwargs)
            except StaleOperation as e:
                logger.info("Discarded %s: %s", kind.value, e)
                self.set_message(e.message)
                return OperationOutcome.DISCARDED
            except OperationNotReady as e:
                self.set_message(e.message)
                return OperationOutcome.SKIPPED
            except InvalidInput as e:
                self.set_message(e.message)
                return OperationOutcome.REJECTED
            except PayrollError as e:
                logger.error("%s failed: %s", kind.value, e)
                self.set_message(f"{kind.value} failed: {e}")
                self.report_error(e)
                return OperationOutcome.FAILED
            except Exception as e:
                logger.exception("Unexpected error in %s", kind.value)
                self.set_message(f"{kind.value} failed: {e}")
                self.report_error(e)
                return OperationOutcome.FAILED
            finally:
                self.flags.release(kind)

        return wrapper

    return decorator
