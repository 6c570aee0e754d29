# Overview: Retry helper for optimistic-concurrency writes.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


def run_with_retry(
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.05,
    retry_on: tuple[type[BaseException], ...] = (OperationalError, StaleDataError),
    on_retry=None,
):
    """
    Execute an operation with retry on concurrency-related failures.

    By default retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Callers pass retry_on to widen or narrow
    that set; on_retry(exc) runs before each new attempt (e.g. session rollback).
    """
    attempts = max(attempts, 1)
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            if attempt >= attempts - 1:
                raise
            logger.info("Retrying after concurrent update (attempt %d/%d): %s", attempt + 1, attempts, exc)
            if on_retry is not None:
                on_retry(exc)
            if backoff_base:
                time.sleep(backoff_base * (2 ** attempt))
