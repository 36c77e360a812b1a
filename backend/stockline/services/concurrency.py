# Overview: Retry helpers for database work that can collide with concurrent writers.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of database work, retrying when a concurrent writer got in the way.

    Retries on OperationalError (SQLite "database is locked", deadlocks)
    and StaleDataError. func must be safe to run again from scratch: the
    session is rolled back before each retry, so nothing from the failed
    attempt survives. The last error is re-raised once attempts run out.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning("Database contention (attempt %d/%d), retrying in %.2fs: %s",
                           attempt, attempts, delay, exc)
            time.sleep(delay)
