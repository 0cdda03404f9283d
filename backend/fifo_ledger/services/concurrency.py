# Overview: Service-layer operations for concurrency; transaction boundaries and retry policy.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentModificationError, PersistenceFailureError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column still catches conflicting writes on SQLite.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute one unit of work, retrying it on concurrency-related failures.

    func must be re-runnable from scratch: it re-reads every row it changes
    and commits at its end. Whatever happens, a failed attempt leaves nothing
    behind because the session is rolled back before retrying or raising.

    - StaleDataError (optimistic locking conflict) -> retry, then
      ConcurrentModificationError
    - OperationalError (database locked or unreachable) -> retry, then
      PersistenceFailureError
    - anything else -> rollback and re-raise unchanged
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LEDGER_RETRY_BACKOFF", 0.1)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.warning("Concurrent modification persisted after %s attempts", attempts)
                raise ConcurrentModificationError() from exc
            logger.info("Concurrent modification detected, retrying (attempt %s/%s)", attempt + 1, attempts)
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                logger.error("Database operation failed after %s attempts: %s", attempts, exc)
                raise PersistenceFailureError() from exc
            logger.warning("Database operation failed, retrying (attempt %s/%s)", attempt + 1, attempts)
        except Exception:
            db.session.rollback()
            raise
        if backoff_base:
            time.sleep(backoff_base * (2 ** attempt))
