# Overview: Service-layer helpers for row locking and all-or-nothing units of work.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


CONCURRENCY_ERRORS = (OperationalError, StaleDataError)


class ConcurrentUpdateError(ConflictError):
    """A row changed underneath us, or its lock could not be taken."""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id
    columns carry the compare-and-swap on their own.
    """
    return query.with_for_update()


def _conflict(exc) -> ConcurrentUpdateError:
    current_app.logger.warning("Concurrent update rejected: %s", exc)
    return ConcurrentUpdateError("Record was modified concurrently; reload and try again")


def run_in_transaction(func):
    """
    Run a multi-step mutation as a single unit of work.

    func performs its reads (locked), writes and flushes. It runs exactly
    once. If anything raises, every pending change in the session is rolled
    back before the error propagates, so a failure halfway through a loop
    leaves nothing behind. Version and lock failures surface as
    ConcurrentUpdateError (409). Committing is left to the caller.
    """
    try:
        return func()
    except CONCURRENCY_ERRORS as exc:
        db.session.rollback()
        raise _conflict(exc) from exc
    except Exception:
        db.session.rollback()
        raise


def commit_or_conflict():
    """
    Commit the current session once.

    A failed commit is rolled back and reported; it is never re-issued,
    since the rollback has already discarded the pending changes.
    """
    try:
        db.session.commit()
    except CONCURRENCY_ERRORS as exc:
        db.session.rollback()
        raise _conflict(exc) from exc
    except Exception:
        db.session.rollback()
        raise
