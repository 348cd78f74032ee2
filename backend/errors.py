"""Typed errors surfaced by the store, the ledger and the statistics queries.

Callers (the HTTP layer, scripts, tests) only ever see these; raw SQLAlchemy
exceptions are translated at the transaction boundary by ``translate_errors``.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Base class for every error the library core raises."""


class NotFound(LibraryError):
    def __init__(self, kind: str, ident):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")


class ConstraintViolation(LibraryError):
    """Uniqueness, foreign key or CHECK constraint rejected the write."""


class Unavailable(LibraryError):
    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"No copies of book {book_id} are available")


class AlreadyReturned(LibraryError):
    def __init__(self, loan_id: int):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} has already been returned")


class MemberNotActive(LibraryError):
    def __init__(self, member_id: int, status: str):
        self.member_id = member_id
        self.status = status
        super().__init__(f"Member {member_id} is {status} and cannot borrow")


class BorrowLimitReached(LibraryError):
    def __init__(self, member_id: int, limit: int):
        self.member_id = member_id
        self.limit = limit
        super().__init__(f"Member {member_id} has reached the borrowing limit ({limit})")


class StorageUnavailable(LibraryError):
    """The database could not be reached or failed mid-operation."""


class Busy(StorageUnavailable):
    """A lock or transaction timeout expired before the operation could run."""


_BUSY_MARKERS = ("locked", "lock timeout", "lock_timeout", "timeout", "deadlock")


@contextmanager
def translate_errors():
    """Re-raise SQLAlchemy failures as LibraryError subclasses."""
    try:
        yield
    except IntegrityError as e:
        raise ConstraintViolation(str(e.orig)) from e
    except OperationalError as e:
        message = str(e.orig).lower()
        if any(marker in message for marker in _BUSY_MARKERS):
            logger.warning("Store busy: %s", e.orig)
            raise Busy(str(e.orig)) from e
        logger.error("Store unavailable: %s", e.orig)
        raise StorageUnavailable(str(e.orig)) from e
    except DBAPIError as e:
        logger.error("Store error: %s", e.orig)
        raise StorageUnavailable(str(e.orig)) from e
