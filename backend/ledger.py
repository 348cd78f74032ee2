"""Inventory ledger: the only code that links loans to book availability.

``issue_loan`` and ``return_loan`` each run in a single transaction. The
availability change is one conditional UPDATE evaluated by the database, so
two callers racing for the last copy cannot both win, and a loan cannot be
closed twice.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

import config
import models
from database import atomic
from errors import (
    AlreadyReturned, BorrowLimitReached, LibraryError, MemberNotActive, NotFound, Unavailable, translate_errors
)

logger = logging.getLogger(__name__)


def _open_loan_count(db: Session, user_id: int) -> int:
    return db.query(models.Loan).filter(
        models.Loan.user_id == user_id,
        models.Loan.status != models.LoanStatus.RETURNED
    ).count()


def issue_loan(
    db: Session,
    book_id: int,
    user_id: int,
    issue_date: Optional[date] = None,
    due_date: Optional[date] = None,
) -> models.Loan:
    """Lend one copy of a book to a member.

    Raises NotFound, MemberNotActive, BorrowLimitReached or Unavailable; on any
    of them (or a storage failure) neither the loan row nor the decrement exists.
    """
    issue_date = issue_date or date.today()
    due_date = due_date or issue_date + timedelta(days=config.LOAN_PERIOD_DAYS)

    try:
        with atomic(db):
            # 1. Validate Book (row lock where the dialect has one)
            book = db.query(models.Book).filter(models.Book.id == book_id).with_for_update().first()
            if not book:
                raise NotFound("Book", book_id)

            # 2. Validate Member (row lock serializes the loan-limit check)
            member = db.query(models.Member).filter(models.Member.id == user_id).with_for_update().first()
            if not member:
                raise NotFound("Member", user_id)
            if not member.is_active:
                raise MemberNotActive(member.id, member.status.value)

            # 3. Check Loan Limits
            limit = member.max_books_allowed
            if _open_loan_count(db, member.id) >= limit:
                raise BorrowLimitReached(member.id, limit)

            # 4. Take a copy; zero rows updated means none were left
            taken = db.query(models.Book).filter(
                models.Book.id == book_id,
                models.Book.available_copies > 0
            ).update(
                {models.Book.available_copies: models.Book.available_copies - 1},
                synchronize_session=False
            )
            if not taken:
                raise Unavailable(book_id)

            # 5. Create Loan
            loan = models.Loan(
                book_id=book_id,
                user_id=member.id,
                issue_date=issue_date,
                due_date=due_date,
                return_date=None,
                status=models.LoanStatus.ACTIVE,
            )
            db.add(loan)
            db.flush()
    except LibraryError as e:
        logger.warning("Issue refused (book=%s, member=%s): %s", book_id, user_id, e)
        raise

    with translate_errors():
        db.refresh(loan)
    logger.info("Issued loan %s: book %s -> member %s, due %s", loan.id, book_id, user_id, due_date)
    return loan


def return_loan(db: Session, loan_id: int, today: Optional[date] = None) -> models.Loan:
    """Close a loan and put its copy back on the shelf.

    Raises NotFound or AlreadyReturned. A second return of the same loan never
    touches the book row.
    """
    today = today or date.today()

    try:
        with atomic(db):
            # 1. Find Loan
            loan = db.query(models.Loan).filter(models.Loan.id == loan_id).with_for_update().first()
            if not loan:
                raise NotFound("Loan", loan_id)
            if loan.status == models.LoanStatus.RETURNED:
                raise AlreadyReturned(loan_id)

            # 2. Close it, unless someone else already did
            closed = db.query(models.Loan).filter(
                models.Loan.id == loan_id,
                models.Loan.status != models.LoanStatus.RETURNED
            ).update(
                {models.Loan.status: models.LoanStatus.RETURNED, models.Loan.return_date: today},
                synchronize_session=False
            )
            if not closed:
                raise AlreadyReturned(loan_id)

            # 3. Put the copy back
            db.query(models.Book).filter(models.Book.id == loan.book_id).update(
                {models.Book.available_copies: models.Book.available_copies + 1},
                synchronize_session=False
            )
    except LibraryError as e:
        logger.warning("Return refused (loan=%s): %s", loan_id, e)
        raise

    with translate_errors():
        db.refresh(loan)
    logger.info("Returned loan %s (book %s)", loan_id, loan.book_id)
    return loan
