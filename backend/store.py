"""Record store: CRUD and search over books, members and loans.

Every function takes the session it works on; nothing here keeps rows between
calls. Writes go through ``database.atomic`` so a failure leaves the store as it
was and surfaces as a typed error from ``errors``.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

import config
import lifecycle
import models
import schemas
from database import atomic
from errors import ConstraintViolation, NotFound, translate_errors

logger = logging.getLogger(__name__)

_BOOK_FIELDS = ("title", "author", "isbn", "publisher", "publication_year", "category")


def _contains(query: str) -> str:
    """ILIKE pattern matching ``query`` literally anywhere in the column."""
    escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# --- Books ---

def list_books(db: Session) -> List[models.Book]:
    with translate_errors():
        return db.query(models.Book).order_by(models.Book.title).all()


def get_book(db: Session, book_id: int) -> models.Book:
    with translate_errors():
        book = db.query(models.Book).filter(models.Book.id == book_id).first()
    if not book:
        raise NotFound("Book", book_id)
    return book


def search_books(db: Session, query: str) -> List[models.Book]:
    """Case-insensitive substring match on title, author or ISBN."""
    pattern = _contains(query)
    with translate_errors():
        return db.query(models.Book).filter(
            (models.Book.title.ilike(pattern, escape="\\")) |
            (models.Book.author.ilike(pattern, escape="\\")) |
            (models.Book.isbn.ilike(pattern, escape="\\"))
        ).order_by(models.Book.title).all()


def add_book(db: Session, book: schemas.BookCreate) -> models.Book:
    db_book = models.Book(**book.model_dump())
    with atomic(db):
        db.add(db_book)
    with translate_errors():
        db.refresh(db_book)
    logger.info("Added book %s (%r)", db_book.id, db_book.title)
    return db_book


def _active_loan_count(db: Session, book_id: int) -> int:
    return db.query(models.Loan).filter(
        models.Loan.book_id == book_id,
        models.Loan.status != models.LoanStatus.RETURNED
    ).count()


def update_book(db: Session, book_id: int, changes: schemas.BookUpdate) -> models.Book:
    """Edit bibliographic fields; a new total_copies re-derives availability."""
    data = changes.model_dump(exclude_unset=True)
    with atomic(db):
        book = db.query(models.Book).filter(models.Book.id == book_id).with_for_update().first()
        if not book:
            raise NotFound("Book", book_id)

        for key in _BOOK_FIELDS:
            if key in data:
                setattr(book, key, data[key])

        if data.get("total_copies") is not None:
            on_loan = _active_loan_count(db, book_id)
            if data["total_copies"] < on_loan:
                raise ConstraintViolation(
                    f"Book {book_id} has {on_loan} copies on loan; total_copies cannot be {data['total_copies']}"
                )
            book.total_copies = data["total_copies"]
            book.available_copies = data["total_copies"] - on_loan
    with translate_errors():
        db.refresh(book)
    return book


def delete_book(db: Session, book_id: int) -> None:
    with atomic(db):
        book = db.query(models.Book).filter(models.Book.id == book_id).first()
        if not book:
            raise NotFound("Book", book_id)

        on_loan = _active_loan_count(db, book_id)
        if on_loan > 0:
            raise ConstraintViolation(f"Cannot delete book {book_id}: {on_loan} copies are still on loan")

        db.delete(book)
        # Loan history still references the row; the foreign key turns that into a ConstraintViolation
        db.flush()
    logger.info("Deleted book %s", book_id)


# --- Members ---

def list_members(db: Session) -> List[models.Member]:
    with translate_errors():
        return db.query(models.Member).order_by(models.Member.name).all()


def get_member(db: Session, member_id: int) -> models.Member:
    with translate_errors():
        member = db.query(models.Member).filter(models.Member.id == member_id).first()
    if not member:
        raise NotFound("Member", member_id)
    return member


def search_members(db: Session, query: str) -> List[models.Member]:
    pattern = _contains(query)
    with translate_errors():
        return db.query(models.Member).filter(
            (models.Member.name.ilike(pattern, escape="\\")) |
            (models.Member.email.ilike(pattern, escape="\\")) |
            (models.Member.phone.ilike(pattern, escape="\\"))
        ).order_by(models.Member.name).all()


def add_member(db: Session, member: schemas.MemberCreate) -> models.Member:
    data = member.model_dump()
    if data["registration_date"] is None:
        data["registration_date"] = date.today()
    db_member = models.Member(**data)
    with atomic(db):
        db.add(db_member)
    with translate_errors():
        db.refresh(db_member)
    logger.info("Registered member %s (%s)", db_member.id, db_member.email)
    return db_member


def update_member(db: Session, member_id: int, changes: schemas.MemberUpdate) -> models.Member:
    with atomic(db):
        member = db.query(models.Member).filter(models.Member.id == member_id).first()
        if not member:
            raise NotFound("Member", member_id)
        for key, value in changes.model_dump(exclude_unset=True).items():
            setattr(member, key, value)
    with translate_errors():
        db.refresh(member)
    return member


def set_member_status(db: Session, member_id: int, status: models.MemberStatus) -> models.Member:
    with atomic(db):
        member = db.query(models.Member).filter(models.Member.id == member_id).first()
        if not member:
            raise NotFound("Member", member_id)
        member.status = status
    with translate_errors():
        db.refresh(member)
    logger.info("Member %s is now %s", member_id, member.status.value)
    return member


def delete_member(db: Session, member_id: int) -> None:
    with atomic(db):
        member = db.query(models.Member).filter(models.Member.id == member_id).first()
        if not member:
            raise NotFound("Member", member_id)

        open_loans = db.query(models.Loan).filter(
            models.Loan.user_id == member_id,
            models.Loan.status != models.LoanStatus.RETURNED
        ).count()
        if open_loans > 0:
            raise ConstraintViolation(f"Cannot delete member {member_id}: {open_loans} books still out")

        db.delete(member)
        db.flush()
    logger.info("Deleted member %s", member_id)


# --- Loans ---

def _loan_query(db: Session):
    return db.query(models.Loan).options(
        joinedload(models.Loan.book),
        joinedload(models.Loan.member)
    )


def list_loans(db: Session) -> List[models.Loan]:
    """All loans, most recently issued first."""
    with translate_errors():
        return _loan_query(db).order_by(models.Loan.issue_date.desc(), models.Loan.id.desc()).all()


def get_loan(db: Session, loan_id: int) -> models.Loan:
    with translate_errors():
        loan = _loan_query(db).filter(models.Loan.id == loan_id).first()
    if not loan:
        raise NotFound("Loan", loan_id)
    return loan


def list_active_loans(db: Session) -> List[models.Loan]:
    with translate_errors():
        return _loan_query(db).filter(
            models.Loan.status != models.LoanStatus.RETURNED
        ).order_by(models.Loan.due_date).all()


def list_member_loans(db: Session, member_id: int) -> schemas.LoanHistoryResponse:
    member = get_member(db, member_id)
    with translate_errors():
        loans = _loan_query(db).filter(
            models.Loan.user_id == member.id
        ).order_by(models.Loan.issue_date.desc(), models.Loan.id.desc()).all()
    return schemas.LoanHistoryResponse(
        active_loans=[loan_record(l) for l in loans if l.status != models.LoanStatus.RETURNED],
        past_loans=[loan_record(l) for l in loans if l.status == models.LoanStatus.RETURNED],
    )


def loan_record(
    loan: models.Loan,
    today: Optional[date] = None,
    fine_per_day: float = config.DAILY_FINE_AMOUNT,
) -> schemas.LoanResponse:
    """Flatten a loan row with its book title, member name and derived dates."""
    today = today or date.today()
    return schemas.LoanResponse(
        id=loan.id,
        book_id=loan.book_id,
        user_id=loan.user_id,
        book_title=loan.book.title if loan.book else None,
        member_name=loan.member.name if loan.member else None,
        issue_date=loan.issue_date,
        due_date=loan.due_date,
        return_date=loan.return_date,
        status=loan.status,
        display_status=lifecycle.display_status(loan, today),
        is_overdue=lifecycle.is_overdue(loan, today),
        days_overdue=lifecycle.days_overdue(loan, today),
        fine=lifecycle.fine(loan, fine_per_day, today),
        loan_duration=lifecycle.loan_duration(loan, today),
    )
