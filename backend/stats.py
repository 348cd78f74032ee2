from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

import config
import lifecycle
import models
import schemas
from errors import translate_errors


def total_books(db: Session) -> int:
    with translate_errors():
        return db.query(models.Book).count()


def available_books(db: Session) -> int:
    """Sum of available copies over the whole catalogue (0 when it is empty)."""
    with translate_errors():
        return db.query(func.coalesce(func.sum(models.Book.available_copies), 0)).scalar()


def total_members(db: Session) -> int:
    with translate_errors():
        return db.query(models.Member).count()


def active_loans(db: Session) -> int:
    with translate_errors():
        return db.query(models.Loan).filter(models.Loan.status == models.LoanStatus.ACTIVE).count()


def overdue_loans(db: Session, today: Optional[date] = None) -> int:
    today = today or date.today()
    with translate_errors():
        return db.query(models.Loan).filter(
            models.Loan.status != models.LoanStatus.RETURNED,
            models.Loan.due_date < today
        ).count()


def dashboard(db: Session, today: Optional[date] = None) -> schemas.DashboardStats:
    return schemas.DashboardStats(
        total_books=total_books(db),
        available_books=available_books(db),
        total_members=total_members(db),
        active_loans=active_loans(db),
        overdue_loans=overdue_loans(db, today),
    )


def overdue_report(
    db: Session,
    today: Optional[date] = None,
    fine_per_day: float = config.DAILY_FINE_AMOUNT,
) -> List[schemas.OverdueReportItem]:
    """Unreturned loans past their due date, most overdue first."""
    today = today or date.today()
    with translate_errors():
        loans = db.query(models.Loan).options(
            joinedload(models.Loan.book),
            joinedload(models.Loan.member)
        ).filter(
            models.Loan.status != models.LoanStatus.RETURNED,
            models.Loan.due_date < today
        ).order_by(models.Loan.due_date, models.Loan.id).all()

    report = []
    for loan in loans:
        report.append(schemas.OverdueReportItem(
            loan_id=loan.id,
            book_title=loan.book.title,
            member_name=loan.member.name,
            member_email=loan.member.email,
            due_date=loan.due_date,
            days_overdue=lifecycle.days_overdue(loan, today),
            fine=lifecycle.fine(loan, fine_per_day, today),
        ))
    return report
