"""Date arithmetic over loans: overdue status, days overdue, fines, duration.

Nothing here touches the database. Every function takes the loan and the
reference day explicitly so the results are reproducible.
"""

from datetime import date
from typing import Optional

import config
from models import Loan, LoanStatus


def _today(today: Optional[date]) -> date:
    return today or date.today()


def is_overdue(loan: Loan, today: Optional[date] = None) -> bool:
    if loan.status == LoanStatus.RETURNED:
        return False
    return _today(today) > loan.due_date


def days_overdue(loan: Loan, today: Optional[date] = None) -> int:
    today = _today(today)
    if not is_overdue(loan, today):
        return 0
    return (today - loan.due_date).days


def fine(loan: Loan, fine_per_day: float = config.DAILY_FINE_AMOUNT, today: Optional[date] = None) -> float:
    # Always recomputed; the stored loans.fine column is never consulted
    return days_overdue(loan, today) * fine_per_day


def loan_duration(loan: Loan, today: Optional[date] = None) -> int:
    end = loan.return_date if loan.return_date is not None else _today(today)
    return (end - loan.issue_date).days


def display_status(loan: Loan, today: Optional[date] = None) -> LoanStatus:
    """Status as shown to people: an unreturned loan past its due date reads as Overdue."""
    if is_overdue(loan, today):
        return LoanStatus.OVERDUE
    return loan.status
