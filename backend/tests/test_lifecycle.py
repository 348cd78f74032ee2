from datetime import date

import lifecycle
from models import Loan, LoanStatus


def _loan(status=LoanStatus.ACTIVE, return_date=None):
    return Loan(
        issue_date=date(2026, 1, 1),
        due_date=date(2026, 1, 15),
        return_date=return_date,
        status=status,
    )


def test_not_overdue_on_or_before_due_date():
    loan = _loan()
    assert not lifecycle.is_overdue(loan, date(2026, 1, 10))
    assert not lifecycle.is_overdue(loan, date(2026, 1, 15))
    assert lifecycle.days_overdue(loan, date(2026, 1, 15)) == 0
    assert lifecycle.fine(loan, 0.5, date(2026, 1, 15)) == 0


def test_overdue_after_due_date():
    loan = _loan()
    today = date(2026, 1, 25)

    assert lifecycle.is_overdue(loan, today)
    assert lifecycle.days_overdue(loan, today) == 10
    assert lifecycle.fine(loan, 0.5, today) == 5.0
    assert lifecycle.display_status(loan, today) == LoanStatus.OVERDUE


def test_returned_loan_is_never_overdue():
    loan = _loan(status=LoanStatus.RETURNED, return_date=date(2026, 3, 1))
    today = date(2027, 1, 1)

    assert not lifecycle.is_overdue(loan, today)
    assert lifecycle.days_overdue(loan, today) == 0
    assert lifecycle.fine(loan, 2.0, today) == 0
    assert lifecycle.display_status(loan, today) == LoanStatus.RETURNED


def test_persisted_overdue_status_still_counts():
    loan = _loan(status=LoanStatus.OVERDUE)
    assert lifecycle.is_overdue(loan, date(2026, 1, 16))


def test_fine_is_not_read_from_the_stored_column():
    loan = _loan()
    loan.fine = 99.0
    assert lifecycle.fine(loan, 1.0, date(2026, 1, 17)) == 2.0


def test_loan_duration():
    open_loan = _loan()
    assert lifecycle.loan_duration(open_loan, date(2026, 1, 11)) == 10

    closed = _loan(status=LoanStatus.RETURNED, return_date=date(2026, 1, 4))
    assert lifecycle.loan_duration(closed, date(2026, 6, 1)) == 3
