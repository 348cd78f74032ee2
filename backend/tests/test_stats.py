from datetime import date

import ledger
import stats


def test_empty_store(db):
    assert stats.total_books(db) == 0
    assert stats.available_books(db) == 0
    assert stats.total_members(db) == 0
    assert stats.active_loans(db) == 0


def test_seeded_counts(seeded_db):
    assert stats.total_books(seeded_db) == 7
    assert stats.available_books(seeded_db) == 18
    assert stats.total_members(seeded_db) == 4
    assert stats.active_loans(seeded_db) == 1


def test_counts_follow_issue_and_return(db, make_book, make_member):
    book = make_book(copies=2)
    member = make_member()

    loan = ledger.issue_loan(db, book.id, member.id)
    assert stats.available_books(db) == 1
    assert stats.active_loans(db) == 1

    ledger.return_loan(db, loan.id)
    assert stats.available_books(db) == 2
    assert stats.active_loans(db) == 0


def test_dashboard(seeded_db):
    dash = stats.dashboard(seeded_db, today=date(2024, 10, 20))
    assert dash.total_books == 7
    assert dash.available_books == 18
    assert dash.total_members == 4
    assert dash.active_loans == 1
    assert dash.overdue_loans == 1

    assert stats.dashboard(seeded_db, today=date(2024, 10, 15)).overdue_loans == 0


def test_overdue_report(seeded_db, make_book, make_member):
    book = make_book(title="Beloved")
    member = make_member(name="Toni Reader")
    ledger.issue_loan(seeded_db, book.id, member.id, date(2024, 10, 10), date(2024, 10, 18))

    report = stats.overdue_report(seeded_db, today=date(2024, 10, 20), fine_per_day=0.5)

    assert [r.book_title for r in report] == ["The Catcher in the Rye", "Beloved"]
    assert report[0].member_name == "John Smith"
    assert report[0].days_overdue == 5
    assert report[0].fine == 2.5
    assert report[1].days_overdue == 2
    assert report[1].fine == 1.0
