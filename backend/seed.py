import logging
from datetime import date

from database import Base, atomic, engine, SessionLocal
import models

logger = logging.getLogger(__name__)

BOOKS_DATA = [
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "isbn": "9780743273565",
     "publisher": "Scribner", "publication_year": 1925, "category": "Fiction", "total_copies": 3, "available_copies": 3},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "isbn": "9780061120084",
     "publisher": "Harper Perennial", "publication_year": 1960, "category": "Fiction", "total_copies": 2, "available_copies": 2},
    {"title": "1984", "author": "George Orwell", "isbn": "9780451524935",
     "publisher": "Signet Classic", "publication_year": 1949, "category": "Science Fiction", "total_copies": 4, "available_copies": 4},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "isbn": "9780141439518",
     "publisher": "Penguin Classics", "publication_year": 1813, "category": "Fiction", "total_copies": 2, "available_copies": 2},
    # One copy is out on the sample loan below
    {"title": "The Catcher in the Rye", "author": "J.D. Salinger", "isbn": "9780316769488",
     "publisher": "Little, Brown", "publication_year": 1951, "category": "Fiction", "total_copies": 3, "available_copies": 2},
    {"title": "A Brief History of Time", "author": "Stephen Hawking", "isbn": "9780553380163",
     "publisher": "Bantam", "publication_year": 1988, "category": "Science", "total_copies": 2, "available_copies": 2},
    {"title": "Sapiens", "author": "Yuval Noah Harari", "isbn": "9780062316097",
     "publisher": "Harper", "publication_year": 2015, "category": "History", "total_copies": 3, "available_copies": 3},
]

MEMBERS_DATA = [
    {"name": "John Smith", "email": "john.smith@email.com", "phone": "555-0101",
     "membership_type": models.MembershipType.PREMIUM, "registration_date": date(2024, 1, 15)},
    {"name": "Emma Johnson", "email": "emma.j@email.com", "phone": "555-0102",
     "membership_type": models.MembershipType.BASIC, "registration_date": date(2024, 2, 20)},
    {"name": "Michael Brown", "email": "michael.b@email.com", "phone": "555-0103",
     "membership_type": models.MembershipType.STUDENT, "registration_date": date(2024, 3, 10)},
    {"name": "Sarah Davis", "email": "sarah.d@email.com", "phone": "555-0104",
     "membership_type": models.MembershipType.BASIC, "registration_date": date(2024, 4, 5)},
]


def reset_db(bind=None):
    bind = bind or engine
    logger.warning("Resetting database...")
    Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
    logger.info("Database reset complete.")


def seed_db(db) -> bool:
    """Insert the sample catalogue, members and one open loan.

    Runs only while the books table is empty, so calling it again is a no-op.
    Returns True when rows were written. Errors propagate after rollback.
    """
    if db.query(models.Book).count() > 0:
        logger.info("Catalogue already populated, skipping seed.")
        return False

    logger.info("Seeding sample data...")
    with atomic(db):
        # =====================================================
        # 1. BOOKS
        # =====================================================
        books = {b["title"]: models.Book(**b) for b in BOOKS_DATA}
        db.add_all(books.values())

        # =====================================================
        # 2. MEMBERS
        # =====================================================
        members = {m["name"]: models.Member(**m) for m in MEMBERS_DATA}
        db.add_all(members.values())
        db.flush()

        # =====================================================
        # 3. ACTIVE LOAN (long overdue by now)
        # =====================================================
        db.add(models.Loan(
            book_id=books["The Catcher in the Rye"].id,
            user_id=members["John Smith"].id,
            issue_date=date(2024, 10, 1),
            due_date=date(2024, 10, 15),
            status=models.LoanStatus.ACTIVE,
        ))

    logger.info("Seeded %d books, %d members and 1 loan.", len(BOOKS_DATA), len(MEMBERS_DATA))
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    reset_db()
    session = SessionLocal()
    try:
        seed_db(session)
    finally:
        session.close()
