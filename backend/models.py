import enum
from datetime import date

from sqlalchemy import CheckConstraint, Column, Date, Enum, Float, ForeignKey, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


def _enum_column(enum_cls, default):
    # Persist the human readable value ('Active'), not the member name ('ACTIVE')
    return Column(
        Enum(enum_cls, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        default=default,
        nullable=False,
    )


# --- Closed vocabularies ---

class MembershipType(str, enum.Enum):
    BASIC = "Basic"
    PREMIUM = "Premium"
    STUDENT = "Student"

    @property
    def max_books(self) -> int:
        return {"Basic": 3, "Student": 5, "Premium": 10}[self.value]


class MemberStatus(str, enum.Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    INACTIVE = "Inactive"


class LoanStatus(str, enum.Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"
    # Only ever derived for display; the ledger never writes it
    OVERDUE = "Overdue"


class ReservationStatus(str, enum.Enum):
    ACTIVE = "Active"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


# --- Books & Inventory ---

class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_copies >= 0", name="ck_books_total_nonneg"),
        CheckConstraint("available_copies >= 0", name="ck_books_available_nonneg"),
        CheckConstraint("available_copies <= total_copies", name="ck_books_available_le_total"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), index=True, nullable=False)
    author = Column(String(255), index=True, nullable=False)
    isbn = Column(String(20), unique=True, index=True, nullable=True)
    publisher = Column(String(255), nullable=True)
    publication_year = Column(Integer, nullable=True)
    category = Column(String(100), nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    loans = relationship("Loan", back_populates="book", passive_deletes="all")
    reservations = relationship("Reservation", back_populates="book", passive_deletes="all")

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0

    @property
    def borrowed_copies(self) -> int:
        return self.total_copies - self.available_copies


# --- Members ---

class Member(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    membership_type = _enum_column(MembershipType, MembershipType.BASIC)
    registration_date = Column(Date, default=date.today)
    status = _enum_column(MemberStatus, MemberStatus.ACTIVE)

    # Relationships
    loans = relationship("Loan", back_populates="member", passive_deletes="all")
    reservations = relationship("Reservation", back_populates="member", passive_deletes="all")

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    @property
    def max_books_allowed(self) -> int:
        return self.membership_type.max_books

    def membership_days(self, today=None) -> int:
        today = today or date.today()
        return (today - self.registration_date).days


# --- Circulation (Transactions) ---

class Loan(Base):
    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint("due_date >= issue_date", name="ck_loans_due_after_issue"),
    )

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    issue_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    status = _enum_column(LoanStatus, LoanStatus.ACTIVE)
    # Kept for schema compatibility; fines are computed on demand (see lifecycle.fine)
    fine = Column(Float, nullable=False, default=0.0)

    # Relationships
    book = relationship("Book", back_populates="loans")
    member = relationship("Member", back_populates="loans")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)  # Reserving the Title
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reservation_date = Column(Date, nullable=False, default=date.today)

    status = _enum_column(ReservationStatus, ReservationStatus.ACTIVE)

    # Relationships
    book = relationship("Book", back_populates="reservations")
    member = relationship("Member", back_populates="reservations")
