from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date

from models import LoanStatus, MemberStatus, MembershipType

# --- Book Schemas ---

class BookBase(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    category: Optional[str] = None

class BookCreate(BookBase):
    total_copies: int = Field(default=1, ge=0)
    available_copies: Optional[int] = Field(default=None, ge=0)  # Defaults to total_copies

    @model_validator(mode="after")
    def check_copies(self):
        if self.available_copies is None:
            self.available_copies = self.total_copies
        if self.available_copies > self.total_copies:
            raise ValueError("available_copies cannot exceed total_copies")
        return self

class BookUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    category: Optional[str] = None
    total_copies: Optional[int] = Field(default=None, ge=0)

class BookResponse(BookBase):
    id: int
    total_copies: int
    available_copies: int
    is_available: bool
    borrowed_copies: int

    class Config:
        from_attributes = True

# --- Member Schemas ---

class MemberCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: Optional[str] = None
    address: Optional[str] = None
    membership_type: MembershipType = MembershipType.BASIC
    registration_date: Optional[date] = None  # Defaults to today

class MemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    phone: Optional[str] = None
    address: Optional[str] = None
    membership_type: Optional[MembershipType] = None

class MemberStatusUpdate(BaseModel):
    status: MemberStatus

class MemberResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    membership_type: MembershipType
    registration_date: date
    status: MemberStatus
    max_books_allowed: int

    class Config:
        from_attributes = True

# --- Circulation Schemas ---

class LoanIssueRequest(BaseModel):
    book_id: int
    user_id: int
    issue_date: Optional[date] = None  # Defaults to today
    due_date: Optional[date] = None    # Defaults to issue_date + LOAN_PERIOD_DAYS

class LoanResponse(BaseModel):
    id: int
    book_id: int
    user_id: int
    book_title: Optional[str] = None
    member_name: Optional[str] = None
    issue_date: date
    due_date: date
    return_date: Optional[date] = None
    status: LoanStatus

    # Derived on demand, never read back from the store
    display_status: LoanStatus
    is_overdue: bool = False
    days_overdue: int = 0
    fine: float = 0.0
    loan_duration: int = 0

    class Config:
        from_attributes = True

class LoanHistoryResponse(BaseModel):
    active_loans: List[LoanResponse]
    past_loans: List[LoanResponse]

# --- Reports ---

class OverdueReportItem(BaseModel):
    loan_id: int
    book_title: str
    member_name: str
    member_email: str
    due_date: date
    days_overdue: int
    fine: float

class DashboardStats(BaseModel):
    total_books: int
    available_books: int
    total_members: int
    active_loans: int
    overdue_loans: int
