import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

# Import our local modules
import config
from database import engine, get_db, init_db
from errors import (
    AlreadyReturned,
    BorrowLimitReached,
    Busy,
    ConstraintViolation,
    LibraryError,
    MemberNotActive,
    NotFound,
    StorageUnavailable,
    Unavailable,
)
import ledger
import schemas
import stats
import store

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logger.info("System starting, preparing the store...")
    init_db(engine)
    yield
    # --- Shutdown ---
    logger.info("System shutting down.")
    engine.dispose()

app = FastAPI(title="Library Ledger", lifespan=lifespan)
# CORS (Allowed for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error Mapping ---

_STATUS_BY_ERROR = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AlreadyReturned, status.HTTP_409_CONFLICT),
    (Unavailable, status.HTTP_409_CONFLICT),
    (MemberNotActive, status.HTTP_409_CONFLICT),
    (BorrowLimitReached, status.HTTP_409_CONFLICT),
    (ConstraintViolation, status.HTTP_409_CONFLICT),
    (Busy, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    code = next((c for cls, c in _STATUS_BY_ERROR if isinstance(exc, cls)), status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})


# --- API Routes ---

@app.get("/api/health")
def health_check():
    return {"status": "ok", "message": "Library System is running"}

# --- Book Endpoints ---

@app.get("/api/books", response_model=list[schemas.BookResponse])
def get_books(search: str = "", db: Session = Depends(get_db)):
    """Whole catalogue by title, or the title/author/ISBN matches for ?search="""
    if search:
        return store.search_books(db, search)
    return store.list_books(db)

@app.get("/api/books/{book_id}", response_model=schemas.BookResponse)
def get_book_details(book_id: int, db: Session = Depends(get_db)):
    return store.get_book(db, book_id)

@app.post("/api/books", response_model=schemas.BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(book: schemas.BookCreate, db: Session = Depends(get_db)):
    return store.add_book(db, book)

@app.put("/api/books/{book_id}", response_model=schemas.BookResponse)
def update_book(book_id: int, book_data: schemas.BookUpdate, db: Session = Depends(get_db)):
    return store.update_book(db, book_id, book_data)

@app.delete("/api/books/{book_id}")
def delete_book(book_id: int, db: Session = Depends(get_db)):
    store.delete_book(db, book_id)
    return {"message": "Book removed from catalog"}

# --- Member Management Endpoints ---

@app.get("/api/members", response_model=list[schemas.MemberResponse])
def get_members(search: str = "", db: Session = Depends(get_db)):
    if search:
        return store.search_members(db, search)
    return store.list_members(db)

@app.get("/api/members/{member_id}", response_model=schemas.MemberResponse)
def get_member(member_id: int, db: Session = Depends(get_db)):
    return store.get_member(db, member_id)

@app.post("/api/members", response_model=schemas.MemberResponse, status_code=status.HTTP_201_CREATED)
def register_member(member: schemas.MemberCreate, db: Session = Depends(get_db)):
    return store.add_member(db, member)

@app.put("/api/members/{member_id}", response_model=schemas.MemberResponse)
def update_member(member_id: int, member_data: schemas.MemberUpdate, db: Session = Depends(get_db)):
    return store.update_member(db, member_id, member_data)

@app.patch("/api/members/{member_id}/status", response_model=schemas.MemberResponse)
def update_member_status(member_id: int, status_data: schemas.MemberStatusUpdate, db: Session = Depends(get_db)):
    """Suspend / deactivate / reactivate a member"""
    return store.set_member_status(db, member_id, status_data.status)

@app.delete("/api/members/{member_id}")
def delete_member(member_id: int, db: Session = Depends(get_db)):
    store.delete_member(db, member_id)
    return {"message": "Member record removed"}

@app.get("/api/members/{member_id}/loans", response_model=schemas.LoanHistoryResponse)
def get_member_loans(member_id: int, db: Session = Depends(get_db)):
    return store.list_member_loans(db, member_id)

# --- Circulation Endpoints (The Core Logic) ---

@app.get("/api/loans", response_model=list[schemas.LoanResponse])
def get_loans(active_only: bool = False, db: Session = Depends(get_db)):
    loans = store.list_active_loans(db) if active_only else store.list_loans(db)
    return [store.loan_record(loan) for loan in loans]

@app.get("/api/loans/{loan_id}", response_model=schemas.LoanResponse)
def get_loan(loan_id: int, db: Session = Depends(get_db)):
    return store.loan_record(store.get_loan(db, loan_id))

@app.post("/api/loans/issue", response_model=schemas.LoanResponse, status_code=status.HTTP_201_CREATED)
def issue_book(request: schemas.LoanIssueRequest, db: Session = Depends(get_db)):
    loan = ledger.issue_loan(db, request.book_id, request.user_id, request.issue_date, request.due_date)
    return store.loan_record(loan)

@app.post("/api/loans/{loan_id}/return", response_model=schemas.LoanResponse)
def return_book(loan_id: int, db: Session = Depends(get_db)):
    loan = ledger.return_loan(db, loan_id)
    return store.loan_record(loan)

# --- Reports ---

@app.get("/api/reports/stats", response_model=schemas.DashboardStats)
def get_dashboard_stats(db: Session = Depends(get_db)):
    return stats.dashboard(db)

@app.get("/api/reports/overdue", response_model=list[schemas.OverdueReportItem])
def get_overdue_report(fine_per_day: Optional[float] = None, db: Session = Depends(get_db)):
    if fine_per_day is None:
        fine_per_day = config.DAILY_FINE_AMOUNT
    return stats.overdue_report(db, fine_per_day=fine_per_day)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
