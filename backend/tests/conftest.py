from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, get_db, make_engine
import models
import seed
import store
import schemas


@pytest.fixture
def engine(tmp_path, request):
    # Every test gets its own database file
    db_file = tmp_path / f"test_{request.node.name}.db"
    engine = make_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_db(db):
    seed.seed_db(db)
    return db


@pytest.fixture
def make_book(db):
    def _make(title="Dune", author="Frank Herbert", isbn=None, copies=3):
        return store.add_book(db, schemas.BookCreate(title=title, author=author, isbn=isbn, total_copies=copies))
    return _make


@pytest.fixture
def make_member(db):
    counter = {"n": 0}

    def _make(name="Ada Reader", membership_type=models.MembershipType.BASIC, email=None):
        counter["n"] += 1
        return store.add_member(db, schemas.MemberCreate(
            name=name,
            email=email or f"reader{counter['n']}@example.com",
            membership_type=membership_type,
            registration_date=date(2025, 1, 1),
        ))
    return _make


@pytest.fixture
def client(session_factory):
    import main

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager, so the lifespan (and the default database) stays untouched
    test_client = TestClient(main.app)
    try:
        yield test_client
    finally:
        main.app.dependency_overrides.clear()
