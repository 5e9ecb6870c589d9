import os

# Must be set before splitledger.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TX_BACKOFF_SECONDS", "0")

import pytest
from datetime import date
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from splitledger.main import app
from splitledger.db.base import Base
from splitledger.db.session import get_db
from splitledger.core.security import create_access_token, get_password_hash
from splitledger.models import Expense, ExpenseParticipant, Group, GroupMember, SplitMethod, User


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def client(session_factory):
    """FastAPI test client bound to the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, name: str) -> User:
    user = User(
        name=name,
        email=f"{name.lower()}@example.com",
        hashed_password=get_password_hash("testpassword123"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def users(db):
    """Alice, Bob and Carol, in id order."""
    return [make_user(db, name) for name in ("Alice", "Bob", "Carol")]


@pytest.fixture
def group(db, users):
    group = Group(name="Flat", created_by=users[0].id)
    db.add(group)
    db.flush()
    for user in users:
        db.add(GroupMember(group_id=group.id, user_id=user.id))
    db.commit()
    db.refresh(group)
    return group


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


def add_expense(db, paid_by, shares, total=None, group_id=None, settled=()):
    """Insert an exact-split expense directly, bypassing the service layer."""
    total = total if total is not None else sum((Decimal(v) for v in shares.values()), Decimal(0))
    expense = Expense(
        title="Seeded expense",
        total_amount=Decimal(total),
        paid_by=paid_by,
        split_method=SplitMethod.EXACT,
        expense_date=date(2024, 1, 15),
        created_by=paid_by,
        group_id=group_id,
    )
    expense.participants = [
        ExpenseParticipant(user_id=user_id, amount_owed=Decimal(amount), is_settled=user_id in settled)
        for user_id, amount in shares.items()
    ]
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense
