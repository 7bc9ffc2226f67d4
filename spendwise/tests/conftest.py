"""
Pytest fixtures for testing
"""

from datetime import date, timedelta
from itertools import count

import pytest
from sqlalchemy.orm import sessionmaker

from spendwise.config import Settings
from spendwise.ingest.database import get_engine
from spendwise.ingest.schema import Base, User, Account, Transaction, Liability
from spendwise.ingest.store import SqlAlchemyStore
from spendwise.recommend.catalog import seed_catalog

REFERENCE_DATE = date(2024, 6, 30)


@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def settings():
    """Settings with stubbed collaborators."""
    return Settings(USE_LLM_STUB=True, LLM_API_KEY="", MAX_EDUCATION=5, MAX_OFFERS=3)


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests."""
    engine = get_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine for tests that open several sessions."""
    engine = get_engine(f"sqlite:///{tmp_path / 'spendwise.db'}", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Create database session for tests"""
    session = sessionmaker(bind=db_engine)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def store(db_session):
    seed_catalog(db_session)
    return SqlAlchemyStore(db_session)


def _populate_user(session, user_id: str, consent: bool = True, reference_date: date = REFERENCE_DATE):
    """
    Add a user with checking, savings and one credit card at 68% utilization.

    Activity: bi-weekly payroll, monthly rent, three monthly streaming
    subscriptions, card interest, minimum card payments and savings transfers.
    """
    ids = count(1)

    def txn(account_id, amount, merchant, days_ago, primary=None, detailed=None):
        return Transaction(
            transaction_id=f"{user_id}_t{next(ids)}",
            account_id=account_id,
            date=reference_date - timedelta(days=days_ago),
            amount=amount,
            merchant_name=merchant,
            category_primary=primary,
            category_detailed=detailed,
        )

    chk, sav, cc = f"{user_id}_chk", f"{user_id}_sav", f"{user_id}_cc4523"
    session.add(User(user_id=user_id, name=f"User {user_id}", email=f"{user_id}@example.com", consent_status=consent))
    session.add_all([
        Account(account_id=chk, user_id=user_id, type="checking", subtype="checking", balance_current=4000.0),
        Account(account_id=sav, user_id=user_id, type="savings", subtype="savings", balance_current=6000.0),
        Account(
            account_id=cc, user_id=user_id, name="Visa ending in 4523", type="credit_card",
            subtype="credit card", balance_current=3400.0, credit_limit=5000.0,
        ),
    ])
    session.flush()
    session.add(Liability(
        liability_id=f"{user_id}_lib", account_id=cc, minimum_payment_amount=100.0, is_overdue=False,
    ))

    txns = []
    for i in range(13):
        txns.append(txn(chk, 2500.0, "ACME Corp Payroll", 2 + 14 * i, "INCOME", "INCOME_WAGES"))
    for i in range(6):
        txns.append(txn(chk, -1500.0, "Parkview Apartments", 1 + 30 * i, "RENT_AND_UTILITIES"))
        txns.append(txn(sav, 200.0, "Transfer from Checking", 12 + 30 * i, "TRANSFER_IN"))
    for merchant, amount in (("Netflix", -15.99), ("Spotify", -10.99), ("Hulu", -17.99)):
        for days_ago in (5, 35, 65):
            txns.append(txn(cc, amount, merchant, days_ago, "ENTERTAINMENT"))
    txns.append(txn(cc, -45.0, "Interest Charge", 10, "BANK_FEES"))
    for days_ago in (3, 33, 63):
        txns.append(txn(cc, 100.0, "Card Payment", days_ago, "LOAN_PAYMENTS", "LOAN_PAYMENTS_CREDIT_CARD_PAYMENT"))
    session.add_all(txns)
    session.commit()


@pytest.fixture
def make_user():
    """Factory that populates a user with realistic accounts and activity."""
    return _populate_user


@pytest.fixture
def seeded_user(store, make_user):
    make_user(store.session, "u_001", consent=True)
    return "u_001"
