"""
Database schema definitions for SpendWise.
"""

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime,
    ForeignKey, Text, Date, JSON, UniqueConstraint, event, inspect
)
from sqlalchemy.orm import declarative_base, relationship

from spendwise.exceptions import ImmutableTraceError
from spendwise.features.window_utils import utcnow

Base = declarative_base()


class User(Base):
    """User table with consent tracking."""
    __tablename__ = 'users'

    user_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    consent_status = Column(Boolean, default=False, nullable=False)
    consent_timestamp = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    accounts = relationship("Account", back_populates="user", cascade="all, delete-orphan")
    consent_logs = relationship("ConsentLog", back_populates="user", cascade="all, delete-orphan")
    signals = relationship("Signal", back_populates="user", cascade="all, delete-orphan")
    persona_scores = relationship("PersonaScore", back_populates="user", cascade="all, delete-orphan")
    recommendations = relationship("Recommendation", back_populates="user", cascade="all, delete-orphan")


class Account(Base):
    """Account table - checking, savings, money market, HSA, credit cards."""
    __tablename__ = 'accounts'

    account_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey('users.user_id'), nullable=False)
    name = Column(String, nullable=True)  # Display name, e.g. "Visa ending 4523"
    type = Column(String, nullable=False)  # checking, savings, money_market, hsa, credit_card
    subtype = Column(String, nullable=True)
    balance_available = Column(Float, nullable=True)
    balance_current = Column(Float, nullable=False, default=0.0)
    credit_limit = Column(Float, nullable=True)  # Credit cards only
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="accounts")
    transactions = relationship("Transaction", back_populates="account", cascade="all, delete-orphan")
    liability = relationship("Liability", back_populates="account", uselist=False, cascade="all, delete-orphan")


class Transaction(Base):
    """Transaction table. Recorded once, never mutated by recomputation."""
    __tablename__ = 'transactions'

    transaction_id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey('accounts.account_id'), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False)  # Negative = outflow, positive = inflow
    merchant_name = Column(String, nullable=True)
    category_primary = Column(String, nullable=True)
    category_detailed = Column(String, nullable=True)
    pending = Column(Boolean, default=False, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")


class Liability(Base):
    """Liability table - one per credit card account."""
    __tablename__ = 'liabilities'

    liability_id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey('accounts.account_id'), nullable=False, unique=True)
    apr_percentage = Column(Float, nullable=True)
    minimum_payment_amount = Column(Float, nullable=True)
    last_payment_amount = Column(Float, nullable=True)
    is_overdue = Column(Boolean, default=False, nullable=False)
    last_statement_balance = Column(Float, nullable=True)

    # Relationships
    account = relationship("Account", back_populates="liability")


class ConsentLog(Base):
    """Consent log - append-only record of consent changes."""
    __tablename__ = 'consent_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey('users.user_id'), nullable=False)
    consent_status = Column(Boolean, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    source = Column(String, nullable=True)  # cli, operator, system
    notes = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="consent_logs")


class Signal(Base):
    """Computed behavioral signal payload per (user, signal type, window)."""
    __tablename__ = 'signals'
    __table_args__ = (
        UniqueConstraint('user_id', 'signal_type', 'window_days', name='uq_signal_user_type_window'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey('users.user_id'), nullable=False)
    signal_type = Column(String, nullable=False)  # subscription, savings, credit, income
    window_days = Column(Integer, nullable=False)  # 30 or 180
    schema_version = Column(Integer, nullable=False, default=1)
    data = Column(JSON, nullable=False)
    computed_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="signals")


class PersonaScore(Base):
    """Ranked persona score per (user, persona, window). Rank 1 = primary, 2 = secondary."""
    __tablename__ = 'persona_scores'
    __table_args__ = (
        UniqueConstraint('user_id', 'persona_type', 'window_days', name='uq_persona_user_type_window'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey('users.user_id'), nullable=False)
    persona_type = Column(String, nullable=False)
    window_days = Column(Integer, nullable=False)
    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    criteria_met = Column(JSON, nullable=False, default=list)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="persona_scores")


class ContentItem(Base):
    """Education content catalog entry. Read-only to the pipeline."""
    __tablename__ = 'content_items'

    content_id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    summary = Column(Text, nullable=True)
    content_type = Column(String, nullable=False, default='article')
    persona_fit = Column(JSON, nullable=False, default=list)
    signal_tags = Column(JSON, nullable=False, default=list)
    topic_tags = Column(JSON, nullable=False, default=list)
    editorial_priority = Column(Integer, nullable=False, default=100)  # Lower = more important
    url = Column(String, nullable=True)


class Offer(Base):
    """Partner offer catalog entry. Read-only to the pipeline."""
    __tablename__ = 'offers'

    offer_id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    provider = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    offer_type = Column(String, nullable=False)  # balance_transfer_card, high_yield_savings, ...
    persona_fit = Column(JSON, nullable=False, default=list)
    required_signals = Column(JSON, nullable=False, default=list)
    eligibility_rules = Column(JSON, nullable=False, default=list)  # [{field, operator, value}]
    excluded_account_types = Column(JSON, nullable=False, default=list)
    url = Column(String, nullable=True)


class Recommendation(Base):
    """Generated recommendation with its frozen decision trace."""
    __tablename__ = 'recommendations'

    recommendation_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey('users.user_id'), nullable=False)
    recommendation_type = Column(String, nullable=False)  # education, offer
    content_id = Column(String, nullable=True)
    offer_id = Column(String, nullable=True)
    window_days = Column(Integer, nullable=False, default=30)
    title = Column(String, nullable=False)
    rationale = Column(Text, nullable=False)
    persona_type = Column(String, nullable=True)  # Primary persona at generation time
    signals_used = Column(JSON, nullable=False, default=list)
    decision_trace = Column(Text, nullable=False)  # Serialized JSON, never rewritten
    status = Column(String, default='active', nullable=False)  # active, dismissed, completed, saved, hidden
    agentic_review_status = Column(String, default='approved', nullable=False)  # approved, flagged, operator_approved
    review_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="recommendations")


@event.listens_for(Recommendation, "before_update")
def _reject_trace_rewrite(mapper, connection, target):
    """Stored decision traces are write-once."""
    history = inspect(target).attrs.decision_trace.history
    if history.has_changes():
        raise ImmutableTraceError(
            f"decision_trace of recommendation {target.recommendation_id} cannot be modified"
        )
