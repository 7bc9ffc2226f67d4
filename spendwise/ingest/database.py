"""
Database initialization and connection management.
"""

import logging
from sqlalchemy import create_engine, event, Index
from sqlalchemy.orm import sessionmaker

from spendwise.config import get_settings
from spendwise.ingest.schema import Base, Transaction, Account, Recommendation, Signal, PersonaScore

logger = logging.getLogger(__name__)


def get_engine(database_url: str = None, echo: bool = None):
    """Get SQLAlchemy engine for database connection."""
    settings = get_settings()
    if database_url is None:
        database_url = settings.DATABASE_URL
    if echo is None:
        echo = settings.SQL_ECHO

    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args['check_same_thread'] = False

    engine = create_engine(database_url, connect_args=connect_args, echo=echo)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_session_factory(engine=None):
    """Get a session factory bound to the engine."""
    if engine is None:
        engine = get_engine()
    return sessionmaker(bind=engine)


def get_session(engine=None):
    """Get SQLAlchemy session."""
    return get_session_factory(engine)()


def create_indexes(engine):
    """Create indexes for common query patterns."""

    # Transaction indexes
    Index('idx_transactions_account', Transaction.account_id).create(engine, checkfirst=True)
    Index('idx_transactions_date', Transaction.date).create(engine, checkfirst=True)
    Index('idx_transactions_merchant', Transaction.merchant_name).create(engine, checkfirst=True)

    # Account indexes
    Index('idx_accounts_user', Account.user_id).create(engine, checkfirst=True)
    Index('idx_accounts_type', Account.type).create(engine, checkfirst=True)

    # Signal and persona indexes
    Index('idx_signals_user_window', Signal.user_id, Signal.window_days).create(engine, checkfirst=True)
    Index('idx_persona_scores_user_window', PersonaScore.user_id, PersonaScore.window_days).create(engine, checkfirst=True)

    # Recommendation indexes
    Index('idx_recommendations_user', Recommendation.user_id).create(engine, checkfirst=True)
    Index('idx_recommendations_status', Recommendation.status).create(engine, checkfirst=True)
    Index('idx_recommendations_review', Recommendation.agentic_review_status).create(engine, checkfirst=True)


def init_database(database_url: str = None, drop_existing: bool = False):
    """
    Initialize database schema.

    Args:
        database_url: SQLAlchemy URL (uses configured DATABASE_URL if None)
        drop_existing: If True, drop all tables before creating

    Returns:
        SQLAlchemy engine
    """
    engine = get_engine(database_url)

    if drop_existing:
        logger.info("Dropping existing tables")
        Base.metadata.drop_all(engine)

    logger.info("Creating database tables")
    Base.metadata.create_all(engine)
    create_indexes(engine)

    logger.info("Database initialized at %s", engine.url)
    return engine
