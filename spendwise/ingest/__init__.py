"""
Persistence layer: ORM schema, engine/session helpers and the data store.
"""

from .schema import (
    Base, User, Account, Transaction, Liability, ConsentLog,
    Signal, PersonaScore, ContentItem, Offer, Recommendation,
)
from .database import get_engine, get_session, init_database
from .store import FinancialDataStore, SqlAlchemyStore

__all__ = [
    'Base', 'User', 'Account', 'Transaction', 'Liability', 'ConsentLog',
    'Signal', 'PersonaScore', 'ContentItem', 'Offer', 'Recommendation',
    'get_engine', 'get_session', 'init_database',
    'FinancialDataStore', 'SqlAlchemyStore',
]
