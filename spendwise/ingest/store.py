"""
Data Store

Repository interface the pipeline reads and writes through. Components
receive a store instead of opening sessions themselves, so a run can be
pointed at any backing database (or a fake in tests).
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from spendwise.features.window_utils import utcnow
from spendwise.ingest.schema import (
    User, Account, Transaction, Liability, ConsentLog, Signal, PersonaScore,
    ContentItem, Offer, Recommendation,
)

logger = logging.getLogger(__name__)


class FinancialDataStore(Protocol):
    """Reads and writes needed by the recommendation pipeline."""

    def get_user(self, user_id: str) -> Optional[User]: ...

    def has_consent(self, user_id: str) -> bool: ...

    def list_user_ids(self, consented_only: bool = False) -> List[str]: ...

    def get_accounts(self, user_id: str) -> List[Account]: ...

    def get_transactions(
        self, account_ids: Sequence[str], start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Transaction]: ...

    def get_liability(self, account_id: str) -> Optional[Liability]: ...

    def get_content_catalog(self) -> List[ContentItem]: ...

    def get_offer_catalog(self) -> List[Offer]: ...

    def get_signals(self, user_id: str, window_days: int) -> Dict[str, dict]: ...

    def get_personas(self, user_id: str, window_days: int) -> List[PersonaScore]: ...

    def upsert_signal(
        self, user_id: str, signal_type: str, window_days: int, payload: dict, schema_version: int = 1
    ) -> Signal: ...

    def replace_personas(self, user_id: str, window_days: int, entries: Iterable[dict]) -> List[PersonaScore]: ...

    def delete_recommendations(self, user_id: str, window_days: int) -> int: ...

    def create_recommendation(self, **fields) -> Recommendation: ...

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]: ...

    def list_recommendations(
        self, user_id: Optional[str] = None, status: Optional[str] = None,
        review_status: Optional[str] = None,
    ) -> List[Recommendation]: ...

    def hide_active_recommendations(self, user_id: str) -> int: ...

    def add_consent_log(
        self, user_id: str, consent_status: bool, source: Optional[str] = None,
        notes: Optional[str] = None, timestamp: Optional[datetime] = None,
    ) -> ConsentLog: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


class SqlAlchemyStore:
    """FinancialDataStore backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    # Reads

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def has_consent(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        return bool(user and user.consent_status)

    def list_user_ids(self, consented_only: bool = False) -> List[str]:
        query = self.session.query(User.user_id)
        if consented_only:
            query = query.filter(User.consent_status == True)  # noqa: E712
        return [row.user_id for row in query.order_by(User.user_id).all()]

    def get_accounts(self, user_id: str) -> List[Account]:
        return (
            self.session.query(Account)
            .filter(Account.user_id == user_id)
            .order_by(Account.account_id)
            .all()
        )

    def get_transactions(
        self, account_ids: Sequence[str], start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Transaction]:
        if not account_ids:
            return []
        query = self.session.query(Transaction).filter(Transaction.account_id.in_(list(account_ids)))
        if start is not None:
            query = query.filter(Transaction.date >= start)
        if end is not None:
            query = query.filter(Transaction.date <= end)
        return query.order_by(Transaction.date, Transaction.transaction_id).all()

    def get_liability(self, account_id: str) -> Optional[Liability]:
        return (
            self.session.query(Liability)
            .filter(Liability.account_id == account_id)
            .first()
        )

    def get_content_catalog(self) -> List[ContentItem]:
        return self.session.query(ContentItem).order_by(ContentItem.content_id).all()

    def get_offer_catalog(self) -> List[Offer]:
        return self.session.query(Offer).order_by(Offer.offer_id).all()

    def get_signals(self, user_id: str, window_days: int) -> Dict[str, dict]:
        rows = (
            self.session.query(Signal)
            .filter(Signal.user_id == user_id, Signal.window_days == window_days)
            .all()
        )
        return {row.signal_type: row.data for row in rows}

    def get_personas(self, user_id: str, window_days: int) -> List[PersonaScore]:
        return (
            self.session.query(PersonaScore)
            .filter(PersonaScore.user_id == user_id, PersonaScore.window_days == window_days)
            .order_by(PersonaScore.rank)
            .all()
        )

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        return self.session.get(Recommendation, recommendation_id)

    def list_recommendations(
        self, user_id: Optional[str] = None, status: Optional[str] = None,
        review_status: Optional[str] = None,
    ) -> List[Recommendation]:
        query = self.session.query(Recommendation)
        if user_id is not None:
            query = query.filter(Recommendation.user_id == user_id)
        if status is not None:
            query = query.filter(Recommendation.status == status)
        if review_status is not None:
            query = query.filter(Recommendation.agentic_review_status == review_status)
        return query.order_by(Recommendation.created_at, Recommendation.recommendation_id).all()

    # Writes

    def upsert_signal(
        self, user_id: str, signal_type: str, window_days: int, payload: dict, schema_version: int = 1
    ) -> Signal:
        row = (
            self.session.query(Signal)
            .filter(
                Signal.user_id == user_id,
                Signal.signal_type == signal_type,
                Signal.window_days == window_days,
            )
            .first()
        )
        if row is None:
            row = Signal(user_id=user_id, signal_type=signal_type, window_days=window_days)
            self.session.add(row)
        row.data = payload
        row.schema_version = schema_version
        row.computed_at = utcnow()
        return row

    def replace_personas(self, user_id: str, window_days: int, entries: Iterable[dict]) -> List[PersonaScore]:
        self.session.query(PersonaScore).filter(
            PersonaScore.user_id == user_id,
            PersonaScore.window_days == window_days,
        ).delete(synchronize_session=False)

        rows = []
        for entry in entries:
            row = PersonaScore(
                user_id=user_id,
                window_days=window_days,
                persona_type=entry['persona_type'],
                score=entry['score'],
                rank=entry['rank'],
                criteria_met=list(entry.get('criteria_met', [])),
            )
            self.session.add(row)
            rows.append(row)
        return rows

    def delete_recommendations(self, user_id: str, window_days: int) -> int:
        deleted = self.session.query(Recommendation).filter(
            Recommendation.user_id == user_id,
            Recommendation.window_days == window_days,
        ).delete(synchronize_session=False)
        logger.debug("Deleted %d recommendations for %s (%dd)", deleted, user_id, window_days)
        return deleted

    def create_recommendation(self, **fields) -> Recommendation:
        rec = Recommendation(**fields)
        self.session.add(rec)
        return rec

    def hide_active_recommendations(self, user_id: str) -> int:
        active = self.list_recommendations(user_id=user_id, status='active')
        for rec in active:
            rec.status = 'hidden'
        return len(active)

    def add_consent_log(
        self, user_id: str, consent_status: bool, source: Optional[str] = None,
        notes: Optional[str] = None, timestamp: Optional[datetime] = None,
    ) -> ConsentLog:
        entry = ConsentLog(
            user_id=user_id,
            consent_status=consent_status,
            source=source,
            notes=notes,
            timestamp=timestamp or utcnow(),
        )
        self.session.add(entry)
        return entry

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def close(self) -> None:
        self.session.close()
