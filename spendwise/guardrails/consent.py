"""
Consent Management Module

Handles user consent checking and management. No signals, personas or
recommendations are produced or shown without explicit consent, and
revoking consent hides every active recommendation immediately.
"""

import logging
from typing import Optional

from spendwise.exceptions import ConsentRequiredError, UserNotFoundError
from spendwise.features.window_utils import utcnow

logger = logging.getLogger(__name__)


def check_consent(store, user_id: str) -> bool:
    """
    Check if user has consented to data processing.

    Returns False for unknown users and for any consent value other than True.
    """
    return store.has_consent(user_id)


def require_consent(store, user_id: str) -> None:
    """
    Raise unless the user exists and has consented.

    Raises:
        UserNotFoundError: if the user does not exist
        ConsentRequiredError: if consent has not been granted
    """
    if store.get_user(user_id) is None:
        raise UserNotFoundError(user_id)
    if not store.has_consent(user_id):
        raise ConsentRequiredError(user_id)


def update_consent(
    store,
    user_id: str,
    consent_status: bool,
    source: str = "system",
    notes: Optional[str] = None
) -> int:
    """
    Update user consent status and log to ConsentLog table.

    Revoking consent moves every active recommendation to hidden in the
    same transaction.

    Args:
        store: FinancialDataStore
        user_id: User ID
        consent_status: New consent status (True = granted, False = revoked)
        source: Source of the change (cli, operator, system)
        notes: Optional notes about the change

    Returns:
        Number of recommendations hidden (0 when granting)

    Raises:
        UserNotFoundError: If user not found
    """
    user = store.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    now = utcnow()
    user.consent_status = consent_status
    user.consent_timestamp = now
    store.add_consent_log(user_id, consent_status, source=source, notes=notes, timestamp=now)

    hidden = 0
    if not consent_status:
        hidden = store.hide_active_recommendations(user_id)
        logger.info("Consent revoked for %s; hid %d active recommendations", user_id, hidden)
    else:
        logger.info("Consent granted for %s", user_id)

    store.commit()
    return hidden


def revoke_consent(store, user_id: str, source: str = "system", notes: Optional[str] = None) -> int:
    """Revoke consent and hide active recommendations. Returns the hidden count."""
    return update_consent(store, user_id, False, source=source, notes=notes)
