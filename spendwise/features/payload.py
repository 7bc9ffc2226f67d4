"""
Base class for persisted signal payloads.

Every payload carries its ``signal_type`` tag and a ``schema_version`` so
stored JSON can be validated and migrated when its shape changes.
"""

from pydantic import BaseModel, ConfigDict

SIGNAL_SCHEMA_VERSION = 1


class SignalPayload(BaseModel):
    """Tagged, versioned signal payload."""
    model_config = ConfigDict(extra='forbid')

    schema_version: int = SIGNAL_SCHEMA_VERSION
    window_days: int

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return self.model_dump(mode='json')
