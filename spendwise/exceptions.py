"""
Domain exceptions raised by the pipeline, guardrails and lifecycle actions.
"""


class SpendWiseError(Exception):
    """Base class for all SpendWise errors."""


class UserNotFoundError(SpendWiseError):
    """Raised when a user does not exist."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class ConsentRequiredError(SpendWiseError):
    """Raised when an operation needs data-processing consent the user has not given."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            f"User {user_id} has not granted consent for data processing"
        )


class RecommendationNotFoundError(SpendWiseError):
    """Raised when a recommendation does not exist."""

    def __init__(self, recommendation_id: str):
        self.recommendation_id = recommendation_id
        super().__init__(f"Recommendation {recommendation_id} not found")


class InvalidStatusTransitionError(SpendWiseError):
    """Raised when a lifecycle action is not allowed from the current state."""

    def __init__(self, recommendation_id: str, current: str, requested: str):
        self.recommendation_id = recommendation_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Recommendation {recommendation_id} cannot move from '{current}' to '{requested}'"
        )


class TemplateRenderError(SpendWiseError):
    """Raised when a rationale template cannot be fully rendered."""


class MalformedTraceError(SpendWiseError):
    """Raised when a stored decision trace cannot be parsed."""


class ImmutableTraceError(SpendWiseError):
    """Raised when code attempts to rewrite a stored decision trace."""


class ComplianceReviewError(SpendWiseError):
    """Raised by compliance reviewers when the external review cannot complete."""


class ArticleGenerationError(SpendWiseError):
    """Raised by article generators when no article could be produced."""
