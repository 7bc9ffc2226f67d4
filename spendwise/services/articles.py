"""
Article Generation

Expands a recommendation's rationale into a longer personalized article
using a chat-completions endpoint. Stub mode returns a placeholder
article; generator failures fall back to a basic article built from the
rationale. Every article carries the educational disclaimer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Protocol

import httpx

from spendwise.config import Settings, get_settings
from spendwise.exceptions import ArticleGenerationError, RecommendationNotFoundError
from spendwise.features.signals import load_signal_payloads
from spendwise.features.window_utils import utcnow
from spendwise.guardrails.consent import require_consent
from spendwise.guardrails.disclosure import append_disclosure

logger = logging.getLogger(__name__)

ARTICLE_WINDOW_DAYS = 30

SYSTEM_PROMPT = (
    "You are a financial education writer. Generate clear, helpful, personalized "
    "articles about personal finance.\n\n"
    "RULES:\n"
    "1. Write in a supportive, educational tone, free of shaming or judgment\n"
    "2. Use the reader's specific financial context provided\n"
    "3. Write 800-1200 words with headings and bullet points\n"
    "4. Do not give specific financial advice or directives\n"
    "5. End with a supportive summary\n\n"
    "Write in Markdown with ## for main sections and ### for subsections."
)


@dataclass
class ArticleContext:
    """Inputs for article generation."""
    title: str
    rationale: str
    persona_type: Optional[str]
    recommendation_type: str
    signal_summary: str = ""


@dataclass
class GeneratedArticle:
    """A generated article."""
    title: str
    content: str
    generated_at: datetime = field(default_factory=utcnow)
    fallback: bool = False

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'content': self.content,
            'generated_at': self.generated_at.isoformat(),
            'fallback': self.fallback,
        }


class ArticleGenerator(Protocol):
    def generate(self, context: ArticleContext) -> str: ...


class StubArticleGenerator:
    """Placeholder articles for development and tests."""

    def generate(self, context: ArticleContext) -> str:
        return (
            f"# {context.title}\n\n"
            f"This is a stub article for: {context.rationale}\n\n"
            "[Article content would be generated here]"
        )


class HttpArticleGenerator:
    """Article generator backed by a chat-completions HTTP endpoint."""

    def __init__(self, settings: Settings = None, transport: httpx.BaseTransport = None):
        self.settings = settings or get_settings()
        self.transport = transport

    def generate(self, context: ArticleContext) -> str:
        user_prompt = (
            f"Generate a personalized article titled \"{context.title}\".\n\n"
            f"Reader's financial context:\n{context.signal_summary or 'General financial education'}\n\n"
            f"Rationale for the recommendation:\n{context.rationale}\n\n"
            f"Persona: {context.persona_type or 'unknown'}\n"
            f"Recommendation type: {context.recommendation_type}"
        )
        payload = {
            "model": self.settings.LLM_MODEL,
            "temperature": 0,
            "top_p": 1,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self.settings.LLM_API_KEY}"}

        try:
            with httpx.Client(timeout=self.settings.ARTICLE_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(self.settings.LLM_API_URL, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise ArticleGenerationError(f"Article request failed: {exc}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ArticleGenerationError(f"Malformed article response: {exc}") from exc
        if not content:
            raise ArticleGenerationError("No content generated")
        return content


def build_article_generator(settings: Settings = None) -> ArticleGenerator:
    """Stub generator unless a live model endpoint is configured."""
    settings = settings or get_settings()
    if settings.llm_enabled:
        return HttpArticleGenerator(settings)
    return StubArticleGenerator()


def build_signal_summary(payloads: Dict[str, object]) -> str:
    """One-paragraph description of the reader's signals for the prompt."""
    parts = []
    credit = payloads.get('credit')
    if credit is not None:
        text = f"Credit: {round(credit.max_utilization * 100)}% utilization"
        if credit.interest_charges:
            text += f", ${credit.interest_charges:.2f}/month in interest charges"
        parts.append(text + ".")
    sub = payloads.get('subscription')
    if sub is not None:
        parts.append(
            f"Subscriptions: {sub.count} active subscriptions totaling ${sub.monthly_spend:.2f}/month."
        )
    savings = payloads.get('savings')
    if savings is not None:
        parts.append(f"Savings: {savings.emergency_fund_coverage:.1f} months of expenses covered.")
    income = payloads.get('income')
    if income is not None:
        parts.append(
            f"Income: {income.frequency} income, {income.cash_flow_buffer:.1f} months cash buffer."
        )
    return " ".join(parts)


def fallback_article(context: ArticleContext) -> str:
    """Basic article used when generation fails."""
    return (
        f"# {context.title}\n\n"
        f"## Overview\n\n{context.rationale}\n\n"
        "## Understanding Your Situation\n\n"
        "Based on your financial profile, this topic is relevant to your current circumstances.\n\n"
        "## Key Concepts\n\n"
        "[Article generation temporarily unavailable. Please check back later.]"
    )


def write_article(context: ArticleContext, generator: ArticleGenerator) -> GeneratedArticle:
    """
    Generate an article for a context, falling back on generator failure.

    The educational disclaimer is appended when the body lacks it.
    """
    fallback = False
    try:
        content = generator.generate(context)
    except ArticleGenerationError as exc:
        logger.error("Article generation failed for '%s': %s", context.title, exc)
        content = fallback_article(context)
        fallback = True

    return GeneratedArticle(
        title=context.title,
        content=append_disclosure(content, "education"),
        fallback=fallback,
    )


def generate_article(store, recommendation_id: str, generator: ArticleGenerator = None) -> GeneratedArticle:
    """
    Generate the article behind a stored recommendation.

    Raises:
        RecommendationNotFoundError: if it does not exist
        ConsentRequiredError: if its user has not consented
    """
    rec = store.get_recommendation(recommendation_id)
    if rec is None:
        raise RecommendationNotFoundError(recommendation_id)
    require_consent(store, rec.user_id)

    payloads = load_signal_payloads(store, rec.user_id, ARTICLE_WINDOW_DAYS)
    context = ArticleContext(
        title=rec.title,
        rationale=rec.rationale,
        persona_type=rec.persona_type,
        recommendation_type=rec.recommendation_type,
        signal_summary=build_signal_summary(payloads),
    )
    return write_article(context, generator or build_article_generator())
