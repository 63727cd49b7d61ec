"""
Content Analyzer
================

Turns a ticket's free text into language, sentiment, priority and category.

Rules only: substring matches against the lexicon tables, evaluated in a
fixed order so the result is deterministic for a given text.
"""

from typing import Optional, Tuple

from helpdesk.config import Language, Priority, Sentiment, TicketCategory
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.domain.entities import ContentAnalysis
from helpdesk.triage.domain.lexicon import (
    CATEGORY_KEYWORDS,
    CATEGORY_PRIORITY_ORDER,
    ENGLISH_FUNCTION_WORDS,
    NEGATIVE_SENTIMENT_KEYWORDS,
    PRIORITY_KEYWORDS,
    PRIORITY_ORDER,
    SPANISH_FUNCTION_WORDS,
)
from helpdesk.triage.domain.value_objects import round_half_up

logger = get_logger(__name__)

ESCALATABLE_PRIORITIES = (None, Priority.LOW, Priority.MEDIUM)


def _combine(title: Optional[str], description: Optional[str]) -> str:
    return f"{title or ''} {description or ''}"


class ContentAnalyzer:
    """Stateless keyword analyzer. Never raises."""

    @staticmethod
    def detect_language(text: Optional[str]) -> Language:
        """English only when it has strictly more function-word hits; ties and empty text are Spanish."""
        text = text or ""
        english = len(ENGLISH_FUNCTION_WORDS.findall(text))
        spanish = len(SPANISH_FUNCTION_WORDS.findall(text))
        return Language.EN if english > spanish else Language.ES

    @staticmethod
    def detect_sentiment(text: Optional[str]) -> Sentiment:
        lowered = (text or "").lower()
        if any(keyword in lowered for keyword in NEGATIVE_SENTIMENT_KEYWORDS):
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL

    @staticmethod
    def detect_priority(text: Optional[str]) -> Optional[Priority]:
        """First bucket (CRITICAL, HIGH, LOW) with a hit wins; None when nothing matched."""
        lowered = (text or "").lower()
        for priority in PRIORITY_ORDER:
            if any(keyword in lowered for keyword in PRIORITY_KEYWORDS[priority]):
                return priority
        return None

    @staticmethod
    def classify_category(text: Optional[str]) -> Tuple[TicketCategory, int]:
        """
        First category in precedence order with a hit wins.

        Confidence counts the winning category's matched keywords, multi-word
        phrases weighing one point per word, scaled so three points is 100.
        It is informational only.
        """
        lowered = (text or "").lower()
        for category in CATEGORY_PRIORITY_ORDER:
            points = sum(
                len(keyword.split())
                for keyword in CATEGORY_KEYWORDS[category]
                if keyword in lowered
            )
            if points:
                return category, min(100, round_half_up(points * 100 / 3))
        return TicketCategory.OTHER, 0

    @classmethod
    def analyze(cls, title: Optional[str], description: Optional[str]) -> ContentAnalysis:
        """
        Full analysis of a ticket.

        Negative sentiment lifts a missing, LOW or MEDIUM priority to HIGH and
        flags it; CRITICAL and HIGH are left alone.
        """
        try:
            text = _combine(title, description)
            language = cls.detect_language(text)
            sentiment = cls.detect_sentiment(text)
            category, confidence = cls.classify_category(text)
            priority = cls.detect_priority(text)

            escalated = False
            if sentiment == Sentiment.NEGATIVE and priority in ESCALATABLE_PRIORITIES:
                priority = Priority.HIGH
                escalated = True

            return ContentAnalysis(
                priority=priority,
                sentiment=sentiment,
                category=category,
                confidence=confidence,
                language=language,
                priority_escalated=escalated,
            )
        except Exception:
            logger.exception("Content analysis failed, treating text as unmatched")
            return ContentAnalysis.empty()
