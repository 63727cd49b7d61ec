"""
Triage Value Objects
====================

Immutable configuration and stateless scoring logic for the assistant.

- AssistantConfig: runtime configuration loaded from YAML
- SkillMatcher: agent skill scoring and candidate ordering
- RelevanceScorer: knowledge-base term extraction, scoring and excerpts
"""

import math
import random
import re
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from helpdesk.config import ROLE_HIERARCHY, settings
from helpdesk.triage.domain.entities import AgentCandidate, KBArticle, KBArticleMatch
from helpdesk.triage.domain.lexicon import (
    KB_BODY_WEIGHT,
    KB_MAX_TERMS,
    KB_MIN_MATCHING_TERMS,
    KB_MIN_RELEVANCE_SCORE,
    KB_STOP_WORDS,
    KB_TERM_MIN_LENGTH,
    KB_TITLE_WEIGHT,
    SKILL_KEYWORD_MIN_LENGTH,
    SKILL_NOISE_WORDS,
    tokenize,
)


def round_half_up(value: float) -> int:
    """Round non-negative values with .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class AssistantConfig(BaseModel):
    """
    Assistant runtime configuration loaded from YAML.

    Passed explicitly into every engine entry point; the defaults below are
    what a missing or empty file yields.
    """
    enabled: bool = Field(default=True, description="Master switch for the assistant")
    name: str = Field(default="Assistant", min_length=1, description="Display name used in replies")
    assistant_email: str = Field(
        default="assistant@helpdesk.local",
        description="Email of the user account the assistant posts as"
    )
    escalation_email: str = Field(
        default="support@helpdesk.local",
        description="Recipient of automatic escalation alerts"
    )
    auto_assign_enabled: bool = Field(default=True)
    auto_kb_response_enabled: bool = Field(default=True)
    kb_relevance_threshold: int = Field(default=80, ge=0, le=100)
    business_hours_start: int = Field(default=9, ge=0, le=23)
    business_hours_end: int = Field(default=18, ge=1, le=24)
    timezone: str = Field(default="UTC", description="IANA zone for business hours and greetings")
    followup_reminder_hours: int = Field(default=48, ge=1)
    auto_close_after_days: int = Field(default=7, ge=2)
    response_delay_ms: int = Field(default=1000, ge=0)
    response_delay_variation_ms: int = Field(default=400, ge=0)
    portal_base_url: str = Field(default_factory=lambda: settings.portal_base_url)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @model_validator(mode="after")
    def validate_business_hours(self) -> "AssistantConfig":
        if self.business_hours_start >= self.business_hours_end:
            raise ValueError("business_hours_start must be before business_hours_end")
        return self

    def local_time(self, now: datetime) -> datetime:
        """Convert an aware datetime into the configured timezone."""
        return now.astimezone(ZoneInfo(self.timezone))

    def is_business_hours(self, now: datetime) -> bool:
        hour = self.local_time(now).hour
        return self.business_hours_start <= hour < self.business_hours_end

    def response_delay_seconds(self, rng: random.Random) -> float:
        """Base delay jittered by +/- variation, never negative."""
        variation = self.response_delay_variation_ms
        delay_ms = self.response_delay_ms + rng.randint(-variation, variation)
        return max(0, delay_ms) / 1000

    def ticket_url(self, ticket_id: str, admin: bool = False) -> str:
        section = "admin/tickets" if admin else "portal/tickets"
        return f"{self.portal_base_url.rstrip('/')}/{section}/{ticket_id}"


class SkillMatcher:
    """
    Pure functions for matching agents to a ticket.

    Ordering: a skill-score gap greater than SCORE_GAP decides outright;
    otherwise role hierarchy, then lighter workload.
    """

    SCORE_GAP = 20

    @staticmethod
    def extract_keywords(title: str, description: str) -> List[str]:
        """Unique, order-preserving tokens of 4+ chars minus noise words."""
        tokens = tokenize(f"{title} {description}")
        return _unique(
            t for t in tokens
            if len(t) >= SKILL_KEYWORD_MIN_LENGTH and t not in SKILL_NOISE_WORDS
        )

    @staticmethod
    def skill_score(keywords: List[str], skills: List[str]) -> int:
        """
        Score 0-100 of how well an agent's skills cover the ticket keywords.

        A keyword matches when it contains a skill or a skill contains it.
        Score = percentage of matching keywords + 10 per match, capped at 100.
        """
        if not keywords or not skills:
            return 0

        agent_skills = [s.lower() for s in skills if s]
        matching = [
            kw for kw in keywords
            if any(skill in kw or kw in skill for skill in agent_skills)
        ]
        if not matching:
            return 0

        return min(100, round_half_up(len(matching) * 100 / len(keywords)) + len(matching) * 10)

    @staticmethod
    def role_index(candidate: AgentCandidate) -> int:
        try:
            return ROLE_HIERARCHY.index(candidate.agent.role)
        except ValueError:
            return len(ROLE_HIERARCHY)

    @staticmethod
    def compare(a: AgentCandidate, b: AgentCandidate) -> int:
        if abs(a.skill_score - b.skill_score) > SkillMatcher.SCORE_GAP:
            return b.skill_score - a.skill_score

        role_diff = SkillMatcher.role_index(a) - SkillMatcher.role_index(b)
        if role_diff:
            return role_diff

        return a.workload - b.workload

    @staticmethod
    def rank(candidates: List[AgentCandidate]) -> List[AgentCandidate]:
        return sorted(candidates, key=cmp_to_key(SkillMatcher.compare))


class RelevanceScorer:
    """Pure functions for scoring knowledge-base articles against a ticket."""

    EXCERPT_LENGTH = 200
    EXCERPT_LEAD = 50

    _HEADING = re.compile(r"#{1,6}\s")
    _NEWLINES = re.compile(r"\n+")

    @staticmethod
    def extract_terms(title: str, description: str) -> List[str]:
        """Significant search terms: 5+ chars, no stop words, unique, at most 8."""
        tokens = tokenize(f"{title} {description}")
        terms = _unique(
            t for t in tokens
            if len(t) >= KB_TERM_MIN_LENGTH and t not in KB_STOP_WORDS
        )
        return terms[:KB_MAX_TERMS]

    @staticmethod
    def score(article: KBArticle, terms: List[str]) -> Tuple[int, int]:
        """
        Score an article.

        Returns:
            Tuple of (normalized score 0-100, number of distinct matching terms)
        """
        if not terms:
            return 0, 0

        title = article.title.lower()
        content = article.content.lower()
        raw = 0
        matching = 0

        for term in terms:
            in_title = term in title
            in_body = term in content
            if in_title or in_body:
                matching += 1
            if in_title:
                raw += KB_TITLE_WEIGHT
            if in_body:
                raw += KB_BODY_WEIGHT

        max_score = len(terms) * (KB_TITLE_WEIGHT + KB_BODY_WEIGHT)
        return min(100, round_half_up(raw * 100 / max_score)), matching

    @staticmethod
    def is_relevant(score: int, matching_terms: int) -> bool:
        return score >= KB_MIN_RELEVANCE_SCORE and matching_terms >= KB_MIN_MATCHING_TERMS

    @classmethod
    def excerpt(cls, content: str, terms: List[str]) -> str:
        """~200 chars of plain text starting shortly before the first term hit."""
        clean = cls._HEADING.sub("", content).replace("**", "")
        clean = cls._NEWLINES.sub(" ", clean).strip()
        lowered = clean.lower()

        start = 0
        for term in terms:
            index = lowered.find(term.lower())
            if index != -1:
                start = max(0, index - cls.EXCERPT_LEAD)
                break

        end = start + cls.EXCERPT_LENGTH
        text = clean[start:end]
        if start > 0:
            text = "..." + text
        if end < len(clean):
            text = text + "..."
        return text

    @classmethod
    def rank(
        cls,
        articles: Iterable[KBArticle],
        terms: List[str],
        limit: int = 3,
        portal_base_url: str = ""
    ) -> List[KBArticleMatch]:
        """
        Score, filter by the relevance gates, sort descending and truncate.

        Article links are absolute when `portal_base_url` is given, since
        they end up in customer emails.
        """
        matches = []
        for article in articles:
            score, matching = cls.score(article, terms)
            if not cls.is_relevant(score, matching):
                continue
            matches.append(KBArticleMatch(
                id=article.id,
                title=article.title,
                slug=article.slug,
                excerpt=cls.excerpt(article.content, terms),
                relevance_score=score,
                matching_terms=matching,
                portal_base_url=portal_base_url,
            ))

        matches.sort(key=lambda m: m.relevance_score, reverse=True)
        return matches[:limit]
