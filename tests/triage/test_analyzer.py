"""Tests for the keyword content analyzer."""

import pytest

from helpdesk.config import Language, Priority, Sentiment, TicketCategory
from helpdesk.triage.domain import ContentAnalyzer


class TestDetectLanguage:

    def test_spanish_text(self):
        assert ContentAnalyzer.detect_language("el sistema de la empresa") == Language.ES

    def test_english_text(self):
        assert ContentAnalyzer.detect_language("the report is late and my team has questions") == Language.EN

    def test_empty_text_is_spanish(self):
        assert ContentAnalyzer.detect_language("") == Language.ES
        assert ContentAnalyzer.detect_language(None) == Language.ES

    def test_tie_is_spanish(self):
        assert ContentAnalyzer.detect_language("the el") == Language.ES

    def test_whole_words_only(self):
        # "the" inside a longer word does not count
        assert ContentAnalyzer.detect_language("thesis") == Language.ES


class TestDetectPriority:

    @pytest.mark.parametrize("text, expected", [
        ("system down, urgent", Priority.CRITICAL),
        ("es urgente", Priority.HIGH),
        ("tengo una duda", Priority.LOW),
        ("factura del mes", None),
    ])
    def test_first_bucket_wins(self, text, expected):
        assert ContentAnalyzer.detect_priority(text) == expected

    def test_case_insensitive(self):
        assert ContentAnalyzer.detect_priority("URGENTE") == Priority.HIGH


class TestDetectSentiment:

    def test_negative(self):
        assert ContentAnalyzer.detect_sentiment("esto es pésimo") == Sentiment.NEGATIVE

    def test_neutral(self):
        assert ContentAnalyzer.detect_sentiment("gracias por la ayuda") == Sentiment.NEUTRAL


class TestClassifyCategory:

    def test_complaint_outranks_technical_keywords(self):
        category, _ = ContentAnalyzer.classify_category("quiero cancelar, el bug del deploy sigue")
        assert category == TicketCategory.SERVICE_COMPLAINT

    def test_infrastructure_outranks_support(self):
        category, _ = ContentAnalyzer.classify_category("server slow")
        assert category == TicketCategory.INFRASTRUCTURE

    def test_no_match_is_other_with_zero_confidence(self):
        assert ContentAnalyzer.classify_category("hola buenos días") == (TicketCategory.OTHER, 0)

    def test_confidence_counts_words_of_phrases(self):
        # "factura electrónica" (2 points) + "factura" (1 point)
        assert ContentAnalyzer.classify_category("factura electrónica") == (TicketCategory.CONSULTING, 100)

    def test_single_keyword_confidence(self):
        assert ContentAnalyzer.classify_category("no puedo facturar") == (TicketCategory.CONSULTING, 33)


class TestAnalyze:

    def test_critical_spanish_ticket(self):
        analysis = ContentAnalyzer.analyze("Sistema caído", "No puedo facturar, es urgente")

        assert analysis.priority == Priority.CRITICAL
        assert analysis.category == TicketCategory.CONSULTING
        assert analysis.sentiment == Sentiment.NEUTRAL
        assert analysis.language == Language.ES
        assert analysis.priority_escalated is False
        assert analysis.needs_escalation is True

    def test_negative_sentiment_lifts_missing_priority(self):
        analysis = ContentAnalyzer.analyze("Complaint", "This is terrible, your service is useless")

        assert analysis.sentiment == Sentiment.NEGATIVE
        assert analysis.priority == Priority.HIGH
        assert analysis.priority_escalated is True
        assert analysis.language == Language.EN

    def test_negative_sentiment_lifts_low_priority(self):
        analysis = ContentAnalyzer.analyze("", "tengo una duda, esto es pésimo")

        assert analysis.priority == Priority.HIGH
        assert analysis.priority_escalated is True

    def test_negative_sentiment_keeps_critical(self):
        analysis = ContentAnalyzer.analyze("production down", "this is terrible")

        assert analysis.priority == Priority.CRITICAL
        assert analysis.sentiment == Sentiment.NEGATIVE
        assert analysis.priority_escalated is False

    def test_missing_text(self):
        analysis = ContentAnalyzer.analyze(None, None)

        assert analysis.priority is None
        assert analysis.category == TicketCategory.OTHER
        assert analysis.sentiment == Sentiment.NEUTRAL
        assert analysis.language == Language.ES
        assert analysis.needs_escalation is False

    def test_never_raises(self, monkeypatch):
        def boom(text):
            raise RuntimeError("lexicon broken")

        monkeypatch.setattr(ContentAnalyzer, "detect_sentiment", staticmethod(boom))
        analysis = ContentAnalyzer.analyze("Sistema caído", "urgente")

        assert analysis.priority is None
        assert analysis.category == TicketCategory.OTHER
        assert analysis.confidence == 0

    def test_to_dict(self):
        data = ContentAnalyzer.analyze("Sistema caído", "No puedo facturar, es urgente").to_dict()
        assert data == {
            "priority": "CRITICAL",
            "sentiment": "NEUTRAL",
            "category": "CONSULTING",
            "confidence": 33,
            "language": "es",
            "priority_escalated": False,
        }
