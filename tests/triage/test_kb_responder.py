"""Tests for knowledge-base term extraction, scoring and auto-response."""

from helpdesk.config import Language, TicketStatus
from helpdesk.triage.domain import KBArticle, RelevanceScorer


def article(article_id, title, content, published=True):
    return KBArticle(
        id=article_id,
        title=title,
        slug=article_id,
        content=content,
        published=published,
    )


FIVE_TERMS = "factura impresora bodega nomina tarjeta"
SEVEN_TERMS = "factura impresora bodega nomina tarjeta cliente pedido"


class TestRelevanceScorer:

    def test_extract_terms(self):
        terms = RelevanceScorer.extract_terms(
            "Hola, necesito ayuda con la factura",
            "La factura sale sin impuestos en la impresora térmica",
        )
        assert terms == ["factura", "impuestos", "impresora", "térmica"]

    def test_extract_terms_caps_at_eight_after_dedup(self):
        text = "alpha1 alpha1 bravo2 charlie delta4 echo55 foxtrot golf77 hotel8 india9"
        assert RelevanceScorer.extract_terms(text, "") == [
            "alpha1", "bravo2", "charlie", "delta4", "echo55", "foxtrot", "golf77", "hotel8",
        ]

    def test_score_exactly_thirty_is_relevant(self):
        terms = RelevanceScorer.extract_terms(FIVE_TERMS, "")
        doc = article("a", "Factura e impresora", "Pasos generales.")

        # 2 title hits * 30 out of 5 * 40
        assert RelevanceScorer.score(doc, terms) == (30, 2)
        assert RelevanceScorer.is_relevant(30, 2)

    def test_score_rounding_to_twenty_nine_is_not_relevant(self):
        terms = RelevanceScorer.extract_terms(SEVEN_TERMS, "")
        doc = article("a", "Factura impresora", "factura e impresora.")

        # 80 / 280 = 28.57
        assert RelevanceScorer.score(doc, terms) == (29, 2)
        assert RelevanceScorer.rank([doc], terms) == []

    def test_single_matching_term_is_never_relevant(self):
        terms = ["factura", "impresora"]
        doc = article("a", "Factura", "factura")

        assert RelevanceScorer.score(doc, terms) == (50, 1)
        assert RelevanceScorer.rank([doc], terms) == []

    def test_rank_sorts_and_truncates(self):
        terms = ["factura", "impresora"]
        docs = [
            article("title-only", "Factura impresora", "nada"),
            article("full", "Factura impresora", "factura impresora"),
            article("body-only", "Otra cosa", "factura impresora"),
            article("title-and-half", "Factura impresora", "factura"),
        ]

        ranked = RelevanceScorer.rank(docs, terms, limit=3)

        assert [m.id for m in ranked] == ["full", "title-and-half", "title-only"]
        assert [m.relevance_score for m in ranked] == [100, 88, 75]

    def test_rank_builds_absolute_links(self):
        doc = article("configurar-factura", "Factura impresora", "factura impresora")

        ranked = RelevanceScorer.rank([doc], ["factura", "impresora"], portal_base_url="https://help.example.com/")

        assert ranked[0].url == "https://help.example.com/portal/kb/configurar-factura"

    def test_excerpt_starts_before_first_hit(self):
        content = "## Intro\n\n" + "x" * 100 + " la **factura** " + "y" * 300
        excerpt = RelevanceScorer.excerpt(content, ["factura"])

        assert excerpt.startswith("...")
        assert excerpt.endswith("...")
        assert "factura" in excerpt
        assert "**" not in excerpt and "##" not in excerpt

    def test_excerpt_short_content(self):
        assert RelevanceScorer.excerpt("Breve factura", ["factura"]) == "Breve factura"


class TestKnowledgeBaseResponder:

    async def test_too_few_terms_skips_search(self, kb_responder, article_repo):
        assert await kb_responder.find_relevant_articles("Hola", "ayuda por favor") == []
        assert article_repo.searches == []

    async def test_search_failure_returns_nothing(self, kb_responder, article_repo):
        article_repo.articles = [article("a", "Factura impresora", "factura impresora")]
        article_repo.fail = True

        assert await kb_responder.find_relevant_articles("factura", "impresora") == []

    async def test_unpublished_articles_are_ignored(self, kb_responder, article_repo):
        article_repo.articles = [article("draft", "Factura impresora", "factura impresora", published=False)]

        assert await kb_responder.find_relevant_articles("factura", "impresora") == []

    async def test_auto_response_above_threshold(self, kb_responder, article_repo, ticket_repo):
        article_repo.articles = [
            article("configurar-factura", "Factura en impresora", "Para imprimir la factura en la impresora..."),
        ]

        result = await kb_responder.generate_kb_response(
            "ticket-1", "factura", "impresora", Language.ES
        )

        assert result.has_relevant_article is True
        assert result.auto_responded is True
        assert result.article.id == "configurar-factura"
        assert "**Información relevante encontrada:**" in result.response_message
        assert "(https://help.example.com/portal/kb/configurar-factura)" in result.response_message
        assert ticket_repo.tickets["ticket-1"].status == TicketStatus.WAITING_CUSTOMER

    async def test_suggestions_below_threshold(self, kb_responder, article_repo, ticket_repo):
        article_repo.articles = [article("title-only", "Factura impresora", "nada")]

        result = await kb_responder.generate_kb_response(
            "ticket-1", "factura", "impresora", Language.EN
        )

        assert result.has_relevant_article is True
        assert result.auto_responded is False
        assert result.response_message is None
        assert [m.id for m in result.matches] == ["title-only"]
        assert ticket_repo.tickets["ticket-1"].status == TicketStatus.OPEN

    async def test_threshold_override(self, kb_responder, article_repo):
        article_repo.articles = [article("title-only", "Factura impresora", "nada")]

        result = await kb_responder.generate_kb_response(
            "ticket-1", "factura", "impresora", Language.EN, threshold=75
        )

        assert result.auto_responded is True
        assert "**Relevant information found:**" in result.response_message

    async def test_status_failure_keeps_answer(self, kb_responder, article_repo, ticket_repo):
        article_repo.articles = [article("full", "Factura impresora", "factura impresora")]
        ticket_repo.fail_on.add("update_status")

        result = await kb_responder.generate_kb_response("ticket-1", "factura", "impresora", Language.ES)

        assert result.auto_responded is True

    async def test_no_match(self, kb_responder):
        result = await kb_responder.generate_kb_response("ticket-1", "factura", "impresora", Language.ES)

        assert result.has_relevant_article is False
        assert result.matches == []

    async def test_disabled(self, kb_responder, article_repo, config):
        article_repo.articles = [article("full", "Factura impresora", "factura impresora")]
        disabled = config.model_copy(update={"enabled": False})

        assert await kb_responder.find_relevant_articles("factura", "impresora", config=disabled) == []
        assert article_repo.searches == []
