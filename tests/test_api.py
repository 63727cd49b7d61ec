"""API tests against the application with in-memory collaborators on app.state."""

from contextlib import asynccontextmanager

import httpx
import pytest

from helpdesk.followup.application import FollowupService
from helpdesk.infrastructure.database import get_session
from helpdesk.main import app
from helpdesk.triage.infrastructure import BackgroundTicketProcessor

from conftest import NOW, FakeFollowupTicketRepository


@asynccontextmanager
async def no_session():
    yield None


@pytest.fixture
def processor(assistant_service):
    return BackgroundTicketProcessor(lambda session: assistant_service, session_factory=no_session)


@pytest.fixture
async def client(config_provider, notifier, metrics, processor):
    app.state.config_manager = config_provider
    app.state.notifier = notifier
    app.state.metrics = metrics
    app.state.ticket_processor = processor
    app.state.followup_scheduler = None

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    for name in ("config_manager", "notifier", "metrics", "ticket_processor", "followup_scheduler"):
        delattr(app.state, name)
    app.dependency_overrides.clear()


async def test_analyze(client):
    response = await client.post(
        "/assistant/analyze",
        json={"title": "Sistema caído", "description": "No puedo facturar, es urgente"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "priority": "CRITICAL",
        "sentiment": "NEUTRAL",
        "category": "CONSULTING",
        "confidence": 33,
        "language": "es",
        "priority_escalated": False,
    }
    assert "X-Correlation-ID" in response.headers
    assert "X-Response-Time" in response.headers


async def test_analyze_validates_payload(client):
    response = await client.post("/assistant/analyze", json={"title": ""})
    assert response.status_code == 422


async def test_analyze_without_config_is_unavailable(client):
    app.state.config_manager = None

    response = await client.post("/assistant/analyze", json={"title": "hola"})

    assert response.status_code == 503


async def test_process_is_queued_and_runs(client, processor, message_repo):
    response = await client.post(
        "/assistant/tickets/ticket-1/process",
        json={"ticket_number": 101, "creator_name": "María", "title": "Impresora", "description": "factura"},
    )

    assert response.status_code == 202
    assert response.json() == {"ticket_id": "ticket-1", "status": "queued"}

    await processor.drain()
    assert processor.pending == 0
    assert len(message_repo.messages) == 1


async def test_config(client):
    response = await client.get("/assistant/config")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Sofia"
    assert body["kb_relevance_threshold"] == 80
    assert "assistant_email" not in body


async def test_followup_run(
    client, monkeypatch, ticket_repo, message_repo, agent_repo, audit_writer, notifier, config_provider
):
    service = FollowupService(
        FakeFollowupTicketRepository(ticket_repo, message_repo),
        agent_repo,
        message_repo,
        audit_writer,
        notifier,
        config_provider,
        clock=lambda: NOW,
    )

    async def fake_session():
        yield None

    app.dependency_overrides[get_session] = fake_session
    monkeypatch.setattr(
        "helpdesk.followup.interfaces.controllers.build_followup_service",
        lambda *args: service,
    )

    response = await client.post("/followup/run")

    assert response.status_code == 200
    assert response.json() == {"reminders": 0, "warnings": 0, "closed": 0, "errors": 0}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["followup_scheduler"] == "stopped"
    assert checks["pending_tickets"] == 0
