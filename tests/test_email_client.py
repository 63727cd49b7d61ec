"""Tests for the HTTP email client and its circuit breaker."""

import json

import httpx

from helpdesk.infrastructure.email import CircuitBreaker, CircuitState, EmailClient, EmailMessage
from helpdesk.triage.infrastructure import EmailNotificationClient


def make_client(handler, sleeps=None):
    async def record_sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)

    return EmailClient(
        api_url="https://mail.example.com/send",
        api_key="secret",
        sender="Helpdesk <no-reply@example.com>",
        sleep=record_sleep,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_send_posts_payload():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"id": "1"})

    client = make_client(handler)
    sent = await client.send_email(EmailMessage(
        to="maria@customer.example.com",
        subject="Hola",
        html="<p>Hola</p>",
        tags={"kind": "reminder"},
    ))

    assert sent is True
    assert requests[0].headers["Authorization"] == "Bearer secret"
    assert json.loads(requests[0].content) == {
        "from": "Helpdesk <no-reply@example.com>",
        "to": ["maria@customer.example.com"],
        "subject": "Hola",
        "html": "<p>Hola</p>",
        "tags": [{"name": "kind", "value": "reminder"}],
    }
    await client.close()


async def test_retries_then_gives_up():
    sleeps = []
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="boom")

    client = make_client(handler, sleeps)
    sent = await client.send_email(EmailMessage(to="a@example.com", subject="s", html=""))

    assert sent is False
    assert len(calls) == 3
    assert sleeps == [1, 2]
    await client.close()


async def test_recovers_on_retry():
    responses = iter([httpx.Response(503), httpx.Response(202)])

    client = make_client(lambda request: next(responses))

    assert await client.send_email(EmailMessage(to="a@example.com", subject="s", html="")) is True
    await client.close()


async def test_unconfigured_client_is_a_no_op():
    client = EmailClient(api_url="")
    assert await client.send_email(EmailMessage(to="a@example.com", subject="s", html="")) is False


async def test_missing_recipient_is_skipped():
    client = make_client(lambda request: httpx.Response(200))
    assert await client.send_email(EmailMessage(to="", subject="s", html="")) is False
    await client.close()


async def test_notification_adapter_passes_tags():
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200)

    adapter = EmailNotificationClient(make_client(handler))

    assert await adapter.send("a@example.com", "s", "<p></p>", {"kind": "escalation"}) is True
    assert requests[0]["tags"] == [{"name": "kind", "value": "escalation"}]
    await adapter.close()


class TestCircuitBreaker:

    def test_opens_after_threshold_and_half_opens_after_timeout(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, clock=lambda: now[0])

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.allow_request() is False

        now[0] = 61.0
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request() is True

    def test_half_open_admits_one_trial_request(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=lambda: now[0])
        breaker.record_failure()
        now[0] = 11.0

        assert breaker.allow_request() is True
        assert breaker.allow_request() is False
        assert breaker.allow_request() is False

        breaker.record_success()

        assert breaker.allow_request() is True
        assert breaker.allow_request() is True

    def test_unreported_trial_expires_after_recovery_timeout(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=lambda: now[0])
        breaker.record_failure()
        now[0] = 11.0
        assert breaker.allow_request() is True

        now[0] = 15.0
        assert breaker.allow_request() is False
        now[0] = 21.0
        assert breaker.allow_request() is True

    def test_failed_trial_reopens(self):
        now = [0.0]
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=lambda: now[0])
        breaker.record_failure()
        now[0] = 11.0
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1)
        breaker.record_failure()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED

    async def test_open_circuit_skips_sending(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        client = make_client(handler)
        message = EmailMessage(to="a@example.com", subject="s", html="")
        for _ in range(5):
            await client.send_email(message, max_retries=1)

        assert len(calls) == 5
        assert await client.send_email(message) is False
        assert len(calls) == 5
        await client.close()
