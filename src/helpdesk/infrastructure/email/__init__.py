"""
Email Infrastructure
====================

Outgoing email over an HTTP email API (JSON POST with a bearer token).

Handles:
- Circuit breaker to prevent cascade failures
- Exponential backoff retry
- Timeout handling

Delivery failures never raise: `send_email` returns False and logs, so
a failed notification can never roll back the ticket change before it.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from helpdesk.config import settings
from helpdesk.core import NotificationException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the email API.

    States:
    - CLOSED: requests pass through
    - OPEN: after N consecutive failed sends, reject everything for M seconds
    - HALF_OPEN: after the timeout, let a single trial request through;
      concurrent callers are rejected until it succeeds or fails. A trial
      that never reports back (e.g. a cancelled send) expires after
      another recovery timeout.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: Optional[float] = None
        self._trial_started_at: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        state = self.state
        if state == CircuitState.CLOSED:
            return True
        if state == CircuitState.OPEN:
            return False

        now = self._clock()
        if self._trial_started_at is not None and now - self._trial_started_at < self.recovery_timeout:
            return False
        self._trial_started_at = now
        return True

    def record_success(self) -> None:
        self._failure_count = 0
        self._trial_started_at = None
        self._opened_at = None
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._trial_started_at = None
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.warning(
                "Email circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


@dataclass
class EmailMessage:
    """A single outgoing email."""
    to: str
    subject: str
    html: str
    tags: Dict[str, str] = field(default_factory=dict)

    def to_payload(self, sender: str) -> Dict[str, Any]:
        return {
            "from": sender,
            "to": [self.to],
            "subject": self.subject,
            "html": self.html,
            "tags": [{"name": k, "value": v} for k, v in self.tags.items()],
        }


class EmailClient:
    """
    HTTP email API client with circuit breaker and retry logic.

    When no API URL is configured the client is a logged no-op, which is
    what local development and the test environment run with.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_url = api_url if api_url is not None else settings.email_api_url
        self._api_key = api_key if api_key is not None else settings.email_api_key
        self._sender = sender or settings.email_sender
        self._timeout = timeout_seconds or settings.email_timeout_seconds
        self._sleep = sleep
        self._http_client = http_client
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _post(self, message: EmailMessage) -> None:
        client = await self._get_client()
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        response = await client.post(
            self._api_url,
            json=message.to_payload(self._sender),
            headers=headers,
        )
        if response.status_code >= 300:
            raise NotificationException(
                f"email API returned {response.status_code}",
                {"status_code": response.status_code, "body": response.text[:300]}
            )

    async def send_email(self, message: EmailMessage, max_retries: int = 3) -> bool:
        """
        Send one email.

        Returns:
            True if the API accepted it, False otherwise
        """
        if not message.to:
            logger.warning("Email skipped, no recipient", extra={"subject": message.subject})
            return False

        if not self.is_configured:
            logger.debug(
                "Email API not configured, skipping email",
                extra={"to": message.to, "subject": message.subject}
            )
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping email",
                extra={"to": message.to, "subject": message.subject}
            )
            return False

        for attempt in range(max_retries):
            try:
                await self._post(message)
                self._circuit_breaker.record_success()
                logger.info(
                    "Email sent",
                    extra={"to": message.to, "subject": message.subject, **message.tags}
                )
                return True
            except (httpx.HTTPError, NotificationException) as e:
                logger.error(
                    "Email delivery failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "to": message.to,
                        "subject": message.subject
                    }
                )

            if attempt < max_retries - 1:
                await self._sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "EmailClient",
    "EmailMessage",
]
