"""Tests for fire-and-forget pipeline runs."""

import asyncio
from contextlib import asynccontextmanager

from helpdesk.triage.infrastructure import BackgroundTicketProcessor


@asynccontextmanager
async def no_session():
    yield None


TICKET = dict(
    ticket_id="ticket-1",
    ticket_number=101,
    creator_name="María",
    title="Impresora",
    description="factura",
)


async def test_submit_runs_pipeline(assistant_service, message_repo):
    processor = BackgroundTicketProcessor(lambda session: assistant_service, session_factory=no_session)

    result = await processor.submit(**TICKET)

    assert result.success is True
    assert len(message_repo.messages) == 1
    assert processor.pending == 0


async def test_failures_are_contained():
    def broken_factory(session):
        raise RuntimeError("wiring failed")

    processor = BackgroundTicketProcessor(broken_factory, session_factory=no_session)

    assert await processor.submit(**TICKET) is None


async def test_drain_cancels_slow_runs():
    started = asyncio.Event()

    class SlowService:
        async def process_ticket_creation(self, **ticket):
            started.set()
            await asyncio.sleep(60)

    processor = BackgroundTicketProcessor(lambda session: SlowService(), session_factory=no_session)
    task = processor.submit(**TICKET)
    await started.wait()

    await processor.drain(timeout=0.01)

    assert task.cancelled()
    assert processor.pending == 0
