#!/usr/bin/env python3
"""
Seed Assistant Data
===================

Ensures the rows the assistant depends on exist:
- one department per routed category plus "Service"
- the assistant's own user account (role VIRTUAL_ASSISTANT)

Idempotent: existing rows are left alone.

Usage:
    python scripts/seed_assistant.py
"""

import asyncio
from uuid import uuid4

from sqlalchemy import select

from helpdesk.config import UserRole, settings
from helpdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging
from helpdesk.triage.domain.lexicon import CATEGORY_DEPARTMENT_MAP, SERVICE_DEPARTMENT
from helpdesk.triage.infrastructure import AssistantConfigManager, DepartmentModel, UserModel

logger = get_logger("seed_assistant")


def department_names() -> list[str]:
    names = sorted({name for name in CATEGORY_DEPARTMENT_MAP.values() if name})
    return names + [SERVICE_DEPARTMENT]


async def seed() -> None:
    config = AssistantConfigManager().load(settings.assistant_config_path)

    init_database()
    await create_tables()

    async with get_session_context() as session:
        existing = set((await session.execute(select(DepartmentModel.name))).scalars().all())
        created = [name for name in department_names() if name not in existing]
        for name in created:
            session.add(DepartmentModel(id=uuid4(), name=name))
        logger.info("Departments seeded", extra={"created": created})

        assistant = (
            await session.execute(select(UserModel).where(UserModel.email == config.assistant_email))
        ).scalar_one_or_none()
        if assistant is None:
            session.add(UserModel(
                id=uuid4(),
                name=config.name,
                email=config.assistant_email,
                role=UserRole.VIRTUAL_ASSISTANT.value,
            ))
            logger.info("Assistant account created", extra={"email": config.assistant_email})
        else:
            logger.info("Assistant account already exists", extra={"email": config.assistant_email})

    await close_database()


if __name__ == "__main__":
    setup_logging(settings.log_level, settings.environment)
    asyncio.run(seed())
