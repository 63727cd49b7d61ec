"""
Triage Interfaces Layer
=======================

FastAPI route handlers for the assistant.
"""

from helpdesk.triage.interfaces.controllers import router as assistant_router

__all__ = ["assistant_router"]
