"""
Follow-up Interfaces Layer
==========================

FastAPI route handlers for the follow-up sweep.
"""

from helpdesk.followup.interfaces.controllers import router as followup_router

__all__ = ["followup_router"]
