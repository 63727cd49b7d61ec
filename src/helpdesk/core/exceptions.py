"""
Core Exceptions
================

Error types shared by both bounded contexts.

Pipeline steps raise these internally; the assistant converts them into a
result object at each step boundary, so only the HTTP layer ever maps one
to a response.
"""

from typing import Any, Dict, Optional


class HelpdeskError(Exception):
    """Root of every error raised by the helpdesk package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})


class RepositoryException(HelpdeskError):
    """A ticket, agent, article or message store rejected an operation."""


class ResourceNotFoundException(HelpdeskError):
    """A ticket (or other record) addressed by id does not exist."""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        where = f" '{resource_id}'" if resource_id else ""
        super().__init__(f"{resource_type}{where} not found")


class ConfigurationException(HelpdeskError):
    """The assistant configuration file could not be parsed or validated."""


class NotificationException(HelpdeskError):
    """The email API refused or failed to accept a message."""
