"""
Core
====

Framework-agnostic building blocks shared by the triage and follow-up contexts.
"""

from helpdesk.core.exceptions import (
    HelpdeskError,
    RepositoryException,
    ResourceNotFoundException,
    ConfigurationException,
    NotificationException,
)

__all__ = [
    "HelpdeskError",
    "RepositoryException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "NotificationException",
]
