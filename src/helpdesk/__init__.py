"""
Helpdesk Assistant
==================

Automated triage engine for a customer-support ticketing platform.

Architecture Pattern: Modular Monolith
- triage: analyze new tickets, route them to an agent, answer from the knowledge base
- followup: remind, warn and auto-close tickets waiting on the customer
"""

__version__ = "1.0.0"
