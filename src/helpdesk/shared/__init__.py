"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context (triage, followup):
structured logging, HTTP middleware and the metrics exporter.

DO NOT add triage or follow-up business logic to the shared kernel.
"""
