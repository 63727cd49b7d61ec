"""
Follow-up Module
================

Bounded Context for tickets waiting on a customer reply.

Responsibilities:
- Remind the customer after a period of silence
- Warn one day before closing
- Close inactive tickets and tell the customer
"""
