"""
Infrastructure Layer
=====================

Low-level technical concerns shared by the bounded contexts:
- Database connection management
- Outgoing email
"""
