"""
Triage Module
=============

Bounded Context for the automated triage engine ("the assistant").

Responsibilities:
- Detect language, sentiment, priority and category of a new ticket
- Route the ticket to the best available agent
- Answer from, or point to, the knowledge base
- Post a composed reply and notify the people involved
"""
