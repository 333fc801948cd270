"""
Observability for the LLM relay.

Structured logging only: JSON lines in production, colored text locally,
with a per-request correlation id attached to every record.
"""
