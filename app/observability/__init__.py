"""Observability helpers: request IDs + structlog contextvars, JSON logs,
and an in-memory metrics snapshot for HTTP, OpenAI and PDF extraction work.
"""
