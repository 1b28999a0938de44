# Middleware package init
"""
snippetbin — Middleware Package
=================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Handler

    Request ID runs first so the access log line produced by the logging
    middleware carries the id; the response passes back through in reverse.
"""
