"""
snippetbin — Application Package
==================================

A minimal snippet-storage service: a REST interface over a local SQLite file.

Architecture:

    ┌─────────────────────────────────────┐
    │     Router + Entry (main, cli)      │  ← app factory, lifespan, uvicorn
    ├─────────────────────────────────────┤
    │       Routes (/snippets, /health)   │  ← HTTP decoding, error translation
    ├─────────────────────────────────────┤
    │   Store adapter (SnippetStore)      │  ← typed row operations
    ├─────────────────────────────────────┤
    │  Models, Schemas, Database          │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
