# Services package init
"""
snippetbin — Services Layer
=============================

Service Inventory:
    - SnippetStore: the store adapter. Owns the database engine for the whole
      process and exposes list/get/create/update/delete for snippets.

Routes receive the store through the `get_store` FastAPI dependency; the
application lifespan opens it on startup and closes it on shutdown.
"""
