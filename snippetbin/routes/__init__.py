# Routes package init
"""
snippetbin — API Routes Package
=================================

Route Inventory:
    - snippets.py: GET    /snippets        (list)
                   POST   /snippets        (create)
                   GET    /snippets/{id}   (get)
                   PATCH  /snippets/{id}   (partial update)
                   DELETE /snippets/{id}   (soft delete)
    - health.py:   GET    /health          (service health check)

Routes stay thin: decode the request, call the SnippetStore, translate its
errors, encode the response.
"""
