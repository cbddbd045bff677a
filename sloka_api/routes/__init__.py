# Routes package init
"""
Sloka API — Routes Package
===========================

Route Inventory:
    - health.py:  GET /health
    - info.py:    GET /api, GET /quote/random, GET /quote/daily (301)
    - quotes.py:  GET /api/quote/random, /api/quote/daily, /api/quote/{id},
                  GET /api/quotes/search, GET /api/quotes
    - deps.py:    get_store() dependency

Routes stay thin: parse the request, call the store and the selection
functions, return an envelope. Errors are raised, not returned.
"""
