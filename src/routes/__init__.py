"""
API Routes Package
==================
Shared route utilities live here; the FastAPI ``app`` is defined in api.py.

Modules:
  helpers  - request payload → domain record conversion
"""
