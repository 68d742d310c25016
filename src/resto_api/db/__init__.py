"""
resto_api.db

Persistence package (SQLAlchemy async) acting as the document store.

Responsibilities:
- Provide document models, engine/session setup, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services only ever talk to repositories; nothing outside this package builds
# SQL statements.
