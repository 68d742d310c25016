"""
resto_api.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the document collections.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin; business rules belong in services.
