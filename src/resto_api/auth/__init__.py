"""
resto_api.auth

Authentication/authorization package.

Responsibilities:
- Role hierarchy, permission predicates and the role-change rules.
- Identity provider boundary (token verification, account lifecycle).
- Request guards and their FastAPI dependencies.
"""

# Package marker.
