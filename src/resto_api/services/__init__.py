"""
resto_api.services

Service layer package.

Responsibilities:
- Apply business rules on top of repositories and own transaction commits.
- Translate repository results into HTTP-status-bearing exceptions.
"""

# Package marker.
