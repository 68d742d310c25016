"""
resto_api.api

API package for the restaurant service.

Responsibilities:
- FastAPI app factory and router modules.
- Error translation and the response envelope.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + guards + delegation to services.
