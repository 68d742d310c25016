"""
resto_api.utils

Small pure helpers shared across layers.
"""

# Package marker.
