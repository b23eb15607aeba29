"""
API v1 package initialization.
"""

from tripflow.api.v1.trips import router as trips_router

__all__ = ["trips_router"]
