"""
API v1 package.

Contains versioned API routes for the WorkDeck Auth API.
"""

from workdeck.api.v1.routes import router

__all__ = ["router"]
