"""
API v1 package.

Contains versioned API routes for account verification and admin management.
"""

from campusauth.api.v1.routes import router

__all__ = ["router"]
