"""API route modules for the claims rules backend.

This package contains focused routers that are registered with the main FastAPI app.
Each router handles a specific domain of functionality.

Routers:
- rules: Rule authoring, templates and evaluation
- claims: Final submission check for claims
"""

from .claims import router as claims_router
from .rules import router as rules_router

__all__ = ["claims_router", "rules_router"]
