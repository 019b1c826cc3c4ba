"""
app/api/routers package marker.
"""

from app.api.routers.score_import import router as score_import_router

__all__ = [
    "score_import_router",
]
