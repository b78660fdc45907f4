"""HTTP routers mounted by ``tutor_catalog.main``."""

from .admin import router as admin_router
from .exam import router as exam_router
from .universities import router as universities_router

__all__ = ["admin_router", "exam_router", "universities_router"]
