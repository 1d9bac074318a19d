"""Route modules."""

from .jobs import router as jobs_router
from .transcriptions import router as transcriptions_router

__all__ = ["jobs_router", "transcriptions_router"]
