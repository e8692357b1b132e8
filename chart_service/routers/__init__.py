"""API routers package."""

from .charts import router as charts_router

__all__ = ["charts_router"]
