"""API route modules."""

from renovo.api.routes.health import router as health_router
from renovo.api.routes.invoices import router as invoices_router

__all__ = [
    "health_router",
    "invoices_router",
]
