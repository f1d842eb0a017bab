from bookkeeping.routers.auth import router as auth_router
from bookkeeping.routers.dashboard import router as dashboard_router
from bookkeeping.routers.expenses import router as expenses_router
from bookkeeping.routers.health import router as health_router
from bookkeeping.routers.inventory import router as inventory_router
from bookkeeping.routers.products import router as products_router
from bookkeeping.routers.sales import router as sales_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "expenses_router",
    "health_router",
    "inventory_router",
    "products_router",
    "sales_router",
]
