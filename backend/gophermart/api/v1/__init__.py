"""API v1 package.

- users: registration and login
- orders: order submission and listing
- balance: balance, withdrawals and withdrawal history
- health: database ping
"""

from fastapi import APIRouter

from gophermart.api.v1.balance import router as balance_router
from gophermart.api.v1.health import router as health_router
from gophermart.api.v1.orders import router as orders_router
from gophermart.api.v1.users import router as users_router

# User-facing API, mounted under /api
router = APIRouter()
router.include_router(users_router)
router.include_router(orders_router)
router.include_router(balance_router)

__all__ = ["router", "health_router"]
