"""
API v1 router aggregator.
"""
from fastapi import APIRouter

from storefront.api.v1 import (
    account,
    admin,
    auth,
    bookings,
    cart,
    dashboard,
    guest_quotes,
    health,
    messages,
    orders,
    public,
    quotes,
    uploads,
    ws,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include sub-routers
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(public.router)
api_router.include_router(quotes.router)
api_router.include_router(guest_quotes.router)
api_router.include_router(admin.router)
api_router.include_router(uploads.router)
api_router.include_router(bookings.router)
api_router.include_router(orders.router)
api_router.include_router(messages.router)
api_router.include_router(account.router)
api_router.include_router(cart.router)
api_router.include_router(dashboard.router)
api_router.include_router(ws.router)
