# Services package
from storefront.services.auth_service import auth_service, AuthService
from storefront.services.catalog_service import catalog_service, CatalogService
from storefront.services.order_service import order_service, OrderService
from storefront.services.quote_service import quote_service, QuoteService
from storefront.services.booking_service import booking_service, BookingService
from storefront.services.message_service import message_service, MessageService
from storefront.services.account_service import account_service, AccountService
from storefront.services.cart_service import cart_service, CartService
from storefront.services.upload_service import upload_service, UploadService
from storefront.services.dashboard_service import dashboard_service, DashboardService

__all__ = [
    "auth_service",
    "AuthService",
    "catalog_service",
    "CatalogService",
    "order_service",
    "OrderService",
    "quote_service",
    "QuoteService",
    "booking_service",
    "BookingService",
    "message_service",
    "MessageService",
    "account_service",
    "AccountService",
    "cart_service",
    "CartService",
    "upload_service",
    "UploadService",
    "dashboard_service",
    "DashboardService",
]
