"""
Core storefront modules.
- database: SQLite with SQLAlchemy
- auth: bearer token and guest ID dependencies
- security: password hashing and token generation
- events: WebSocket event hub
- audit / metrics: observability
"""
from storefront.core.database import get_db, get_db_session, init_db

__all__ = [
    "get_db",
    "get_db_session",
    "init_db",
]
