"""
PriceBot Services - Shared infrastructure services.

- database: asyncpg pool manager with health checks and degraded mode
- persistence: conversations, cost events and rate lookups
- pricelists: PDF price-list catalog
- http_client: retryable httpx client for provider calls
"""

from .database import DatabaseManager, get_database, close_database

__all__ = ["DatabaseManager", "get_database", "close_database"]
