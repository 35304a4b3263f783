"""Open Prices integration: session, authorized requests, enrichment."""

from .aggregation import PriceAggregationService
from .client import PricesClient
from .executor import AuthenticatedRequestExecutor
from .session import AuthSession, AuthSessionManager, AuthStatus

__all__ = [
    "AuthSession",
    "AuthSessionManager",
    "AuthStatus",
    "AuthenticatedRequestExecutor",
    "PricesClient",
    "PriceAggregationService",
]
