"""
Offline-capable client that mirrors the analytics API
"""

from .api_client import (
    AnalyticsApiClient, ApiAuthError, ApiNotFoundError, ApiRequestError, ApiResponseError, ApiUnavailableError
)
from .controller import ClientController
from .local_cache import LocalCache, STORAGE_KEY
from .state import AppState, MutationStatus
from .sync import Mutation, SyncEngine

__all__ = [
    "AnalyticsApiClient",
    "ApiAuthError",
    "ApiNotFoundError",
    "ApiRequestError",
    "ApiResponseError",
    "ApiUnavailableError",
    "AppState",
    "ClientController",
    "LocalCache",
    "Mutation",
    "MutationStatus",
    "STORAGE_KEY",
    "SyncEngine",
]
