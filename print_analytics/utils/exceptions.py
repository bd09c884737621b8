from typing import Any, Dict, List, Optional


class PrintAnalyticsError(Exception):
    """Base exception for the 3D Printing Analytics application"""
    pass

class ValidationError(PrintAnalyticsError):
    """Raised when input validation fails"""

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

class NotFoundError(PrintAnalyticsError):
    """Raised when a record does not exist in the store"""
    pass

class AuthorizationError(PrintAnalyticsError):
    """Raised when the admin credential is missing, invalid or expired"""
    pass

class RateLimitError(PrintAnalyticsError):
    """Raised when a client exceeds its request budget"""
    pass

class ConfigurationError(PrintAnalyticsError):
    """Raised when there's a configuration error"""
    pass

class StorageError(PrintAnalyticsError):
    """Raised when the persistent store fails"""
    pass
