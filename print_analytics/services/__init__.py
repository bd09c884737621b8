from .storage import StorageBackend, create_storage
from .record_service import RecordService
from .auth_service import AuthService

__all__ = ["StorageBackend", "create_storage", "RecordService", "AuthService"]
