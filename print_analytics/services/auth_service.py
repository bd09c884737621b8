"""
Authentication service for the shared admin credential

The admin secret only ever exists on the server as a bcrypt hash. A correct
password is exchanged for a short-lived HS256 token carrying ``role: admin``.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from ..utils.exceptions import AuthorizationError, ConfigurationError
from ..utils.timeutils import to_iso
from .storage import StorageBackend

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class AuthService:
    """
    Service for admin login, token issue and token verification
    """

    def __init__(
        self,
        storage: StorageBackend,
        jwt_secret: str,
        admin_password_hash: Optional[str] = None,
        algorithm: str = "HS256",
        token_ttl_seconds: int = 3600,
    ):
        """
        Initialize authentication service

        Args:
            storage: Backend receiving the auth log
            jwt_secret: HMAC key used to sign tokens
            admin_password_hash: bcrypt hash of the admin password
        """
        if not jwt_secret:
            raise ConfigurationError("JWT secret is required")
        self.storage = storage
        self.jwt_secret = jwt_secret
        self.admin_password_hash = admin_password_hash
        self.algorithm = algorithm
        self.token_ttl_seconds = token_ttl_seconds

    @classmethod
    def from_config(cls, config: Dict[str, Any], storage: StorageBackend) -> "AuthService":
        auth_config = config["auth"]
        return cls(
            storage=storage,
            jwt_secret=auth_config["jwt_secret"],
            admin_password_hash=auth_config.get("admin_password_hash"),
            algorithm=auth_config.get("jwt_algorithm", "HS256"),
            token_ttl_seconds=auth_config.get("token_ttl_seconds", 3600),
        )

    async def check_password(self, password: str) -> bool:
        """Compare against the stored bcrypt hash without blocking the loop"""
        if not self.admin_password_hash:
            logger.warning("Admin login attempted but no password hash is configured")
            return False
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw,
                password.encode("utf-8"),
                self.admin_password_hash.encode("utf-8"),
            )
        except ValueError as e:
            logger.error(f"Configured admin password hash is invalid: {e}")
            return False

    def issue_token(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Sign a new admin token

        Returns:
            Dictionary with ``token`` and ``expires_at``
        """
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self.token_ttl_seconds)
        payload = {
            "role": ADMIN_ROLE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=self.algorithm)
        return {"token": token, "expires_at": expires_at}

    def verify_token(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Decode and check a token

        Raises:
            AuthorizationError: missing, malformed, wrongly signed, expired or
                not an admin token
        """
        if not token:
            raise AuthorizationError("Access token required")
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthorizationError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            raise AuthorizationError("Invalid token")

        if claims.get("role") != ADMIN_ROLE:
            raise AuthorizationError("Invalid token")
        return claims

    async def login(self, password: Optional[str], ip: str, user_agent: Optional[str] = None,
                    action: Optional[str] = None) -> Dict[str, Any]:
        """
        Exchange the admin password for a token

        Every attempt is written to the auth log, successful or not.
        """
        success = bool(password) and await self.check_password(password)

        await self.record_attempt(ip, user_agent, action or "login", success)

        if not success:
            logger.warning(f"Failed admin login from {ip}")
            raise AuthorizationError("Invalid credentials")

        logger.info(f"Admin login from {ip}")
        return self.issue_token()

    async def record_attempt(self, ip: str, user_agent: Optional[str], action: str, success: bool) -> None:
        entry = {
            "timestamp": to_iso(datetime.now(timezone.utc)),
            "action": action,
            "success": success,
            "ip": ip,
            "userAgent": user_agent,
        }
        try:
            await self.storage.append_auth_log(entry)
        except Exception as e:
            # The login outcome must not depend on the audit write
            logger.error(f"Failed to write auth log: {e}")
