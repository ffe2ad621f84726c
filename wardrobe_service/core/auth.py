"""
Authentication Module
Identity provider interface, a MongoDB-backed implementation, and the
FastAPI dependency that resolves the current user from a bearer token.

The suggestion pipeline never touches this module; catalog routes only
need a known user id.
"""
import hmac
import hashlib
import logging
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import Depends, Header, HTTPException
from passlib.context import CryptContext

from wardrobe_service.config import get_settings
from wardrobe_service.core.errors import InvalidInput, StoreUnavailable
from wardrobe_service.core.validation import validate_credentials, validate_signup, validate_new_password
from wardrobe_service.db import mongo

logger = logging.getLogger(__name__)

# Configuration
SESSION_TTL_SECONDS = 7 * 24 * 3600
OTP_TTL_SECONDS = 3600

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Session change events
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"


class User:
    """Authenticated user representation."""

    def __init__(self, user_id: str, email: str, full_name: str, created_at: str):
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.created_at = created_at

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "created_at": self.created_at
        }


class Session:
    """Signed-in session. The access token is only ever shown to its owner."""

    def __init__(self, access_token: str, user: User, expires_at: int):
        self.access_token = access_token
        self.user = user
        self.expires_at = expires_at

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": "bearer",
            "expires_at": self.expires_at,
            "user": self.user.to_dict()
        }


SessionListener = Callable[[str, Optional[Session]], None]


# ==================== PASSWORD & TOKEN HELPERS ====================

def hash_password(password: str) -> str:
    """Bcrypt hash via passlib."""
    return pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    return pwd_context.verify(password, stored)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    """Six-digit one-time code."""
    return f"{secrets.randbelow(10 ** 6):06d}"


def log_otp_sender(email: str, code: str) -> None:
    """Development OTP delivery: writes the code to the service log."""
    logger.warning(f"No OTP sender configured - password reset code for {email}: {code}")


# ==================== IDENTITY PROVIDER ====================

class IdentityProvider(ABC):
    """Abstract identity/session provider."""

    def __init__(self):
        self._listeners: List[SessionListener] = []

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """
        Subscribe to session events.

        Returns:
            Callable that unsubscribes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    @abstractmethod
    def sign_up(self, email: str, password: str, full_name: str) -> User:
        """Register a new account."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a session."""

    @abstractmethod
    def sign_out(self, access_token: str) -> None:
        """Invalidate a session."""

    @abstractmethod
    def get_user(self, access_token: str) -> Optional[User]:
        """Resolve an access token to its user, or None if invalid/expired."""

    @abstractmethod
    def reset_password_for_email(self, email: str) -> None:
        """Issue a password-reset one-time code."""

    @abstractmethod
    def verify_otp(self, email: str, token: str) -> Session:
        """Exchange a valid one-time code for a recovery session."""

    @abstractmethod
    def update_password(self, access_token: str, new_password: str) -> User:
        """Change the password of the session's user."""


class MongoIdentityProvider(IdentityProvider):
    """IdentityProvider backed by MongoDB collections users, sessions, password_resets."""

    def __init__(self, otp_sender: Callable[[str, str], None] = log_otp_sender):
        super().__init__()
        self.otp_sender = otp_sender

    @staticmethod
    def _collection(name: str):
        collection = mongo.get_collection(name)
        if collection is None:
            raise StoreUnavailable("Identity backend unavailable. Is MongoDB running?")
        return collection

    @staticmethod
    def _to_user(doc: dict) -> User:
        return User(
            user_id=doc["user_id"],
            email=doc["email"],
            full_name=doc.get("full_name", ""),
            created_at=doc["created_at"]
        )

    def _start_session(self, user: User, event: str) -> Session:
        token = secrets.token_urlsafe(32)
        expires_at = int(time.time()) + SESSION_TTL_SECONDS

        self._collection("sessions").insert_one({
            "token_hash": hash_token(token),
            "user_id": user.user_id,
            "expires_at": expires_at
        })

        session = Session(access_token=token, user=user, expires_at=expires_at)
        self._notify(event, session)
        return session

    def sign_up(self, email: str, password: str, full_name: str) -> User:
        fields = validate_signup(email, password, full_name)
        users = self._collection("users")

        if users.find_one({"email": fields["email"]}):
            raise InvalidInput("User already registered", status_code=409)

        doc = {
            "user_id": secrets.token_hex(16),
            "email": fields["email"],
            "full_name": fields["full_name"],
            "password_hash": hash_password(password),
            "created_at": datetime.now(timezone.utc).isoformat()
        }
        users.insert_one(doc)
        logger.info(f"User created: {doc['user_id']}")

        return self._to_user(doc)

    def sign_in(self, email: str, password: str) -> Session:
        normalized = validate_credentials(email, password)
        doc = self._collection("users").find_one({"email": normalized})

        if not doc or not verify_password(password, doc["password_hash"]):
            raise InvalidInput("Invalid login credentials", status_code=401)

        return self._start_session(self._to_user(doc), SIGNED_IN)

    def sign_out(self, access_token: str) -> None:
        self._collection("sessions").delete_one({"token_hash": hash_token(access_token)})
        self._notify(SIGNED_OUT, None)

    def get_user(self, access_token: str) -> Optional[User]:
        session_doc = self._collection("sessions").find_one({"token_hash": hash_token(access_token)})
        if not session_doc or session_doc["expires_at"] < int(time.time()):
            return None

        doc = self._collection("users").find_one({"user_id": session_doc["user_id"]})
        return self._to_user(doc) if doc else None

    def reset_password_for_email(self, email: str) -> None:
        normalized = (email or "").strip().lower()
        doc = self._collection("users").find_one({"email": normalized})

        # Unknown addresses get the same silent success
        if not doc:
            logger.info("Password reset requested for unknown email")
            return

        code = generate_otp()
        self._collection("password_resets").update_one(
            {"email": normalized},
            {"$set": {"code_hash": hash_token(code), "expires_at": int(time.time()) + OTP_TTL_SECONDS}},
            upsert=True
        )
        self.otp_sender(normalized, code)

    def verify_otp(self, email: str, token: str) -> Session:
        normalized = (email or "").strip().lower()
        resets = self._collection("password_resets")
        reset = resets.find_one({"email": normalized})

        if (
            not reset
            or reset["expires_at"] < int(time.time())
            or not hmac.compare_digest(reset["code_hash"], hash_token(token or ""))
        ):
            raise InvalidInput("Token has expired or is invalid", status_code=401)

        resets.delete_one({"email": normalized})
        doc = self._collection("users").find_one({"email": normalized})
        if not doc:
            raise InvalidInput("Token has expired or is invalid", status_code=401)
        return self._start_session(self._to_user(doc), PASSWORD_RECOVERY)

    def update_password(self, access_token: str, new_password: str) -> User:
        validate_new_password(new_password)
        user = self.get_user(access_token)
        if user is None:
            raise InvalidInput("Invalid or expired session", status_code=401)

        self._collection("users").update_one(
            {"user_id": user.user_id},
            {"$set": {"password_hash": hash_password(new_password)}}
        )
        self._notify(USER_UPDATED, None)
        return user


# ==================== FASTAPI DEPENDENCIES ====================

_identity_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    """Get the shared identity provider (FastAPI dependency)."""
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = MongoIdentityProvider()
    return _identity_provider


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an "Authorization: Bearer <token>" header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider)
) -> User:
    """
    FastAPI dependency for authentication.

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If no token or invalid token
    """
    # Bypass auth for development
    if get_settings().bypass_auth:
        logger.warning("Auth bypass enabled - DEV MODE")
        return User(
            user_id="dev_user",
            email="dev@example.com",
            full_name="Development User",
            created_at=datetime.now(timezone.utc).isoformat()
        )

    token = bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing access token. Include 'Authorization: Bearer <token>' header.",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = provider.get_user(token)

    if not user:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired access token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.debug(f"Authenticated user: {user.user_id}")
    return user
