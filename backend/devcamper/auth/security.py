"""
DevCamper Backend — Credential & Token Service
================================================

What:  Password hashing/verification, signed access tokens, and the
       forgot-password reset token.
How:   passlib CryptContext for salted one-way password hashes; PyJWT (HS256)
       for self-contained access tokens carrying {sub, iat, exp}.

Token model:
    Stateless. A token is valid iff its signature matches the configured
    secret and `exp` is in the future. There is no revocation list; logging
    out only clears the client-held cookie.
"""

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from passlib.context import CryptContext

from devcamper.config import settings
from devcamper.exceptions import InvalidToken, ValidationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ══════════════════════════════════════════════════════════════════════════
# Passwords
# ══════════════════════════════════════════════════════════════════════════

def hash_password(password: str) -> str:
    """Return a salted one-way hash of `password`. Empty input is rejected."""
    if not password:
        raise ValidationError(message="Please add a password", field="password")
    return pwd_context.hash(password)


def verify_password(password: Optional[str], stored_hash: Optional[str]) -> bool:
    """
    Compare a presented password with a stored hash.

    Returns False on mismatch, on empty input, and on a hash passlib cannot
    identify; it never raises for a bad credential.
    """
    if not password or not stored_hash:
        return False
    try:
        return pwd_context.verify(password, stored_hash)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False


# ══════════════════════════════════════════════════════════════════════════
# Access tokens
# ══════════════════════════════════════════════════════════════════════════

def issue_token(identity_id: uuid.UUID, expires_seconds: Optional[int] = None) -> str:
    """
    Sign a token for `identity_id` valid for `expires_seconds`
    (default: settings.jwt_expire_seconds).
    """
    now = datetime.now(timezone.utc)
    ttl = settings.jwt_expire_seconds if expires_seconds is None else expires_seconds
    payload = {
        "sub": str(identity_id),
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> uuid.UUID:
    """
    Verify a token and return the identity id it was issued for.

    Raises:
        InvalidToken: bad signature, malformed token, missing/garbled
                      subject, or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidToken(message="Token has expired") from e
    except jwt.PyJWTError as e:
        raise InvalidToken(context={"error_type": type(e).__name__}) from e

    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError as e:
        raise InvalidToken(message="Invalid token subject") from e


# ══════════════════════════════════════════════════════════════════════════
# Reset tokens
# ══════════════════════════════════════════════════════════════════════════

def hash_reset_token(plain: str) -> str:
    """sha256 hex digest; only the digest is ever stored."""
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str, datetime]:
    """
    Create a forgot-password token.

    Returns:
        (plain token for the email, digest to store, expiry timestamp)
    """
    plain = secrets.token_hex(20)
    expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.reset_token_expire_minutes
    )
    return plain, hash_reset_token(plain), expires_at
