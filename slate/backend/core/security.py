"""
Security Utilities.

Session token verification and API key material.

Session tokens are issued by the external identity provider and only
verified here. API keys are the configured prefix followed by lowercase
hex (`sk_live_<64 hex>` by default) and are stored as their SHA-256 hex
digest.
"""

import hashlib
import hmac
import re
import secrets
from datetime import timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from slate.backend.core.config import get_app_config, get_settings
from slate.backend.core.exceptions import ExpiredSessionError, InvalidCredentialError
from slate.backend.core.logging import get_logger
from slate.backend.core.utils import utc_now

logger = get_logger(__name__)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a session token the way the identity provider does.

    The service never issues sessions to clients; this exists for the
    CLI and for tests.

    Args:
        data: Payload data to encode (at least `sub`)
        expires_delta: Optional custom expiration time
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt
    to_encode = data.copy()

    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=jwt_config.access_token_expire_minutes)

    to_encode.update({"exp": expire, "type": "access", "aud": jwt_config.audience})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=jwt_config.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        ExpiredSessionError: If the token has expired
        InvalidCredentialError: If the token is malformed, forged or has no subject
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[jwt_config.algorithm],
            audience=jwt_config.audience,
        )
    except ExpiredSignatureError as e:
        raise ExpiredSessionError() from e
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise InvalidCredentialError() from e

    if not payload.get("sub"):
        raise InvalidCredentialError()
    return payload


def hash_api_key(plain_key: str) -> str:
    """SHA-256 hex digest of an API key."""
    return hashlib.sha256(plain_key.encode("utf-8")).hexdigest()


def generate_api_key() -> tuple[str, str]:
    """
    Generate a new API key.

    Returns:
        Tuple of (full_key, hashed_key)
        - full_key: Show to user once
        - hashed_key: Store in database
    """
    key_config = get_app_config().security.api_keys
    full_key = f"{key_config.prefix}{secrets.token_hex(key_config.random_bytes)}"
    return full_key, hash_api_key(full_key)


def api_key_pattern() -> re.Pattern[str]:
    """The shape generate_api_key produces under the current configuration."""
    key_config = get_app_config().security.api_keys
    hex_length = key_config.random_bytes * 2
    return re.compile(rf"^{re.escape(key_config.prefix)}[0-9a-f]{{{hex_length}}}$")


def is_well_formed_api_key(plain_key: str) -> bool:
    """Whether the presented value has the API key shape."""
    return bool(api_key_pattern().match(plain_key))


def verify_api_key(plain_key: str, hashed_key: str) -> bool:
    """Compare an API key against its stored hash in constant time."""
    return hmac.compare_digest(hash_api_key(plain_key), hashed_key)
