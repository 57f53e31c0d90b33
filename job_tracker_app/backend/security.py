"""
Token issuing, password hashing, and federated ID-token verification.
"""
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config.settings import get_settings
from .errors import AuthError

logger = logging.getLogger(__name__)

settings = get_settings()
SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Provider signing keys rotate roughly daily; an hour is well inside that
_JWKS_TTL_SECONDS = 3600
_jwks_cache: Dict[str, Any] = {"keys": None, "fetched_at": 0.0}


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode one of our own tokens. Raises ``AuthError`` on any defect."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError("Could not validate credentials")
    if not payload.get("sub") or not payload.get("jti"):
        raise AuthError("Could not validate credentials")
    return payload


def _fetch_provider_keys() -> Dict[str, Any]:
    now = time.monotonic()
    if _jwks_cache["keys"] and now - _jwks_cache["fetched_at"] < _JWKS_TTL_SECONDS:
        return _jwks_cache["keys"]

    try:
        response = requests.get(settings.google_certs_url, timeout=settings.google_certs_timeout)
        response.raise_for_status()
        keys = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch federated signing keys: %s", e)
        raise AuthError("Federated sign-in is temporarily unavailable", status_code=503)

    _jwks_cache.update(keys=keys, fetched_at=now)
    return keys


def verify_federated_token(id_token: str) -> Dict[str, Any]:
    """
    Verify a Google ID token and return its claims.

    The token must be signed by one of the provider's current keys, be issued
    for our client id, and carry a verified email address.
    """
    if not settings.federated_sign_in_enabled():
        raise AuthError("Federated sign-in is not configured", status_code=400)

    keys = _fetch_provider_keys()
    try:
        claims = jwt.decode(
            id_token,
            keys,
            algorithms=["RS256"],
            audience=settings.google_client_id,
            options={"verify_at_hash": False},
        )
    except JWTError as e:
        logger.warning("Rejected federated token: %s", e)
        raise AuthError("Invalid federated credentials")

    if claims.get("iss") not in settings.google_issuers:
        raise AuthError("Invalid federated credentials")
    if not claims.get("email") or not claims.get("email_verified", False):
        raise AuthError("Federated account has no verified email")
    return claims
