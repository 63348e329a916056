"""
Database helper utilities for handling user context and request authentication.
"""
import contextvars
import hashlib
import hmac
import os
import time
from typing import Mapping, Optional
from fastapi import HTTPException, status

INTERNAL_AUTH_USER_HEADER = "x-fintrack-user-id"
INTERNAL_AUTH_TIMESTAMP_HEADER = "x-fintrack-timestamp"
INTERNAL_AUTH_SIGNATURE_HEADER = "x-fintrack-signature"
DEFAULT_INTERNAL_AUTH_MAX_AGE_SECONDS = 60

_request_user_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_user_id",
    default=None,
)


def set_request_user_id(user_id: str) -> contextvars.Token:
    return _request_user_id.set(user_id)


def clear_request_user_id(token: contextvars.Token) -> None:
    _request_user_id.reset(token)


def get_request_user_id() -> Optional[str]:
    return _request_user_id.get()


def _get_internal_auth_secret() -> str:
    secret = os.getenv("INTERNAL_AUTH_SECRET", "").strip()
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal authentication secret is not configured.",
        )
    return secret


def _get_max_signature_age_seconds() -> int:
    raw_value = os.getenv(
        "INTERNAL_AUTH_MAX_AGE_SECONDS",
        str(DEFAULT_INTERNAL_AUTH_MAX_AGE_SECONDS),
    )
    try:
        parsed = int(raw_value)
        if parsed <= 0:
            return DEFAULT_INTERNAL_AUTH_MAX_AGE_SECONDS
        return parsed
    except ValueError:
        return DEFAULT_INTERNAL_AUTH_MAX_AGE_SECONDS


def build_signature_payload(
    method: str,
    path_with_query: str,
    user_id: str,
    timestamp: str,
) -> str:
    return "\n".join(
        [
            method.upper(),
            path_with_query,
            user_id,
            timestamp,
        ]
    )


def authenticate_internal_request_from_headers(
    method: str,
    path_with_query: str,
    headers: Mapping[str, str],
) -> str:
    user_id = headers.get(INTERNAL_AUTH_USER_HEADER, "").strip()
    timestamp = headers.get(INTERNAL_AUTH_TIMESTAMP_HEADER, "").strip()
    signature = headers.get(INTERNAL_AUTH_SIGNATURE_HEADER, "").strip()

    if not user_id or not timestamp or not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing internal authentication headers.",
        )

    try:
        timestamp_int = int(timestamp)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal authentication timestamp.",
        ) from exc

    now = int(time.time())
    max_age = _get_max_signature_age_seconds()
    if abs(now - timestamp_int) > max_age:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Expired internal authentication signature.",
        )

    secret = _get_internal_auth_secret()
    payload = build_signature_payload(method, path_with_query, user_id, timestamp)
    expected_signature = hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(expected_signature, signature):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal authentication signature.",
        )

    return user_id


def get_user_id(user_id: Optional[str] = None) -> str:
    """
    Get the user ID of the signed request being served.

    Args:
        user_id: Optional explicit user ID; must match the signed identity

    Returns:
        User ID string

    Raises:
        HTTPException: 401 without a signed identity, 403 on mismatch
    """
    request_user_id = get_request_user_id()
    if not request_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )

    if user_id and user_id != request_user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provided user_id does not match authenticated user.",
        )

    return request_user_id
