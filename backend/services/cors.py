"""CORS header computation for the relay."""
from typing import Dict, List, Optional

from config import (
    CORS_ALLOWED_ORIGINS,
    CORS_ALLOWED_METHODS,
    CORS_ALLOWED_HEADERS,
    CORS_MAX_AGE,
)


def resolve_origin(origin: Optional[str], allowed_origins: List[str] = CORS_ALLOWED_ORIGINS) -> str:
    """Echo an allow-listed origin, otherwise fall back to the first allowed one."""
    if origin and origin in allowed_origins:
        return origin
    return allowed_origins[0]


def get_cors_headers(
    origin: Optional[str],
    allowed_origins: List[str] = CORS_ALLOWED_ORIGINS
) -> Dict[str, str]:
    """
    Build the CORS headers attached to every relay response.

    Args:
        origin: Value of the request's Origin header, if any
        allowed_origins: Allow-list; the first entry is the default

    Returns:
        Header name to value mapping
    """
    return {
        "Access-Control-Allow-Origin": resolve_origin(origin, allowed_origins),
        "Access-Control-Allow-Methods": CORS_ALLOWED_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOWED_HEADERS,
        "Access-Control-Max-Age": str(CORS_MAX_AGE),
    }
