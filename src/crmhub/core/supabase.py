"""Supabase client management for FastAPI.

Supabase Auth is the authentication collaborator: it verifies the bearer
token and hands back the user identity. Everything past that point (row
access, team membership, ownership) is decided by the access policy, not by
database row-security rules.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client, create_client

from crmhub.core.config import get_settings
from crmhub.services.access_policy import Actor

logger = logging.getLogger(__name__)

# Module-level client instance
_supabase_client: Client | None = None


def get_supabase_client() -> Client:
    """Get the Supabase client using the anon key.

    Returns:
        Supabase Client configured with anon key.

    Raises:
        RuntimeError: If Supabase is not configured.
    """
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        if not settings.has_supabase_config():
            raise RuntimeError(
                "Supabase not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )
        logger.info("Supabase client initialized with anon key")

    return _supabase_client


async def verify_supabase_jwt(token: str) -> Actor | None:
    """Verify a Supabase JWT and extract the actor.

    Args:
        token: The JWT access token from Supabase Auth.

    Returns:
        Actor if the token is valid, None otherwise.
    """
    try:
        client = get_supabase_client()
        response = client.auth.get_user(token)
        if response and response.user:
            return Actor(id=response.user.id, email=response.user.email)
    except Exception as e:
        logger.warning(f"JWT verification failed: {e}")
    return None


def close_supabase_client() -> None:
    """Reset the module-level client. Called during application shutdown."""
    global _supabase_client

    _supabase_client = None
    logger.info("Supabase client closed")


# Security scheme for Swagger UI
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    """FastAPI dependency to get the authenticated actor.

    Raises:
        HTTPException: If not authenticated or token invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor = await verify_supabase_jwt(credentials.credentials)
    if not actor:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor
