"""JWKS (JSON Web Key Set) service for Supabase JWT verification.

This module handles fetching, caching, and managing Supabase's public keys
used for JWT signature verification.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JWKSService:
    """Service for fetching and caching Supabase JWKS keys.

    Keys are kept in memory for ``cache_ttl`` seconds; a lock keeps
    concurrent requests from refetching at the same time.
    """

    def __init__(self, supabase_url: str, cache_ttl: int = 3600, timeout: int = 30):
        """Initialize JWKS service.

        Args:
            supabase_url: Supabase project URL
            cache_ttl: Cache time-to-live in seconds
            timeout: HTTP request timeout in seconds
        """
        self.supabase_url = supabase_url.rstrip("/")
        self.jwks_url = f"{self.supabase_url}/auth/v1/.well-known/jwks.json"
        self.cache_ttl = cache_ttl
        self.timeout = timeout

        self._keys_cache: Optional[Dict[str, Dict[str, Any]]] = None
        self._cache_timestamp: Optional[float] = None
        self._lock = asyncio.Lock()

    async def get_keys(self) -> Dict[str, Dict[str, Any]]:
        """Get JWKS keys, using cache if valid.

        Returns:
            Dictionary mapping key IDs to raw JWK dictionaries

        Raises:
            RuntimeError: If keys cannot be fetched
        """
        async with self._lock:
            if self._is_cache_valid():
                return dict(self._keys_cache)

            LOGGER.info("Fetching fresh JWKS keys from Supabase")
            keys = await self._fetch_keys()
            self._keys_cache = dict(keys)
            self._cache_timestamp = time.time()
            return keys

    async def get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        keys = await self.get_keys()
        return keys.get(kid)

    def _is_cache_valid(self) -> bool:
        if self._keys_cache is None or self._cache_timestamp is None:
            return False
        return (time.time() - self._cache_timestamp) < self.cache_ttl

    async def _fetch_keys(self) -> Dict[str, Dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.jwks_url)
        except httpx.HTTPError as e:
            LOGGER.error(f"Network error fetching JWKS: {e}")
            raise RuntimeError(f"Failed to fetch JWKS keys: {e}") from e

        if response.status_code != 200:
            raise RuntimeError(f"JWKS endpoint returned {response.status_code}: {response.text}")

        try:
            data = response.json()
            keys = {key["kid"]: key for key in data.get("keys", []) if "kid" in key}
        except (ValueError, TypeError, KeyError) as e:
            LOGGER.error(f"Error parsing JWKS response: {e}")
            raise RuntimeError(f"Invalid JWKS response: {e}") from e

        LOGGER.info(f"Successfully fetched {len(keys)} JWKS keys")
        return keys
