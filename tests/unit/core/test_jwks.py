from unittest.mock import MagicMock, patch

import pytest

from brokerdoc.core.jwks import JWKSService

JWKS_BODY = {"keys": [{"kid": "k1", "kty": "EC", "crv": "P-256", "x": "x", "y": "y"}, {"kty": "RSA"}]}


@pytest.mark.asyncio
async def test_keys_are_fetched_once_within_ttl():
    service = JWKSService("https://test.supabase.co/", cache_ttl=3600)

    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200, json=lambda: JWKS_BODY)

        first = await service.get_key("k1")
        second = await service.get_key("k1")
        missing = await service.get_key("k2")

    assert first["crv"] == "P-256"
    assert second == first
    assert missing is None
    mock_get.assert_called_once_with("https://test.supabase.co/auth/v1/.well-known/jwks.json")


@pytest.mark.asyncio
async def test_expired_cache_refetches():
    service = JWKSService("https://test.supabase.co", cache_ttl=0)

    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=200, json=lambda: JWKS_BODY)
        await service.get_keys()
        await service.get_keys()

    assert mock_get.call_count == 2


@pytest.mark.asyncio
async def test_endpoint_error_raises():
    service = JWKSService("https://test.supabase.co")

    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = MagicMock(status_code=503, text="unavailable")
        with pytest.raises(RuntimeError, match="503"):
            await service.get_keys()
