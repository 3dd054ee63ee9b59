"""JWT verification utilities for Supabase authentication.

Supabase signs access tokens either with the project's shared secret
(HS256) or with an asymmetric key published at the project's JWKS
endpoint (RS256/ES256).
"""

import time
from typing import Optional

import jwt

from brokerdoc.core.jwks import JWKSService
from brokerdoc.schemas.auth import JWTClaims
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "exp", "iat", "iss"]


class JWTVerifier:
    """JWT verifier for Supabase access tokens."""

    def __init__(
        self,
        supabase_url: str,
        jwt_secret: str = "",
        jwks_service: Optional[JWKSService] = None,
    ):
        """Initialize JWT verifier.

        Args:
            supabase_url: Supabase project URL for issuer validation
            jwt_secret: Supabase JWT secret for HS256 verification
            jwks_service: Key source for RS256/ES256 tokens
        """
        self.supabase_url = supabase_url.rstrip("/")
        self.expected_issuer = f"{self.supabase_url}/auth/v1"
        self.jwt_secret = jwt_secret
        self.jwks_service = jwks_service or JWKSService(self.supabase_url)

        LOGGER.info(f"JWT verifier initialized for issuer: {self.expected_issuer}")

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a Supabase JWT token.

        Args:
            token: JWT access token from Authorization header

        Returns:
            Decoded and validated JWT claims

        Raises:
            jwt.InvalidTokenError: If token is invalid, expired or unverifiable
        """
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg")

            if alg == "HS256":
                if not self.jwt_secret:
                    raise jwt.InvalidTokenError(
                        "HS256 token received but SUPABASE_JWT_SECRET is not configured"
                    )
                key = self.jwt_secret
            elif alg in ("RS256", "ES256"):
                kid = header.get("kid")
                if not kid:
                    raise jwt.InvalidTokenError("JWT header missing 'kid' (key ID)")
                jwk = await self.jwks_service.get_key(kid)
                if not jwk:
                    raise jwt.InvalidTokenError(f"No matching key found for kid: {kid}")
                key = jwt.PyJWK(jwk, algorithm=alg).key
            else:
                raise jwt.InvalidTokenError(f"Unsupported algorithm: {alg}")

            payload = jwt.decode(
                token,
                key,
                algorithms=[alg],
                audience="authenticated",
                issuer=self.expected_issuer,
                options={"require": REQUIRED_CLAIMS},
            )
            claims = JWTClaims(**payload)

            LOGGER.debug(f"Successfully verified token for user: {claims.sub}")
            return claims

        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            LOGGER.warning(f"Invalid issuer: {e}")
            raise jwt.InvalidTokenError("Invalid token issuer") from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise
        except Exception as e:
            LOGGER.error(f"Unexpected error during token verification: {e}")
            raise jwt.InvalidTokenError("Token verification failed") from e

    def is_token_expired(self, claims: JWTClaims) -> bool:
        return claims.exp < int(time.time())
