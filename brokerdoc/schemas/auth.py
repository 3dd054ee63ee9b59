"""Authentication schemas for Supabase JWT tokens."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field


class JWTClaims(BaseModel):
    """JWT claims extracted from Supabase access token."""

    sub: str = Field(..., description="Subject (user ID)")
    email: EmailStr = Field(..., description="User email")
    role: str = Field(default="authenticated", description="User role")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    iss: str = Field(..., description="Token issuer")

    # Optional Supabase-specific claims
    aud: Optional[str] = Field(None, description="Audience")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")
    session_id: Optional[str] = Field(None, description="Session ID")


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    id: str = Field(..., description="Supabase user ID")
    email: EmailStr = Field(..., description="User email")
    role: str = Field(default="user", description="User role")

    full_name: Optional[str] = Field(None, description="User's full name")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")

    @classmethod
    def from_claims(cls, claims: JWTClaims) -> "CurrentUser":
        """Build the caller identity from verified claims.

        Supabase puts ``authenticated`` in the ``role`` claim; application
        roles such as ``admin`` live in ``app_metadata.role``.
        """
        app_metadata = claims.app_metadata or {}
        user_metadata = claims.user_metadata or {}
        role = app_metadata.get("role") or claims.role or "user"
        if role == "authenticated":
            role = "user"
        return cls(
            id=claims.sub,
            email=claims.email,
            role=role,
            full_name=user_metadata.get("full_name"),
            app_metadata=claims.app_metadata,
            user_metadata=claims.user_metadata,
        )


__all__ = ["JWTClaims", "CurrentUser"]
