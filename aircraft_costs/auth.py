"""
Bearer token handling

The backend issues the access tokens; this module only reads their claims
to learn who is calling. When SUPABASE_JWT_SECRET is set the signature is
verified as well, otherwise the backend remains the authority and only the
expiry is checked locally.
"""

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt


class AuthError(Exception):
    """Raised for missing, malformed or expired access tokens"""


@dataclass(frozen=True)
class Identity:
    """Authenticated caller"""

    user_id: str
    access_token: str
    email: Optional[str] = None


def bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an Authorization header

    Raises:
        AuthError: Header missing or not a Bearer credential
    """
    scheme, _, token = (authorization or "").strip().partition(" ")
    # Auth schemes are case-insensitive
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Missing bearer token")
    return token.strip()


class TokenVerifier:
    """Reads user identity from backend-issued JWTs"""

    def __init__(self, secret: Optional[str] = None, leeway: int = 30):
        self.secret = secret if secret is not None else os.getenv("SUPABASE_JWT_SECRET")
        self.leeway = leeway

    @classmethod
    def from_environment(cls) -> "TokenVerifier":
        return cls()

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            if self.secret:
                return jwt.decode(
                    token,
                    self.secret,
                    algorithms=["HS256"],
                    options={"verify_aud": False},
                    leeway=self.leeway,
                )
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid token") from exc

        exp = claims.get("exp")
        if exp is not None and float(exp) + self.leeway < time.time():
            raise AuthError("Token expired")
        return claims

    def identify(self, authorization: Optional[str]) -> Identity:
        """
        Resolve the caller from an Authorization header

        Returns:
            Identity with the token's ``sub`` as user id

        Raises:
            AuthError: Token missing, invalid, expired or without a subject
        """
        token = bearer_token(authorization)
        claims = self.decode(token)
        subject = claims.get("sub")
        if not subject:
            raise AuthError("Token has no subject")
        return Identity(user_id=str(subject), access_token=token, email=claims.get("email"))
