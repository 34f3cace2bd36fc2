"""JWT validation for Bearer tokens issued by the identity provider."""

import logging
import os
from typing import Optional

import jwt
from fastapi import HTTPException, status

from .models import User

logger = logging.getLogger(__name__)


class JWTValidator:
    """
    Validates signed JWTs and maps their claims to a User.

    Claims:
        sub: user identifier (required)
        email, name, picture: optional profile data
        roles: optional list of role names
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    def validate_token(self, token: str) -> User:
        """
        Decode and verify a token.

        Raises:
            HTTPException: 401 if the token is expired, malformed or has no subject
        """
        options = {"require": ["sub", "exp"]}
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options if self.audience else {**options, "verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token expired.",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected invalid token: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return User(
            user_id=str(claims["sub"]),
            email=claims.get("email"),
            name=claims.get("name"),
            roles=list(roles),
            picture=claims.get("picture"),
        )


_validator: Optional[JWTValidator] = None


def get_validator() -> Optional[JWTValidator]:
    """Get or create the global validator; None when no secret is configured."""
    global _validator
    if _validator is None:
        secret = os.environ.get("AUTH_JWT_SECRET")
        if not secret:
            logger.error("AUTH_JWT_SECRET is not set - cannot validate tokens")
            return None
        _validator = JWTValidator(
            secret=secret,
            algorithm=os.environ.get("AUTH_JWT_ALGORITHM", "HS256"),
            audience=os.environ.get("AUTH_JWT_AUDIENCE") or None,
        )
    return _validator
