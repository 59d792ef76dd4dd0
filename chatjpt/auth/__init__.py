"""
Bearer-token identity resolution.
"""

from .identity import (
    AuthenticationError,
    IdentityResolver,
    JWTIdentityResolver,
    create_access_token,
)

__all__ = [
    "AuthenticationError",
    "IdentityResolver",
    "JWTIdentityResolver",
    "create_access_token",
]
