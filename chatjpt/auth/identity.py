"""
Identity resolution from bearer credentials.

Routes never see raw tokens: the API dependency hands the credential to
the configured resolver and receives an Identity or an AuthenticationError.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from ..models import Identity
from ..utils.logging import log_event


class AuthenticationError(Exception):
    """The credential is missing, malformed, expired or otherwise invalid."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class IdentityResolver(ABC):
    """Maps an opaque bearer credential to an Identity."""

    @abstractmethod
    async def resolve(self, token: str) -> Identity:
        """
        Verify a credential.

        Raises:
            AuthenticationError: If the credential cannot be verified
        """
        pass


class JWTIdentityResolver(IdentityResolver):
    """
    Verifies signed JWTs with python-jose.

    The uid comes from ``sub`` (or ``uid``/``user_id`` when ``sub`` is
    absent); optional ``email`` and ``name`` claims are passed through.
    """

    UID_CLAIMS = ("sub", "uid", "user_id")

    def __init__(
        self,
        secret: str,
        algorithms: Optional[List[str]] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]
        self.audience = audience
        self.issuer = issuer

    async def resolve(self, token: str) -> Identity:
        if not token:
            raise AuthenticationError("Missing bearer token")

        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            log_event(
                "auth_rejected",
                {"reason": type(e).__name__},
                level=logging.WARNING,
            )
            raise AuthenticationError("Invalid token") from e

        uid = next(
            (
                claims[claim]
                for claim in self.UID_CLAIMS
                if isinstance(claims.get(claim), str) and claims[claim]
            ),
            None,
        )
        if uid is None:
            log_event(
                "auth_rejected", {"reason": "missing_subject"}, level=logging.WARNING
            )
            raise AuthenticationError("Invalid token")

        return Identity(uid=uid, email=claims.get("email"), name=claims.get("name"))


def create_access_token(
    claims: Dict[str, Any],
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Sign a JWT; used by local tooling and tests to mint credentials."""
    now = datetime.now(timezone.utc)
    to_encode = {**claims, "iat": now, "exp": now + expires_in}
    return jwt.encode(to_encode, secret, algorithm=algorithm)
