"""
Identity token verification.

Clients sign in with Firebase Authentication and send the ID token as
`Authorization: Bearer <token>`. Tokens are RS256 JWTs signed with Google's
rotating securetoken keys; PyJWT fetches and caches the public keys.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import jwt

from .config import FIREBASE_JWKS_URL, Settings
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
INVALID_TOKEN_MESSAGE = "Unauthorized: Invalid token"


@dataclass(frozen=True)
class AuthenticatedUser:
    """The verified caller."""

    uid: str
    email: str | None = None


class TokenVerifier(ABC):
    """Turns a bearer token into an AuthenticatedUser."""

    @abstractmethod
    def verify(self, token: str) -> AuthenticatedUser:
        """
        Verify a bearer token.

        Raises:
            AuthenticationError: If the token is not valid
        """
        ...

    def anonymous(self) -> AuthenticatedUser | None:
        """Identity for requests that carry no token (None: unauthenticated)."""
        return None


class FirebaseTokenVerifier(TokenVerifier):
    """
    Verifies Firebase ID tokens.

    Checks the RS256 signature against the published keys, the audience
    (project id), the issuer and the expiry.
    """

    def __init__(
        self,
        project_id: str,
        jwks_url: str = FIREBASE_JWKS_URL,
        key_resolver: Callable[[str], Any] | None = None,
    ):
        """
        Initialize verifier.

        Args:
            project_id: Firebase project id (the expected audience)
            jwks_url: JWKS endpoint for the signing keys
            key_resolver: Maps a token to its verification key; defaults to
                a PyJWKClient lookup by `kid`
        """
        self.project_id = project_id
        self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
        self._jwks_client = jwt.PyJWKClient(jwks_url) if key_resolver is None else None
        self._key_resolver = key_resolver or self._signing_key

    def _signing_key(self, token: str) -> Any:
        return self._jwks_client.get_signing_key_from_jwt(token).key

    def verify(self, token: str) -> AuthenticatedUser:
        if not self.project_id:
            logger.error("FIREBASE_PROJECT_ID is not set; cannot verify tokens")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)

        try:
            key = self._key_resolver(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self.project_id,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.info(f"Rejected identity token: {e}")
            raise AuthenticationError(INVALID_TOKEN_MESSAGE) from e

        uid = claims.get("sub")
        if not isinstance(uid, str) or not uid:
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)
        return AuthenticatedUser(uid=uid, email=claims.get("email"))


class DevTokenVerifier(TokenVerifier):
    """Accepts any token and returns a fixed development identity."""

    def __init__(self, user_id: str = "dev-user-123"):
        self.user = AuthenticatedUser(uid=user_id, email="dev@example.com")

    def verify(self, token: str) -> AuthenticatedUser:
        return self.user

    def anonymous(self) -> AuthenticatedUser:
        return self.user


def build_token_verifier(settings: Settings) -> TokenVerifier:
    """Pick the verifier for this deployment: dev identity or Firebase."""
    if settings.dev_mode:
        logger.warning(f"DEV_MODE is on; every request is {settings.dev_user_id}")
        return DevTokenVerifier(settings.dev_user_id)
    return FirebaseTokenVerifier(settings.firebase_project_id, settings.firebase_jwks_url)


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer ...` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
