from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from dayflow.config import settings

logger = logging.getLogger(__name__)

ANONYMOUS_UID = "anonymous"

_bearer = HTTPBearer(auto_error=False)


class AuthError(Exception):
    """Raised when an identity token cannot be trusted."""


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None
    anonymous: bool = False


TokenVerifier = Callable[[str], dict[str, Any]]


def verify_google_token(token: str) -> dict[str, Any]:
    """Verify a Google-issued ID token and return its claims."""

    if not settings.google_client_id:
        raise AuthError("GOOGLE_CLIENT_ID is not configured")
    try:
        return id_token.verify_oauth2_token(
            token, google_requests.Request(), settings.google_client_id
        )
    except (ValueError, GoogleAuthError) as exc:
        raise AuthError(str(exc)) from exc


class Authenticator:
    """Maps a bearer token onto the user that owns the session."""

    def __init__(
        self,
        *,
        verifier: TokenVerifier | None = None,
        allow_anonymous: bool | None = None,
    ) -> None:
        self._verify = verifier or verify_google_token
        self._allow_anonymous = (
            settings.allow_anonymous if allow_anonymous is None else allow_anonymous
        )

    def authenticate(self, token: str | None) -> AuthenticatedUser:
        if not token:
            if self._allow_anonymous:
                return AuthenticatedUser(uid=ANONYMOUS_UID, anonymous=True)
            raise AuthError("missing bearer token")

        claims = self._verify(token)
        uid = claims.get("sub")
        if not uid:
            raise AuthError("token has no subject")
        return AuthenticatedUser(uid=str(uid), email=claims.get("email"))


_authenticator: Authenticator | None = None


def get_authenticator() -> Authenticator:
    global _authenticator
    if _authenticator is None:
        _authenticator = Authenticator()
    return _authenticator


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    authenticator: Authenticator = Depends(get_authenticator),
) -> AuthenticatedUser:
    token = credentials.credentials if credentials else None
    try:
        return authenticator.authenticate(token)
    except AuthError as exc:
        logger.info("Rejected request: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
