from __future__ import annotations

import pytest
from google.auth.exceptions import TransportError

from dayflow import auth as auth_module
from dayflow.auth import ANONYMOUS_UID, AuthError, Authenticator


def _verifier(claims: dict):
    def verify(token: str) -> dict:
        if token != "good-token":
            raise AuthError("bad signature")
        return claims

    return verify


def test_valid_token_maps_to_subject() -> None:
    auth = Authenticator(
        verifier=_verifier({"sub": "user-123", "email": "jane@example.com"}),
        allow_anonymous=False,
    )

    user = auth.authenticate("good-token")

    assert user.uid == "user-123"
    assert user.email == "jane@example.com"
    assert not user.anonymous


def test_invalid_token_is_rejected() -> None:
    auth = Authenticator(verifier=_verifier({"sub": "user-123"}), allow_anonymous=True)
    with pytest.raises(AuthError):
        auth.authenticate("forged")


def test_token_without_subject_is_rejected() -> None:
    auth = Authenticator(verifier=_verifier({"email": "x@example.com"}), allow_anonymous=False)
    with pytest.raises(AuthError):
        auth.authenticate("good-token")


def test_missing_token_depends_on_anonymous_mode() -> None:
    strict = Authenticator(verifier=_verifier({}), allow_anonymous=False)
    relaxed = Authenticator(verifier=_verifier({}), allow_anonymous=True)

    with pytest.raises(AuthError):
        strict.authenticate(None)
    user = relaxed.authenticate(None)
    assert user.uid == ANONYMOUS_UID
    assert user.anonymous


def test_certificate_fetch_failure_is_auth_error(monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise TransportError("could not fetch certificates")

    monkeypatch.setattr(auth_module.settings, "google_client_id", "client-id")
    monkeypatch.setattr(auth_module.id_token, "verify_oauth2_token", fail)

    with pytest.raises(AuthError):
        auth_module.verify_google_token("some-token")
