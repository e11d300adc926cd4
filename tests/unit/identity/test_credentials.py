"""
Name: Credential Verifier Tests

Responsibilities:
  - Validate JWT verification outcomes (ok / expired / invalid / missing)
  - Validate legacy `userId` subject claim
  - Validate Authorization header parsing
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from tenant_guard.identity.credentials import (
    JwtCredentialVerifier,
    create_access_token,
    extract_bearer_token,
)
from tenant_guard.identity.errors import (
    ExpiredCredential,
    InvalidCredential,
    Unauthenticated,
)

pytestmark = pytest.mark.unit

SECRET = "unit-secret"


def _in_one_hour() -> int:
    return int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())


@pytest.fixture
def verifier() -> JwtCredentialVerifier:
    return JwtCredentialVerifier(SECRET)


class TestJwtCredentialVerifier:
    def test_valid_token_returns_subject(self, verifier):
        user_id = str(uuid4())
        token = create_access_token(user_id, secret=SECRET)

        credential = verifier.verify(token)

        assert credential.subject_id == user_id
        assert credential.expires_at is not None

    def test_expired_token_raises_expired_credential(self, verifier):
        token = create_access_token(
            str(uuid4()), secret=SECRET, expires_in=timedelta(minutes=-5)
        )

        with pytest.raises(ExpiredCredential):
            verifier.verify(token)

    def test_leeway_accepts_recently_expired_token(self):
        token = create_access_token(
            str(uuid4()), secret=SECRET, expires_in=timedelta(seconds=-5)
        )

        credential = JwtCredentialVerifier(SECRET, leeway_seconds=60).verify(token)

        assert credential.subject_id

    def test_token_without_exp_raises_invalid_credential(self, verifier):
        token = jwt.encode({"sub": str(uuid4())}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidCredential):
            verifier.verify(token)

    def test_wrong_signature_raises_invalid_credential(self, verifier):
        token = create_access_token(str(uuid4()), secret="other-secret")

        with pytest.raises(InvalidCredential):
            verifier.verify(token)

    def test_garbage_token_raises_invalid_credential(self, verifier):
        with pytest.raises(InvalidCredential):
            verifier.verify("not-a-jwt")

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing_token_raises_unauthenticated(self, verifier, token):
        with pytest.raises(Unauthenticated):
            verifier.verify(token)

    def test_legacy_user_id_claim_is_accepted(self, verifier):
        user_id = str(uuid4())
        token = jwt.encode({"userId": user_id, "exp": _in_one_hour()}, SECRET, algorithm="HS256")

        assert verifier.verify(token).subject_id == user_id

    def test_token_without_subject_raises_invalid_credential(self, verifier):
        token = jwt.encode({"role": "admin", "exp": _in_one_hour()}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidCredential):
            verifier.verify(token)

    def test_unexpected_algorithm_is_rejected(self, verifier):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": _in_one_hour()}, SECRET, algorithm="HS512"
        )

        with pytest.raises(InvalidCredential):
            verifier.verify(token)


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("  Bearer   abc  ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            ("Bearer    ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parsing(self, header, expected):
        assert extract_bearer_token(header) == expected
