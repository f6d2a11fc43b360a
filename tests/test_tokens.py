"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers:
  - bcrypt hashing: salted, default cost 12, rejects empty/non-string input
  - verify_password: match, mismatch, malformed digest never raises
  - TokenIssuer: round trip, uniqueness per issue, tampering, wrong key,
    expiry, garbage input, missing identity claim
"""

from __future__ import annotations

import pytest
from jose import jwt

from auth.models import TokenClaims
from auth.tokens import BCRYPT_ROUNDS, TokenIssuer, hash_password, verify_password

SECRET = "tokens-test-secret-0123456789abcdef0123456"
TEST_ROUNDS = 4


class TestPasswordHashing:
    def test_default_cost_is_12(self) -> None:
        """Production hashes use bcrypt cost 12 -- visible in the digest prefix."""
        assert BCRYPT_ROUNDS == 12
        digest = hash_password("secret1")
        assert digest.startswith("$2b$12$")

    def test_hash_is_salted(self) -> None:
        """Two hashes of the same password differ but both verify."""
        a = hash_password("secret1", rounds=TEST_ROUNDS)
        b = hash_password("secret1", rounds=TEST_ROUNDS)
        assert a != b
        assert verify_password("secret1", a)
        assert verify_password("secret1", b)

    def test_hash_never_contains_plaintext(self) -> None:
        assert "secret1" not in hash_password("secret1", rounds=TEST_ROUNDS)

    @pytest.mark.parametrize("bad", ["", None, 123])
    def test_hash_rejects_invalid_input(self, bad) -> None:
        with pytest.raises(ValueError):
            hash_password(bad, rounds=TEST_ROUNDS)

    def test_verify_wrong_password(self) -> None:
        digest = hash_password("secret1", rounds=TEST_ROUNDS)
        assert verify_password("secret2", digest) is False

    @pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$12$short"])
    def test_verify_malformed_digest_returns_false(self, digest: str) -> None:
        """A malformed digest is a mismatch, never an exception."""
        assert verify_password("secret1", digest) is False

    def test_verify_non_string_digest_returns_false(self) -> None:
        assert verify_password("secret1", None) is False  # type: ignore[arg-type]

    def test_long_password_hashes_and_verifies(self) -> None:
        """Passwords past bcrypt's 72-byte window are accepted, not rejected."""
        long_pw = "x" * 200
        digest = hash_password(long_pw, rounds=TEST_ROUNDS)
        assert verify_password(long_pw, digest)


class TestTokenIssuer:
    def test_round_trip(self, tokens: TokenIssuer) -> None:
        """verify(issue(id, email)) returns the same identity."""
        token = tokens.issue(42, "alice@x.com")
        assert tokens.verify(token) == TokenClaims(user_id=42, email="alice@x.com")

    def test_round_trip_without_email(self, tokens: TokenIssuer) -> None:
        assert tokens.verify(tokens.issue(7)) == TokenClaims(user_id=7, email=None)

    def test_tokens_for_same_identity_differ(self, tokens: TokenIssuer) -> None:
        """Back-to-back tokens for the same user are never identical."""
        assert tokens.issue(1, "a@b.co") != tokens.issue(1, "a@b.co")

    def test_expiry_is_24_hours(self, tokens: TokenIssuer) -> None:
        claims = jwt.get_unverified_claims(tokens.issue(1, "a@b.co"))
        assert claims["exp"] - claims["iat"] == 24 * 60 * 60
        assert claims["sub"] == "1"

    def test_expired_token_is_invalid(self) -> None:
        expired = TokenIssuer(SECRET, expire_seconds=-60)
        assert expired.verify(expired.issue(1, "a@b.co")) is None

    def test_wrong_key_is_invalid(self, tokens: TokenIssuer) -> None:
        other = TokenIssuer("another-secret-key-0123456789abcdef0123")
        assert tokens.verify(other.issue(1, "a@b.co")) is None

    def test_tampered_signature_is_invalid(self, tokens: TokenIssuer) -> None:
        token = tokens.issue(1, "a@b.co")
        head, payload, sig = token.split(".")
        flipped = ("A" if sig[0] != "A" else "B") + sig[1:]
        assert tokens.verify(f"{head}.{payload}.{flipped}") is None

    @pytest.mark.parametrize("garbage", ["", "not.a.token", "abc", "a.b", None])
    def test_malformed_token_is_invalid(self, tokens: TokenIssuer, garbage) -> None:
        assert tokens.verify(garbage) is None

    def test_token_without_user_id_is_invalid(self, tokens: TokenIssuer) -> None:
        """A correctly signed token lacking the user_id claim is rejected."""
        token = jwt.encode({"sub": "1"}, SECRET, algorithm="HS256")
        assert TokenIssuer(SECRET).verify(token) is None

    def test_empty_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenIssuer("")
