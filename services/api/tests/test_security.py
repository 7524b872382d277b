import base64
import secrets

import pytest

from iam_api.core import security as security_module
from iam_api.core.config import get_settings
from iam_api.core.errors import CryptoError, ErrorKind
from iam_api.core.security import (
    extract_bearer_token,
    generate_session_token,
    hash_password,
    verify_password,
)


def _failing_token_bytes(_nbytes):
    raise OSError("entropy source unavailable")


def test_password_hash_and_verify():
    password_hash = hash_password("StrongPassw0rd!")
    assert verify_password("StrongPassw0rd!", password_hash)
    assert not verify_password("wrong-password", password_hash)


def test_password_hash_is_salted_and_uses_configured_cost():
    first = hash_password("same-password")
    second = hash_password("same-password")

    assert first != second
    algorithm, iterations, _, _ = first.split("$")
    assert algorithm == "pbkdf2_sha256"
    assert int(iterations) == get_settings().auth_password_hash_iterations


def test_verify_password_reads_cost_from_hash(monkeypatch):
    password_hash = hash_password("StrongPassw0rd!", iterations=1200)
    monkeypatch.setenv("IAM_AUTH_PASSWORD_HASH_ITERATIONS", "2000")
    get_settings.cache_clear()

    assert verify_password("StrongPassw0rd!", password_hash)


@pytest.mark.parametrize(
    "stored",
    [
        "",
        "not-a-hash",
        "md5$1000$c2FsdA==$ZGlnZXN0",
        "pbkdf2_sha256$abc$c2FsdA==$ZGlnZXN0",
        "pbkdf2_sha256$0$c2FsdA==$ZGlnZXN0",
        "pbkdf2_sha256$1000$***$ZGlnZXN0",
    ],
)
def test_verify_password_rejects_malformed_hash(stored):
    assert verify_password("anything", stored) is False


def test_hash_password_fails_when_salt_source_unavailable(monkeypatch):
    monkeypatch.setattr(security_module.secrets, "token_bytes", _failing_token_bytes)

    with pytest.raises(CryptoError) as exc:
        hash_password("StrongPassw0rd!")
    assert exc.value.kind is ErrorKind.HASHING_FAILURE


def test_session_token_is_url_safe_and_carries_32_bytes():
    token = generate_session_token()

    assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
    padded = token + "=" * (-len(token) % 4)
    assert len(base64.urlsafe_b64decode(padded)) == 32


def test_session_tokens_are_unique():
    tokens = {generate_session_token() for _ in range(10_000)}
    assert len(tokens) == 10_000


def test_session_token_fails_without_entropy(monkeypatch):
    monkeypatch.setattr(secrets, "token_bytes", _failing_token_bytes)

    with pytest.raises(CryptoError) as exc:
        generate_session_token()
    assert exc.value.kind is ErrorKind.ENTROPY_FAILURE


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc123", "abc123"),
        ("bearer abc123", "abc123"),
        ("  Bearer   abc123  ", "abc123"),
        ("abc123", "abc123"),
        ("Bearer", None),
        ("Bearer a b", None),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected
