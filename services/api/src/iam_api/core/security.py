"""口令哈希、会话令牌与认证头解析工具。"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
import secrets

from iam_api.core.config import get_settings
from iam_api.core.errors import CryptoError, ErrorKind

PASSWORD_HASH_ALGORITHM = "pbkdf2_sha256"
PASSWORD_SALT_BYTES = 16

_BEARER_PATTERN = re.compile(r"^\s*Bearer\s+(\S+)\s*$", flags=re.IGNORECASE)


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """使用 PBKDF2-SHA256 生成带盐口令哈希。

    输出格式为 `pbkdf2_sha256$<iterations>$<salt_b64>$<digest_b64>`，
    校验时从哈希串自身读取参数，调整迭代次数不影响历史哈希。
    """
    rounds = iterations or get_settings().auth_password_hash_iterations
    try:
        salt = secrets.token_bytes(PASSWORD_SALT_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise CryptoError(ErrorKind.HASHING_FAILURE, "password salt unavailable") from exc
    try:
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    except (ValueError, OverflowError) as exc:
        raise CryptoError(ErrorKind.HASHING_FAILURE, "password hashing failed") from exc
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"{PASSWORD_HASH_ALGORITHM}${rounds}${salt_b64}${digest_b64}"


def verify_password(password: str, password_hash: str) -> bool:
    """校验口令是否匹配，不匹配或哈希串损坏均返回 False。"""
    try:
        algorithm, iterations_text, salt_b64, expected_digest_b64 = password_hash.split("$", 3)
        if algorithm != PASSWORD_HASH_ALGORITHM:
            return False
        iterations = int(iterations_text)
        if iterations <= 0:
            return False
        salt = base64.b64decode(salt_b64.encode("ascii"), validate=True)
        expected_digest = base64.b64decode(expected_digest_b64.encode("ascii"), validate=True)
    except (ValueError, TypeError, binascii.Error):
        return False

    actual_digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations,
    )
    return hmac.compare_digest(actual_digest, expected_digest)


def generate_session_token(nbytes: int | None = None) -> str:
    """生成 URL 安全的随机会话令牌。

    熵源不可用时直接失败，不回退到非密码学随机源。
    """
    size = nbytes or get_settings().auth_session_token_bytes
    try:
        raw = secrets.token_bytes(size)
    except (OSError, NotImplementedError) as exc:
        raise CryptoError(ErrorKind.ENTROPY_FAILURE, "secure random source unavailable") from exc
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def extract_bearer_token(authorization: str | None) -> str | None:
    """从 Authorization 头中提取令牌，兼容 `Bearer <token>` 与裸令牌两种写法。"""
    if not authorization or not authorization.strip():
        return None
    matched = _BEARER_PATTERN.match(authorization)
    if matched:
        return matched.group(1)
    candidate = authorization.strip()
    if candidate.lower() == "bearer" or " " in candidate:
        return None
    return candidate
