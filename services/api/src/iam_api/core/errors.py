"""领域错误定义。

按子系统划分为封闭的错误族，调用方可依据 `kind` 穷举处理：
1. CredentialError：用户与凭据相关（参数非法、重复、不存在、凭据错误）。
2. SessionError：会话相关（不存在、已过期）。
3. CryptoError：底层密码学原语失败（熵源、哈希）。
4. OperationCanceled：调用方取消或请求超时。
"""

from enum import Enum


class ErrorKind(str, Enum):
    """错误类别。"""

    INVALID_INPUT = "invalid_input"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    EXPIRED = "expired"
    ENTROPY_FAILURE = "entropy_failure"
    HASHING_FAILURE = "hashing_failure"
    CANCELED = "canceled"


class IAMError(Exception):
    """身份认证服务错误基类。"""

    allowed_kinds: frozenset[ErrorKind] = frozenset(ErrorKind)

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        if kind not in self.allowed_kinds:
            raise ValueError(f"{type(self).__name__} does not accept kind {kind.value}")
        self.kind = kind
        self.message = message or kind.value.replace("_", " ")
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class CredentialError(IAMError):
    """用户与凭据错误。"""

    allowed_kinds = frozenset(
        {
            ErrorKind.INVALID_INPUT,
            ErrorKind.ALREADY_EXISTS,
            ErrorKind.NOT_FOUND,
            ErrorKind.INVALID_CREDENTIALS,
        }
    )


class SessionError(IAMError):
    """会话错误。"""

    allowed_kinds = frozenset({ErrorKind.NOT_FOUND, ErrorKind.EXPIRED})


class CryptoError(IAMError):
    """密码学原语错误，对当前操作始终是致命的。"""

    allowed_kinds = frozenset({ErrorKind.ENTROPY_FAILURE, ErrorKind.HASHING_FAILURE})


class OperationCanceled(IAMError):
    """操作在完成前被取消。"""

    allowed_kinds = frozenset({ErrorKind.CANCELED})

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(ErrorKind.CANCELED, f"{operation} canceled")


def user_not_found() -> CredentialError:
    return CredentialError(ErrorKind.NOT_FOUND, "user not found")


def user_already_exists() -> CredentialError:
    return CredentialError(ErrorKind.ALREADY_EXISTS, "user already exists")


def invalid_credentials() -> CredentialError:
    return CredentialError(ErrorKind.INVALID_CREDENTIALS, "invalid credentials")


def session_not_found() -> SessionError:
    return SessionError(ErrorKind.NOT_FOUND, "session not found")


def session_expired() -> SessionError:
    return SessionError(ErrorKind.EXPIRED, "session expired")
