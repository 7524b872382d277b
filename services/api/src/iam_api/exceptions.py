"""应用异常处理注册。

领域错误按 `ErrorKind` 映射状态码，协议异常与参数校验错误沿用同一错误结构。
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from iam_api.core.errors import ErrorKind, IAMError, SessionError
from iam_api.utils.response import DEFAULT_ERROR_MESSAGE, error_payload

logger = logging.getLogger("iam_api.errors")

UNPROCESSABLE_STATUS = 422
_RETRY_LATER = "请稍后重试，若持续失败请联系管理员。"

# 领域错误 -> (状态码, 错误码, 建议)。
_DOMAIN_ERROR_MAPPING: dict[ErrorKind, tuple[int, str, str]] = {
    ErrorKind.INVALID_INPUT: (status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", "请检查必填字段后重试。"),
    ErrorKind.ALREADY_EXISTS: (status.HTTP_409_CONFLICT, "ALREADY_EXISTS", "请更换邮箱或用户名后重试。"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "NOT_FOUND", "请确认资源 ID 是否正确，或资源是否已被删除。"),
    ErrorKind.INVALID_CREDENTIALS: (status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "请确认登录标识与密码。"),
    ErrorKind.EXPIRED: (status.HTTP_401_UNAUTHORIZED, "SESSION_EXPIRED", "会话已过期，请重新登录。"),
    ErrorKind.CANCELED: (status.HTTP_503_SERVICE_UNAVAILABLE, "REQUEST_CANCELED", "请求已超时或被取消，请稍后重试。"),
    ErrorKind.ENTROPY_FAILURE: (status.HTTP_500_INTERNAL_SERVER_ERROR, "ENTROPY_FAILURE", _RETRY_LATER),
    ErrorKind.HASHING_FAILURE: (status.HTTP_500_INTERNAL_SERVER_ERROR, "HASHING_FAILURE", _RETRY_LATER),
}

# 协议异常 -> (错误码, 默认提示)。
_HTTP_DEFAULTS: dict[int, tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("BAD_REQUEST", "请求参数不合法。"),
    status.HTTP_401_UNAUTHORIZED: ("UNAUTHORIZED", "未登录或登录状态已失效。"),
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", "请求资源不存在。"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", "请求方法不被支持。"),
    status.HTTP_409_CONFLICT: ("CONFLICT", "请求与当前数据状态冲突。"),
    UNPROCESSABLE_STATUS: ("VALIDATION_ERROR", "请求参数校验失败。"),
}


def domain_error_status(exc: IAMError) -> tuple[int, str, str]:
    """把领域错误映射为传输层状态码、错误码与建议。"""
    status_code, code, suggestion = _DOMAIN_ERROR_MAPPING[exc.kind]
    if isinstance(exc, SessionError) and exc.kind is ErrorKind.NOT_FOUND:
        # 会话不存在对调用方而言就是未认证。
        return status.HTTP_401_UNAUTHORIZED, "SESSION_NOT_FOUND", "请重新登录并携带有效会话令牌。"
    return status_code, code, suggestion


async def iam_error_handler(request: Request, exc: IAMError):
    """将领域错误包装为标准错误结构。"""
    status_code, code, suggestion = domain_error_status(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("request failed kind=%s path=%s", exc.kind.value, request.url.path)
    return JSONResponse(
        status_code=status_code,
        content=error_payload(
            request,
            code=code,
            message=exc.message,
            details={"status_code": status_code, "reason": exc.kind.value, "suggestion": suggestion},
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """将协议异常统一包装为标准错误结构。"""
    code, message = _HTTP_DEFAULTS.get(exc.status_code, ("HTTP_ERROR", "请求处理失败。"))
    details: dict[str, object] = {"status_code": exc.status_code, "reason": code.lower()}
    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code") or code)
        message = str(exc.detail.get("message") or message)
        details.update({key: value for key, value in exc.detail.items() if key not in {"code", "message"}})
    elif isinstance(exc.detail, str) and exc.detail:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(request, code=code, message=message, details=details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """统一处理请求参数校验错误。"""
    normalized_errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=UNPROCESSABLE_STATUS,
        content=error_payload(
            request,
            code="VALIDATION_ERROR",
            message="请求参数校验失败。",
            details={
                "status_code": UNPROCESSABLE_STATUS,
                "reason": "validation_error",
                "suggestion": "请根据错误字段提示修正请求参数后重试。",
                "errors": normalized_errors,
            },
        ),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    """处理未捕获异常，避免内部细节泄露。"""
    logger.exception("unexpected error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            request,
            code="INTERNAL_ERROR",
            message=DEFAULT_ERROR_MESSAGE,
            details={
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "reason": "unexpected_exception",
                "suggestion": "请稍后重试，若持续失败请联系管理员并提供 request_id。",
            },
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """集中注册异常处理器。"""
    app.exception_handler(IAMError)(iam_error_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
