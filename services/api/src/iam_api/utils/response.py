"""统一响应结构工具。

成功响应：`{request_id, data, meta}`；失败响应：`{request_id, error: {code, message, details}}`。
"""

from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from fastapi import Request

DEFAULT_ERROR_MESSAGE = "internal server error"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _request_id(request: Request) -> str:
    # 中间件未执行（如路由匹配前即失败）时返回空串。
    return str(getattr(request.state, "request_id", ""))


def _elapsed_ms(request: Request) -> int | None:
    started_at = getattr(request.state, "request_started_at", None)
    if not isinstance(started_at, float):
        return None
    return int((perf_counter() - started_at) * 1000)


def _request_meta(request: Request, extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "method": request.method.upper(),
        "path": request.url.path,
        "timestamp": _timestamp(),
    }
    if extra:
        meta.update(extra)
    return meta


def success(request: Request, data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """构造统一成功响应结构，`meta` 会合并到默认元信息之上。"""
    base = _request_meta(request, {"process_ms": _elapsed_ms(request)})
    return {
        "request_id": _request_id(request),
        "data": data,
        "meta": {**base, **(meta or {})},
    }


def error_payload(
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """构造统一错误响应结构。"""
    return {
        "request_id": _request_id(request),
        "error": {"code": code, "message": message, "details": _request_meta(request, details)},
    }
