"""应用中间件注册。"""

from time import perf_counter
import uuid

from fastapi import FastAPI, Request

from iam_api.core.config import get_settings
from iam_api.core.context import OperationContext


async def request_id_middleware(request: Request, call_next):
    """注入请求追踪 ID，并通过响应头返回。"""
    request.state.request_id = str(uuid.uuid4())
    request.state.request_started_at = perf_counter()
    response = await call_next(request)
    response.headers["X-Request-Id"] = request.state.request_id
    elapsed = perf_counter() - request.state.request_started_at
    response.headers["X-Process-Time-Ms"] = str(round(elapsed * 1000, 2))
    return response


async def operation_context_middleware(request: Request, call_next):
    """为每个请求挂载带截止时间的操作上下文，下传到服务层与存储层。"""
    ctx = OperationContext.with_timeout(get_settings().request_timeout_seconds)
    request.state.operation_context = ctx
    try:
        return await call_next(request)
    finally:
        # 请求结束后仍在运行的工作线程据此尽早停止。
        ctx.cancel()


def register_middlewares(app: FastAPI) -> None:
    """集中注册中间件，后注册的先执行。"""
    app.middleware("http")(operation_context_middleware)
    app.middleware("http")(request_id_middleware)
