"""请求级依赖。

职责:
1. 从 `app.state` 取出进程级服务。
2. 取出中间件挂载的操作上下文。
3. 解析 Authorization 头并校验会话。
"""

from fastapi import Depends, Header, HTTPException, Request, status

from iam_api.core.context import OperationContext
from iam_api.core.security import extract_bearer_token
from iam_api.domain.entities import Session
from iam_api.services import AuthService, ServiceContainer, UserService

MISSING_TOKEN = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail={"code": "MISSING_TOKEN", "message": "missing authorization token"},
    headers={"WWW-Authenticate": "Bearer"},
)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_auth_service(services: ServiceContainer = Depends(get_services)) -> AuthService:
    return services.auth


def get_user_service(services: ServiceContainer = Depends(get_services)) -> UserService:
    return services.users


def get_operation_context(request: Request) -> OperationContext:
    """返回当前请求的操作上下文，中间件未挂载时返回不限时上下文。"""
    ctx = getattr(request.state, "operation_context", None)
    if isinstance(ctx, OperationContext):
        return ctx
    return OperationContext()


def get_bearer_token(authorization: str | None = Header(default=None, alias="Authorization")) -> str:
    """提取会话令牌，缺失时返回 401。"""
    token = extract_bearer_token(authorization)
    if not token:
        raise MISSING_TOKEN
    return token


def get_current_session(
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
) -> Session:
    """校验当前请求的会话令牌。"""
    return auth.validate_session(token, ctx)
