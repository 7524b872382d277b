"""认证接口。"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request, status

from iam_api.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_session,
    get_operation_context,
)
from iam_api.core.context import OperationContext
from iam_api.domain.entities import Session, User, utc_now
from iam_api.schemas.auth import (
    AuthLoginRequest,
    AuthLogoutData,
    AuthRegisterRequest,
    AuthSessionData,
    AuthSessionInfoData,
)
from iam_api.schemas.common import ErrorResponse, SuccessResponse
from iam_api.schemas.user import UserData
from iam_api.services import AuthService
from iam_api.utils.response import success

router = APIRouter(prefix="/auth", tags=["auth"])


def user_payload(user: User) -> dict[str, object]:
    """用户对外结构，剔除口令哈希。"""
    return UserData.model_validate(user).model_dump()


def _session_payload(session: Session, now: datetime | None = None) -> dict[str, object]:
    current = now or utc_now()
    return {
        "id": session.id,
        "user_id": session.user_id,
        "token": session.token,
        "token_type": "bearer",
        "expires_at": session.expires_at,
        "created_at": session.created_at,
        "expires_in": max(0, int((session.expires_at - current).total_seconds())),
    }


@router.post(
    "/register",
    summary="注册账号",
    description="使用邮箱、用户名与密码创建账号；邮箱与用户名全局唯一。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[UserData],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def register(
    payload: AuthRegisterRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """注册账号。"""
    user = auth.register(payload.email, payload.username, payload.password, ctx)
    return success(request, user_payload(user))


@router.post(
    "/login",
    summary="登录",
    description="使用邮箱或用户名加密码登录，返回 24 小时有效的会话令牌。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthSessionData],
    responses={401: {"model": ErrorResponse}},
)
def login(
    payload: AuthLoginRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """登录并签发会话令牌。"""
    session = auth.login(payload.email_or_username, payload.password, ctx)
    return success(request, _session_payload(session, auth.clock()))


@router.post(
    "/logout",
    summary="登出",
    description="删除 Authorization 头中令牌对应的会话；令牌已不存在时同样返回成功。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthLogoutData],
    responses={401: {"model": ErrorResponse}},
)
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """登出当前令牌。"""
    auth.logout(token, ctx)
    return success(request, {"logged_out": True})


@router.post(
    "/logout-all",
    summary="登出全部会话",
    description="撤销当前用户在所有设备上的会话。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthLogoutData],
    responses={401: {"model": ErrorResponse}},
)
def logout_all(
    request: Request,
    session: Session = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """撤销当前用户的全部会话。"""
    removed = auth.logout_all(session.user_id, ctx)
    return success(request, {"logged_out": True, "revoked_sessions": removed})


@router.get(
    "/session",
    summary="校验当前会话",
    description="校验 Authorization 头中的令牌，返回仍然有效的会话。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthSessionData],
    responses={401: {"model": ErrorResponse}},
)
def current_session(
    request: Request,
    session: Session = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
):
    """返回当前会话。"""
    return success(request, _session_payload(session, auth.clock()))


@router.get(
    "/sessions",
    summary="查询我的会话",
    description="返回当前用户的全部会话概要，不包含完整令牌。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[AuthSessionInfoData]],
    responses={401: {"model": ErrorResponse}},
)
def list_my_sessions(
    request: Request,
    session: Session = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """查询当前用户的会话列表。"""
    sessions = auth.list_sessions(session.user_id, ctx)
    data = [
        {
            "id": item.id,
            "user_id": item.user_id,
            "expires_at": item.expires_at,
            "created_at": item.created_at,
            "current": item.token == session.token,
        }
        for item in sorted(sessions, key=lambda item: item.created_at)
    ]
    return success(request, data)
