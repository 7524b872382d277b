"""用户管理接口。"""

from fastapi import APIRouter, Depends, Path, Query, Request, status

from iam_api.api.auth import user_payload
from iam_api.core.context import OperationContext
from iam_api.dependencies import get_current_session, get_operation_context, get_user_service
from iam_api.domain.entities import Session
from iam_api.schemas.common import ErrorResponse, PaginationMeta, SuccessResponse
from iam_api.schemas.user import UserData, UserDeleteData, UserUpdateRequest
from iam_api.services import UserService
from iam_api.utils.response import success

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    summary="查询用户列表",
    description="按偏移分页返回用户；limit 未传或为 0 时默认 10 条。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[UserData]],
    responses={400: {"model": ErrorResponse}},
)
def list_users(
    request: Request,
    offset: int = Query(default=0, description="起始偏移量。"),
    limit: int = Query(default=0, description="分页大小，0 表示使用默认值。"),
    users: UserService = Depends(get_user_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """分页查询用户。"""
    page = users.list_users(offset, limit, ctx)
    return success(
        request,
        [user_payload(user) for user in page.items],
        meta={"pagination": PaginationMeta.model_validate(page).model_dump()},
    )


@router.patch(
    "/me",
    summary="更新我的资料",
    description="更新当前登录用户的邮箱、用户名或密码，未传字段保持不变。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def update_me(
    payload: UserUpdateRequest,
    request: Request,
    session: Session = Depends(get_current_session),
    users: UserService = Depends(get_user_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """更新当前用户资料。"""
    user = users.update_user(
        session.user_id,
        email=payload.email,
        username=payload.username,
        password=payload.password,
        ctx=ctx,
    )
    return success(request, user_payload(user))


@router.delete(
    "/me",
    summary="注销账号",
    description="删除当前登录用户，并撤销其全部会话。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserDeleteData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_me(
    request: Request,
    session: Session = Depends(get_current_session),
    users: UserService = Depends(get_user_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """删除当前用户。"""
    removed = users.delete_user(session.user_id, ctx)
    return success(request, {"deleted": True, "revoked_sessions": removed})


@router.get(
    "/{user_id}",
    summary="查询用户详情",
    description="按用户 ID 返回用户资料。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserData],
    responses={404: {"model": ErrorResponse}},
)
def get_user(
    request: Request,
    user_id: str = Path(..., description="目标用户 ID。"),
    users: UserService = Depends(get_user_service),
    ctx: OperationContext = Depends(get_operation_context),
):
    """查询单个用户。"""
    return success(request, user_payload(users.get_user(user_id, ctx)))
