"""健康检查接口。"""

from fastapi import APIRouter, Depends, Request, status

from iam_api.core.context import OperationContext
from iam_api.dependencies import get_operation_context, get_services
from iam_api.schemas.common import ErrorResponse, SuccessResponse
from iam_api.schemas.responses import HealthStatusData
from iam_api.services import ServiceContainer
from iam_api.utils.response import success

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    summary="存活探针",
    description="用于容器编排系统检测服务进程是否存活。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def live(request: Request):
    """仅表示进程存活，不校验存储。"""
    return success(request, {"status": "ok"})


@router.get(
    "/ready",
    summary="就绪探针",
    description="通过两个存储的只读操作检测服务是否具备对外提供能力。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def ready(
    request: Request,
    services: ServiceContainer = Depends(get_services),
    ctx: OperationContext = Depends(get_operation_context),
):
    """执行最轻量的存储读操作验证存储可用。"""
    services.repositories.users.count(ctx)
    services.repositories.sessions.get_by_user("", ctx)
    return success(request, {"status": "ready"})
