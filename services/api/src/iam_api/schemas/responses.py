"""接口成功响应 `data` 字段中的通用结构。"""

from pydantic import Field

from iam_api.schemas.common import BaseSchema


class HealthStatusData(BaseSchema):
    """健康检查返回结构。"""

    status: str = Field(description="健康状态值，常见为 ok 或 ready。")
