"""ORM 模型导出集合。"""

from iam_api.models.base import Base
from iam_api.models.session import SessionRecord
from iam_api.models.user import UserRecord

__all__ = [
    "Base",
    "SessionRecord",
    "UserRecord",
]
