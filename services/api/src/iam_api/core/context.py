"""操作上下文：取消信号与截止时间。"""

from threading import Event
from time import monotonic

from iam_api.core.errors import OperationCanceled


class OperationContext:
    """随调用链下传的取消信号。

    服务层与存储层在产生副作用之前调用 `raise_if_cancelled`，
    保证被取消的操作不会留下半写入的记录。
    """

    def __init__(self, *, deadline: float | None = None) -> None:
        # 基于 time.monotonic 的绝对截止时刻，None 表示不限时。
        self.deadline = deadline
        self._cancelled = Event()

    @classmethod
    def with_timeout(cls, seconds: float | None) -> "OperationContext":
        """按相对时长构造上下文，非正数表示不限时。"""
        if seconds is None or seconds <= 0:
            return cls()
        return cls(deadline=monotonic() + seconds)

    def cancel(self) -> None:
        """显式取消。"""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.deadline is not None and monotonic() >= self.deadline

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCanceled(operation)


def ensure_context(ctx: OperationContext | None) -> OperationContext:
    """未传入上下文时返回一个永不过期的上下文。"""
    return ctx if ctx is not None else OperationContext()
