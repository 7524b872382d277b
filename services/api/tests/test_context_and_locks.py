import threading
import time

import pytest

from iam_api.core.context import OperationContext, ensure_context
from iam_api.core.errors import ErrorKind, OperationCanceled
from iam_api.core.locks import ReadWriteLock


def test_context_without_deadline_never_expires():
    ctx = OperationContext()

    assert not ctx.cancelled
    assert ctx.deadline is None
    ctx.raise_if_cancelled("noop")


def test_context_cancel_raises_canceled_kind():
    ctx = OperationContext()
    ctx.cancel()

    with pytest.raises(OperationCanceled) as exc:
        ctx.raise_if_cancelled("register")
    assert exc.value.kind is ErrorKind.CANCELED
    assert exc.value.operation == "register"


def test_context_deadline_expires():
    ctx = OperationContext.with_timeout(0.01)
    time.sleep(0.05)

    assert ctx.cancelled
    with pytest.raises(OperationCanceled):
        ctx.raise_if_cancelled("login")


@pytest.mark.parametrize("seconds", [None, 0, -1])
def test_with_timeout_non_positive_means_unbounded(seconds):
    assert OperationContext.with_timeout(seconds).deadline is None


def test_ensure_context_keeps_given_context():
    ctx = OperationContext()
    assert ensure_context(ctx) is ctx
    assert isinstance(ensure_context(None), OperationContext)


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=2)

    def reader():
        with lock.read():
            # 三个读者必须能同时处于临界区，否则屏障超时。
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)
    assert not inside.broken


def test_writer_excludes_readers_and_writers():
    lock = ReadWriteLock()
    active = {"readers": 0, "writers": 0}
    violations = []
    guard = threading.Lock()

    def writer():
        for _ in range(50):
            with lock.write():
                with guard:
                    active["writers"] += 1
                    if active["writers"] > 1 or active["readers"]:
                        violations.append("writer overlap")
                with guard:
                    active["writers"] -= 1

    def reader():
        for _ in range(50):
            with lock.read():
                with guard:
                    active["readers"] += 1
                    if active["writers"]:
                        violations.append("reader during write")
                with guard:
                    active["readers"] -= 1

    threads = [threading.Thread(target=writer) for _ in range(4)] + [
        threading.Thread(target=reader) for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert violations == []
