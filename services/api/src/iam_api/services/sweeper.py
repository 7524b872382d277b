"""过期会话后台清理。"""

import logging
from threading import Event, Thread

from iam_api.services.auth import AuthService

logger = logging.getLogger("iam_api.sweeper")


class SessionSweeper:
    """按固定周期调用 `AuthService.sweep_expired_sessions` 的守护线程。

    会话校验本身已经惰性处理过期，这里只负责存储卫生。
    """

    def __init__(self, auth_service: AuthService, interval_seconds: float) -> None:
        self.auth_service = auth_service
        self.interval_seconds = interval_seconds
        self._stop = Event()
        self._thread: Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name="iam-session-sweeper", daemon=True)
        self._thread.start()
        logger.info("session sweeper started interval=%ss", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("session sweeper stopped")

    def run_once(self) -> int:
        return self.auth_service.sweep_expired_sessions()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("session sweep failed")
