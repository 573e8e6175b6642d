"""
按客户端的滑动窗口限流器

只有弹幕缓存未命中、需要访问上游时才会调用 admit()。
限流状态只保存在当前进程内：多实例部署或 serverless 冷启动之间不共享计数，
水平扩容后实际允许的请求数会按实例数成倍增加。
"""

import asyncio
import enum
import logging
import time
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

WINDOW_MS = 60 * 1000


class Admission(enum.Enum):
    ADMITTED = "admitted"
    REJECTED = "rejected"


def now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """
    每个客户端标识（通常是 IP）维护一个按时间顺序排列的请求时间戳列表。
    同一客户端的检查在各自的锁内串行执行，不同客户端之间互不阻塞。
    """

    def __init__(self, max_requests: int, window_ms: int = WINDOW_MS):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._history: Dict[str, List[int]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0

    def _prune(self, timestamps: List[int], now: int) -> List[int]:
        # 恰好一个窗口之前的请求不再计数
        return [ts for ts in timestamps if now - ts < self.window_ms]

    async def admit(self, client_id: str, now: Optional[int] = None) -> Admission:
        if not self.enabled:
            return Admission.ADMITTED

        now = now_ms() if now is None else now
        lock = self._locks.setdefault(client_id, asyncio.Lock())
        async with lock:
            recent = self._prune(self._history.get(client_id, []), now)

            if len(recent) >= self.max_requests:
                self._history[client_id] = recent
                logger.warning(
                    f"[Rate Limit] IP {client_id} 超出限流 ({len(recent)}/{self.max_requests} 次请求/分钟)"
                )
                return Admission.REJECTED

            recent.append(now)
            self._history[client_id] = recent
            logger.info(f"[Rate Limit] IP {client_id} 请求计数: {len(recent)}/{self.max_requests}")
            return Admission.ADMITTED

    def sweep(self, now: Optional[int] = None) -> int:
        """清理所有客户端的过期记录，并移除已没有有效记录的客户端。返回被移除的客户端数。"""
        now = now_ms() if now is None else now
        removed = 0
        for client_id in list(self._history):
            lock = self._locks.get(client_id)
            if lock is not None and lock.locked():
                continue
            recent = self._prune(self._history[client_id], now)
            if recent:
                self._history[client_id] = recent
            else:
                del self._history[client_id]
                self._locks.pop(client_id, None)
                removed += 1
        if removed:
            logger.debug(f"[Rate Limit] 已清理 {removed} 个过期的客户端记录")
        return removed

    def history_for(self, client_id: str) -> List[int]:
        return list(self._history.get(client_id, []))

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "maxRequests": self.max_requests,
            "windowSeconds": self.window_ms // 1000,
            "trackedClients": len(self._history),
        }
