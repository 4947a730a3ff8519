"""会话内存状态：通知历史（新记录在前、有上限）与最近一次资源方案。"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Deque, List, Optional

import structlog

from sentinel_compass.estimation.models import ResourcePlan
from sentinel_compass.notifications.models import NotificationRecord

_logger = structlog.get_logger(__name__)

RecordListener = Callable[[NotificationRecord], None]


class NotificationHistory:
    """只在进程生命周期内存在的通知历史，写操作经同一把锁串行化。"""

    def __init__(self, limit: int = 100) -> None:
        if limit <= 0:
            raise ValueError("limit 必须大于 0")
        self._limit = limit
        self._records: Deque[NotificationRecord] = deque(maxlen=limit)
        self._lock = threading.Lock()
        self._listeners: List[RecordListener] = []

    @property
    def limit(self) -> int:
        return self._limit

    def add(self, record: NotificationRecord) -> None:
        with self._lock:
            self._records.appendleft(record)
        self._notify(record)

    def update(self, record: NotificationRecord) -> None:
        """记录状态已变更，通知订阅者。"""
        self._notify(record)

    def get(self, record_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record.snapshot()
        return None

    def list(self) -> List[NotificationRecord]:
        with self._lock:
            return [record.snapshot() for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def subscribe(self, listener: RecordListener) -> Callable[[], None]:
        """订阅记录变更，返回取消订阅函数。"""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, record: NotificationRecord) -> None:
        with self._lock:
            listeners = list(self._listeners)
            snapshot = record.snapshot()
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                # 订阅方异常不影响分发流程
                _logger.exception("history_listener_failed", record_id=record.id)


class SessionState:
    def __init__(self, *, history_limit: int = 100) -> None:
        self.history = NotificationHistory(limit=history_limit)
        self._last_plan: Optional[ResourcePlan] = None
        self._plan_lock = threading.Lock()

    @property
    def last_plan(self) -> Optional[ResourcePlan]:
        return self._last_plan

    def record_plan(self, plan: ResourcePlan) -> None:
        with self._plan_lock:
            self._last_plan = plan
