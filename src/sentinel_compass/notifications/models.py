"""通知分发相关的数据结构定义。"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ActionKind(str, Enum):
    """应急动作类型，对应四个操作按钮。"""

    EVACUATION = "evacuation"
    ALERT = "alert"
    RESOURCE_REQUEST = "resource_request"
    ALL_CLEAR = "all_clear"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]

    @property
    def reaches_region(self) -> bool:
        """是否面向区域内全部设备（公众范围）。"""
        return self in (ActionKind.ALERT, ActionKind.ALL_CLEAR)


_ACTION_LABELS: Dict[ActionKind, str] = {
    ActionKind.EVACUATION: "Evacuation",
    ActionKind.ALERT: "Alert",
    ActionKind.RESOURCE_REQUEST: "Resources Request",
    ActionKind.ALL_CLEAR: "All Clear",
}


class ChannelKind(str, Enum):
    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self is not NotificationStatus.PENDING


class InvalidTransition(RuntimeError):
    """记录已处于终态后再次变更。"""


class SendFailure(RuntimeError):
    """单条发送未成功（返回 False、抛出异常或超时）。"""

    def __init__(self, channel: ChannelKind, target: str, reason: str) -> None:
        super().__init__(f"{channel.value} to {target} failed: {reason}")
        self.channel = channel
        self.target = target
        self.reason = reason


@dataclass(frozen=True)
class ScenarioContext:
    """分发时的场景上下文。"""

    region: str
    alert_message: Optional[str] = None
    resources_needed: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.region, str) or not self.region.strip():
            raise ValueError("region must be a non-empty string")
        object.__setattr__(self, "region", self.region.strip())
        object.__setattr__(self, "resources_needed", tuple(self.resources_needed))


@dataclass(frozen=True)
class RecipientCount:
    type: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "count": self.count}


@dataclass(frozen=True)
class SendAttempt:
    """批次中计划的一次发送。"""

    channel: ChannelKind
    target: str
    recipient: str
    message: str
    subject: Optional[str] = None


@dataclass(frozen=True)
class DeliveryResult:
    channel: ChannelKind
    target: str
    recipient: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "target": self.target,
            "recipient": self.recipient,
            "success": self.success,
            "error": self.error,
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class NotificationRecord:
    """单个分发批次的状态记录：pending → success | error，只转换一次。"""

    id: str
    action: ActionKind
    region: str
    recipients: Tuple[RecipientCount, ...]
    status: NotificationStatus = NotificationStatus.PENDING
    timestamp: str = field(default_factory=_utc_now_iso)
    completed_at: Optional[str] = None
    error: Optional[str] = None

    def resolve(self, status: NotificationStatus, *, error: Optional[str] = None) -> None:
        if self.status.terminal:
            raise InvalidTransition(f"record {self.id} already {self.status.value}")
        if not status.terminal:
            raise InvalidTransition(f"record {self.id} cannot move back to {status.value}")
        self.status = status
        self.error = error
        self.completed_at = _utc_now_iso()

    def snapshot(self) -> "NotificationRecord":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.value,
            "actionLabel": self.action.label,
            "region": self.region,
            "status": self.status.value,
            "recipients": [item.to_dict() for item in self.recipients],
            "timestamp": self.timestamp,
            "completedAt": self.completed_at,
            "error": self.error,
        }


@dataclass(frozen=True)
class DispatchBatch:
    """已登记但尚未执行的批次。"""

    record: NotificationRecord
    attempts: Tuple[SendAttempt, ...]


@dataclass(frozen=True)
class DispatchOutcome:
    """批次结果：聚合状态供界面使用，逐条明细供运维诊断。"""

    record: NotificationRecord
    deliveries: Tuple[DeliveryResult, ...]

    @property
    def succeeded(self) -> bool:
        return self.record.status is NotificationStatus.SUCCESS

    @property
    def failures(self) -> List[DeliveryResult]:
        return [item for item in self.deliveries if not item.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "deliveries": [item.to_dict() for item in self.deliveries],
            "sent": sum(1 for item in self.deliveries if item.success),
            "failed": len(self.failures),
        }
