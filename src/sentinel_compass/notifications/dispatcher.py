# Copyright 2025 msq
"""
通知扇出分发器

一次分发 = 一个批次：
1. 按动作类型从目录解析接收人（组长 + 组员；预警/解除另含全部区域设备）
2. 生成带区域名的消息
3. 逐个接收人顺序发送：每人先短信后邮件；区域设备 '+' 开头发短信，否则推送
4. 全部成功则批次 success，任一失败/异常/超时则整个批次 error
5. 记录在开始时以 pending 写入会话历史，结束时转为终态
"""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import TYPE_CHECKING, List, Optional, Tuple

import structlog

from sentinel_compass.logging import (
    dispatch_count_metric,
    dispatch_latency_metric,
    notification_send_metric,
)

from .channels import ChannelSender
from .directory import RecipientDirectory, is_phone_device
from .messages import compose
from .models import (
    ActionKind,
    ChannelKind,
    DeliveryResult,
    DispatchBatch,
    DispatchOutcome,
    InvalidTransition,
    NotificationRecord,
    NotificationStatus,
    RecipientCount,
    ScenarioContext,
    SendAttempt,
    SendFailure,
)

if TYPE_CHECKING:
    from sentinel_compass.session import NotificationHistory

GENERIC_FAILURE_MESSAGE = "Failed to notify one or more recipients"


class NotificationDispatcher:
    """按动作类型向固定组织层级扇出通知，并跟踪批次状态。"""

    def __init__(
        self,
        directory: RecipientDirectory,
        sender: ChannelSender,
        *,
        history: Optional[NotificationHistory] = None,
        send_timeout: Optional[float] = 10.0,
    ) -> None:
        if send_timeout is not None and send_timeout <= 0:
            raise ValueError("send_timeout 必须大于 0")
        self._directory = directory
        self._sender = sender
        self._history = history
        self._send_timeout = send_timeout
        self._sequence = itertools.count(1)
        self._logger = structlog.get_logger(__name__)

    @property
    def directory(self) -> RecipientDirectory:
        return self._directory

    def plan_attempts(self, action: ActionKind, context: ScenarioContext) -> Tuple[SendAttempt, ...]:
        """按目录声明顺序展开全部发送。"""

        message = compose(action, context)
        group = self._directory.group_for(action)
        attempts: List[SendAttempt] = []
        for contact in group.contacts():
            attempts.append(
                SendAttempt(
                    channel=ChannelKind.SMS,
                    target=contact.phone_number,
                    recipient=contact.name,
                    message=message.body,
                )
            )
            attempts.append(
                SendAttempt(
                    channel=ChannelKind.EMAIL,
                    target=contact.email,
                    recipient=contact.name,
                    message=message.body,
                    subject=message.subject,
                )
            )
        if action.reaches_region:
            for device in self._directory.region_devices():
                if is_phone_device(device):
                    attempts.append(
                        SendAttempt(channel=ChannelKind.SMS, target=device, recipient=device, message=message.body)
                    )
                else:
                    attempts.append(
                        SendAttempt(
                            channel=ChannelKind.PUSH,
                            target=device,
                            recipient=device,
                            message=message.body,
                            subject=message.push_title,
                        )
                    )
        return tuple(attempts)

    def recipient_summary(self, action: ActionKind) -> Tuple[RecipientCount, ...]:
        group = self._directory.group_for(action)
        summary = [
            RecipientCount(type="Team Lead", count=1),
            RecipientCount(type="Team Members", count=len(group.members)),
        ]
        if action.reaches_region:
            summary.append(RecipientCount(type="Region Devices", count=len(self._directory.region_devices())))
        return tuple(summary)

    def prepare(self, action: ActionKind | str, context: ScenarioContext) -> DispatchBatch:
        """登记 pending 记录并写入历史，此时调用方即可看到进行中状态。"""

        action = ActionKind(action)
        attempts = self.plan_attempts(action, context)
        record = NotificationRecord(
            id=self._next_id(),
            action=action,
            region=context.region,
            recipients=self.recipient_summary(action),
        )
        if self._history is not None:
            self._history.add(record)
        self._logger.info(
            "dispatch_prepared",
            record_id=record.id,
            action=action.value,
            region=context.region,
            planned_sends=len(attempts),
        )
        return DispatchBatch(record=record, attempts=attempts)

    async def execute(self, batch: DispatchBatch) -> DispatchOutcome:
        record = batch.record
        if record.status.terminal:
            raise InvalidTransition(f"record {record.id} already dispatched")

        started = time.perf_counter()
        deliveries: List[DeliveryResult] = []
        try:
            for attempt in batch.attempts:
                deliveries.append(await self._deliver(attempt))
        except BaseException:
            # 任务被取消时记录仍须落到终态，随后继续向上抛出
            record.resolve(NotificationStatus.ERROR, error=GENERIC_FAILURE_MESSAGE)
            self._logger.error(
                "dispatch_interrupted",
                record_id=record.id,
                action=record.action.value,
                completed=len(deliveries),
                total=len(batch.attempts),
            )
            if self._history is not None:
                self._history.update(record)
            dispatch_count_metric.labels(action=record.action.value, status=record.status.value).inc()
            raise

        failed = [item for item in deliveries if not item.success]
        if failed:
            record.resolve(NotificationStatus.ERROR, error=GENERIC_FAILURE_MESSAGE)
            self._logger.error(
                "dispatch_failed",
                record_id=record.id,
                action=record.action.value,
                failed=len(failed),
                total=len(deliveries),
            )
        else:
            record.resolve(NotificationStatus.SUCCESS)
            self._logger.info(
                "dispatch_completed",
                record_id=record.id,
                action=record.action.value,
                total=len(deliveries),
            )
        if self._history is not None:
            self._history.update(record)

        dispatch_count_metric.labels(action=record.action.value, status=record.status.value).inc()
        dispatch_latency_metric.labels(action=record.action.value).observe(time.perf_counter() - started)
        return DispatchOutcome(record=record, deliveries=tuple(deliveries))

    async def dispatch(self, action: ActionKind | str, context: ScenarioContext) -> DispatchOutcome:
        return await self.execute(self.prepare(action, context))

    async def _deliver(self, attempt: SendAttempt) -> DeliveryResult:
        try:
            accepted = await self._call_sender(attempt)
            if not accepted:
                raise SendFailure(attempt.channel, attempt.target, "rejected by channel")
        except asyncio.TimeoutError:
            failure = SendFailure(attempt.channel, attempt.target, f"timed out after {self._send_timeout}s")
            return self._failed(attempt, failure, outcome="timeout")
        except SendFailure as failure:
            return self._failed(attempt, failure, outcome="failure")
        except Exception as exc:
            failure = SendFailure(attempt.channel, attempt.target, str(exc) or type(exc).__name__)
            return self._failed(attempt, failure, outcome="failure")

        notification_send_metric.labels(channel=attempt.channel.value, outcome="success").inc()
        return DeliveryResult(
            channel=attempt.channel,
            target=attempt.target,
            recipient=attempt.recipient,
            success=True,
        )

    def _failed(self, attempt: SendAttempt, failure: SendFailure, *, outcome: str) -> DeliveryResult:
        notification_send_metric.labels(channel=attempt.channel.value, outcome=outcome).inc()
        self._logger.warning(
            "notification_send_failed",
            channel=attempt.channel.value,
            target=attempt.target,
            recipient=attempt.recipient,
            reason=failure.reason,
        )
        return DeliveryResult(
            channel=attempt.channel,
            target=attempt.target,
            recipient=attempt.recipient,
            success=False,
            error=str(failure),
        )

    async def _call_sender(self, attempt: SendAttempt) -> bool:
        if attempt.channel is ChannelKind.SMS:
            call = self._sender.send_sms(attempt.target, attempt.message)
        elif attempt.channel is ChannelKind.EMAIL:
            call = self._sender.send_email(attempt.target, attempt.subject or "", attempt.message)
        else:
            call = self._sender.send_push(attempt.target, attempt.subject or "", attempt.message)
        if self._send_timeout is None:
            return bool(await call)
        return bool(await asyncio.wait_for(call, timeout=self._send_timeout))

    def _next_id(self) -> str:
        return f"{int(time.time() * 1000)}-{next(self._sequence):04d}"
