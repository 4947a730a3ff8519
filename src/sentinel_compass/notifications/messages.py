"""按动作类型生成通知正文、邮件主题与推送标题。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ActionKind, ScenarioContext

DEFAULT_ALERT_MESSAGE = "Emergency situation reported"


@dataclass(frozen=True)
class ComposedMessage:
    body: str
    subject: str
    push_title: Optional[str] = None


def compose(action: ActionKind, context: ScenarioContext) -> ComposedMessage:
    region = context.region
    if action is ActionKind.EVACUATION:
        return ComposedMessage(
            body=f"URGENT: Evacuation required in {region}. Implement evacuation protocol immediately.",
            subject=f"URGENT EVACUATION: {region}",
        )
    if action is ActionKind.ALERT:
        alert_message = (context.alert_message or "").strip() or DEFAULT_ALERT_MESSAGE
        return ComposedMessage(
            body=f"ALERT: {alert_message} in {region}. Take appropriate action immediately.",
            subject=f"REGION ALERT: {region}",
            push_title="EMERGENCY ALERT",
        )
    if action is ActionKind.RESOURCE_REQUEST:
        resource_list = ", ".join(item.strip() for item in context.resources_needed if item.strip())
        return ComposedMessage(
            body=f"RESOURCE REQUEST: The following resources are needed in {region}: {resource_list}",
            subject=f"RESOURCE REQUEST: {region}",
        )
    return ComposedMessage(
        body=(
            f"ALL CLEAR: The emergency situation in {region} has been resolved. "
            "You may return to normal operations."
        ),
        subject=f"ALL CLEAR: {region}",
        push_title="ALL CLEAR",
    )
