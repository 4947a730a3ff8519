"""应急动作通知 REST 接口。"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from sentinel_compass.notifications import (
    ActionKind,
    NotificationDispatcher,
    ScenarioContext,
)
from sentinel_compass.session import SessionState

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = structlog.get_logger(__name__)


class NotificationRequest(BaseModel):
    region: str = Field(..., min_length=1, description="区域名称")
    alert_message: Optional[str] = Field(None, alias="alertMessage", description="预警内容，仅 alert 使用")
    resources_needed: List[str] = Field(
        default_factory=list,
        alias="resourcesNeeded",
        description="所需资源，仅 resource_request 使用；缺省时取最近一次估算方案",
    )

    model_config = {"populate_by_name": True}


def _require_dispatcher(request: Request) -> NotificationDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "notification dispatcher unavailable")
    return dispatcher


def _require_session(request: Request) -> SessionState:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "session state unavailable")
    return session


def _build_context(action: ActionKind, payload: NotificationRequest, session: SessionState) -> ScenarioContext:
    resources = [item.strip() for item in payload.resources_needed if item.strip()]
    if action is ActionKind.RESOURCE_REQUEST and not resources:
        plan = session.last_plan
        if plan is None:
            raise HTTPException(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "resourcesNeeded is required when no resource plan has been estimated",
            )
        resources = list(plan.summary_lines())
    try:
        return ScenarioContext(
            region=payload.region,
            alert_message=payload.alert_message,
            resources_needed=tuple(resources),
        )
    except ValueError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc)) from exc


@router.post("/{action}")
async def trigger_action(
    action: ActionKind,
    payload: NotificationRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    wait: bool = Query(True, description="false 时立即返回 pending 记录，批次在后台执行"),
) -> Any:
    dispatcher = _require_dispatcher(request)
    session = _require_session(request)
    context = _build_context(action, payload, session)

    batch = dispatcher.prepare(action, context)
    if not wait:
        background_tasks.add_task(dispatcher.execute, batch)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=batch.record.to_dict())

    outcome = await dispatcher.execute(batch)
    return outcome.to_dict()


@router.get("")
async def list_notifications(request: Request) -> Dict[str, Any]:
    history = _require_session(request).history
    records = history.list()
    return {"items": [record.to_dict() for record in records], "total": len(records), "limit": history.limit}


@router.get("/{record_id}")
async def get_notification(record_id: str, request: Request) -> Dict[str, Any]:
    record = _require_session(request).history.get(record_id)
    if record is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"notification {record_id} not found")
    return record.to_dict()
