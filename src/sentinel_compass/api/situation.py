"""预警消息流、灾情点位与接收人目录查询接口。"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request, status

from sentinel_compass.notifications import RecipientDirectory
from sentinel_compass.situation import AlertFeed, IncidentBoard

router = APIRouter(tags=["situation"])


def _require_alert_feed(request: Request) -> AlertFeed:
    feed = getattr(request.app.state, "alert_feed", None)
    if feed is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "alert feed unavailable")
    return feed


@router.get("/alerts")
async def list_alerts(request: Request) -> Dict[str, Any]:
    feed = _require_alert_feed(request)
    return {
        "items": [alert.to_dict() for alert in feed.list()],
        "unread": feed.unread_count(),
    }


@router.post("/alerts/read-all")
async def mark_all_alerts_read(request: Request) -> Dict[str, Any]:
    feed = _require_alert_feed(request)
    changed = feed.mark_all_read()
    return {"marked": changed, "unread": feed.unread_count()}


@router.post("/alerts/{alert_id}/read")
async def mark_alert_read(alert_id: str, request: Request) -> Dict[str, Any]:
    feed = _require_alert_feed(request)
    try:
        alert = feed.mark_read(alert_id)
    except KeyError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"alert {alert_id} not found") from exc
    return alert.to_dict()


@router.get("/incidents")
async def list_incidents(request: Request) -> Dict[str, Any]:
    board: IncidentBoard | None = getattr(request.app.state, "incident_board", None)
    if board is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "incident board unavailable")
    return {"items": [incident.to_dict() for incident in board.list()]}


@router.get("/directory")
async def directory_summary(request: Request) -> Dict[str, Any]:
    directory: RecipientDirectory | None = getattr(request.app.state, "directory", None)
    if directory is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "recipient directory unavailable")
    return directory.summary()
