# Copyright 2025 msq
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

from sentinel_compass.api import notifications as notifications_api
from sentinel_compass.api import resources as resources_api
from sentinel_compass.api import situation as situation_api
from sentinel_compass.config import AppConfig
from sentinel_compass.container import build_services
from sentinel_compass.logging import clear_trace_id, configure_logging, set_trace_id
from sentinel_compass.notifications import ChannelSender, RecipientDirectory
from sentinel_compass.situation import AlertFeed, IncidentBoard, sample_alerts, sample_incidents

logger = structlog.get_logger(__name__)


# ========== Trace-ID中间件：自动注入请求追踪ID ==========
class TraceIDMiddleware(BaseHTTPMiddleware):
    """
    为每个HTTP请求注入trace-id到日志上下文

    1. 客户端传入 X-Trace-Id 请求头时复用
    2. 否则生成 UUID
    3. 响应头返回 X-Trace-Id
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        set_trace_id(trace_id)
        try:
            response = await call_next(request)
            response.headers["X-Trace-Id"] = trace_id
            return response
        finally:
            clear_trace_id()


def create_app(
    config: Optional[AppConfig] = None,
    *,
    sender: Optional[ChannelSender] = None,
    directory: Optional[RecipientDirectory] = None,
) -> FastAPI:
    cfg = config or AppConfig.load_from_env()
    configure_logging(json_logs=cfg.log_json, log_level=cfg.log_level)
    services = build_services(cfg, sender=sender, directory=directory)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "service_started",
            history_limit=cfg.history_limit,
            send_timeout_seconds=cfg.send_timeout_seconds,
            region_devices=len(services.directory.region_devices()),
        )
        try:
            yield
        finally:
            await services.aclose()
            logger.info("service_stopped")

    app = FastAPI(title="Sentinel Compass Response API", lifespan=lifespan)
    app.state.config = cfg
    app.state.services = services
    app.state.session = services.session
    app.state.estimator = services.estimator
    app.state.dispatcher = services.dispatcher
    app.state.directory = services.directory
    app.state.alert_feed = AlertFeed(sample_alerts())
    app.state.incident_board = IncidentBoard(sample_incidents())

    app.add_middleware(TraceIDMiddleware)
    Instrumentator().instrument(app).expose(app)

    app.include_router(resources_api.router)
    app.include_router(notifications_api.router)
    app.include_router(situation_api.router)

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        return {
            "status": "ok",
            "notifications": len(services.session.history),
            "has_plan": services.session.last_plan is not None,
        }

    return app


app = create_app()
