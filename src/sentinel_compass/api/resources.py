"""资源估算 REST 接口。"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from sentinel_compass.estimation import (
    DisasterScenario,
    InvalidScenario,
    ResourceEstimator,
    magnitude_band,
)
from sentinel_compass.session import SessionState

router = APIRouter(prefix="/resources", tags=["resources"])
logger = structlog.get_logger(__name__)


class ScenarioRequest(BaseModel):
    """资源估算请求体，字段范围由领域模型统一校验。"""

    disaster_type: str = Field(..., alias="disasterType", description="flood/fire/earthquake/hurricane")
    severity: str = Field(..., description="low/medium/high/critical")
    population_affected: int = Field(..., alias="populationAffected", description="受灾人数")
    area_size_km2: float = Field(..., alias="areaSizeKm2", description="受灾面积（平方公里）")
    magnitude: Optional[float] = Field(None, description="震级，仅地震有效")

    model_config = {"populate_by_name": True}


def _require_estimator(request: Request) -> ResourceEstimator:
    estimator = getattr(request.app.state, "estimator", None)
    if estimator is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "resource estimator unavailable")
    return estimator


def _require_session(request: Request) -> SessionState:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "session state unavailable")
    return session


@router.post("/estimate")
async def estimate_resources(payload: ScenarioRequest, request: Request) -> Dict[str, Any]:
    estimator = _require_estimator(request)
    session = _require_session(request)
    try:
        scenario = DisasterScenario.create(
            disaster_type=payload.disaster_type,
            severity=payload.severity,
            population_affected=payload.population_affected,
            area_size_km2=payload.area_size_km2,
            magnitude=payload.magnitude,
        )
        plan = estimator.estimate(scenario)
    except InvalidScenario as exc:
        logger.warning("scenario_rejected", error=str(exc))
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    session.record_plan(plan)
    return plan.to_dict()


@router.get("/latest")
async def latest_plan(request: Request) -> Dict[str, Any]:
    plan = _require_session(request).last_plan
    if plan is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "no resource plan estimated yet")
    return plan.to_dict()


@router.get("/magnitude-band")
async def get_magnitude_band(magnitude: float = Query(..., description="震级")) -> Dict[str, Any]:
    try:
        band = magnitude_band(magnitude)
    except InvalidScenario as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return {"magnitude": magnitude, "band": band}
