from __future__ import annotations

import math
from typing import Dict, Optional

import structlog

from sentinel_compass.logging import estimate_count_metric

from .catalog import (
    BASE_RESOURCES_PER_THOUSAND,
    DEFAULT_CATALOG,
    SEVERITY_SCALARS,
    ResourceCatalog,
)
from .models import (
    MAX_MAGNITUDE,
    MIN_MAGNITUDE,
    CatalogKind,
    DisasterScenario,
    DisasterType,
    InvalidScenario,
    ResourceKind,
    ResourcePlan,
)

_logger = structlog.get_logger(__name__)

POPULATION_UNIT = 1000.0
AREA_UNIT_KM2 = 100.0


def magnitude_band(magnitude: float) -> str:
    """震级的描述性分档，仅供展示，不参与资源计算。"""

    if isinstance(magnitude, bool) or not isinstance(magnitude, (int, float)):
        raise InvalidScenario(f"magnitude must be a number, got {magnitude!r}")
    if not MIN_MAGNITUDE <= magnitude <= MAX_MAGNITUDE:
        raise InvalidScenario(f"magnitude must be in [{MIN_MAGNITUDE:g}, {MAX_MAGNITUDE:g}], got {magnitude:g}")
    if magnitude < 5.0:
        return "minor"
    if magnitude < 6.0:
        return "moderate"
    if magnitude < 7.0:
        return "severe"
    return "critical"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ResourceEstimator:
    """将灾情场景换算为资源方案，无副作用且结果确定。"""

    def __init__(self, catalog: ResourceCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    def estimate(self, scenario: DisasterScenario) -> ResourcePlan:
        if not isinstance(scenario, DisasterScenario):
            raise InvalidScenario(f"expected DisasterScenario, got {type(scenario).__name__}")

        quantities = self._quantities(scenario)
        disaster_type = scenario.disaster_type
        severity = scenario.severity

        magnitude: Optional[float] = None
        band: Optional[str] = None
        if disaster_type is DisasterType.EARTHQUAKE and scenario.magnitude is not None:
            magnitude = scenario.magnitude
            band = magnitude_band(magnitude)

        plan = ResourcePlan(
            disaster_type=disaster_type,
            severity=severity,
            food=quantities[ResourceKind.FOOD],
            water=quantities[ResourceKind.WATER],
            rescuers=quantities[ResourceKind.RESCUERS],
            medical_staff=quantities[ResourceKind.MEDICAL_STAFF],
            shelters=quantities[ResourceKind.SHELTERS],
            capacity=quantities[ResourceKind.CAPACITY],
            vehicles=quantities[ResourceKind.VEHICLES],
            rescue_teams=self._catalog.tiered(disaster_type, CatalogKind.RESCUE_TEAMS, severity),
            medical_equipment=self._catalog.tiered(disaster_type, CatalogKind.MEDICAL_EQUIPMENT, severity),
            vehicle_types=self._catalog.tiered(disaster_type, CatalogKind.VEHICLE_TYPES, severity),
            magnitude=magnitude,
            magnitude_band=band,
        )
        estimate_count_metric.labels(disaster_type=disaster_type.value).inc()
        _logger.info(
            "resource_plan_estimated",
            disaster_type=disaster_type.value,
            severity=severity.value,
            population=scenario.population_affected,
            area_km2=scenario.area_size_km2,
            rescuers=plan.rescuers,
            shelters=plan.shelters,
        )
        return plan

    def _quantities(self, scenario: DisasterScenario) -> Dict[ResourceKind, int]:
        severity_scalar = SEVERITY_SCALARS[scenario.severity]
        population_factor = scenario.population_affected / POPULATION_UNIT
        area_factor = scenario.area_size_km2 / AREA_UNIT_KM2

        result: Dict[ResourceKind, int] = {}
        for kind, base in BASE_RESOURCES_PER_THOUSAND.items():
            type_multiplier = self._catalog.multiplier(scenario.disaster_type, kind)
            if kind is ResourceKind.CAPACITY:
                # 单点容量与人数、严重程度无关
                result[kind] = _round_half_up(base * type_multiplier)
                continue
            value = base * severity_scalar * type_multiplier * population_factor
            if kind is ResourceKind.SHELTERS:
                value *= area_factor
            result[kind] = _round_half_up(value)
        return result


_default_estimator = ResourceEstimator()


def estimate(scenario: DisasterScenario) -> ResourcePlan:
    return _default_estimator.estimate(scenario)
