"""资源估算的数据结构：灾情场景与资源方案。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

MAX_POPULATION = 10_000_000
MAX_AREA_KM2 = 100_000.0
MIN_MAGNITUDE = 1.0
MAX_MAGNITUDE = 10.0


class InvalidScenario(ValueError):
    """场景参数超出取值范围或枚举非法。"""


class DisasterType(str, Enum):
    FLOOD = "flood"
    FIRE = "fire"
    EARTHQUAKE = "earthquake"
    HURRICANE = "hurricane"


class Severity(str, Enum):
    """严重程度，tier 决定装备清单的前缀长度。"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def tier(self) -> int:
        return _SEVERITY_TIERS[self]


_SEVERITY_TIERS: Dict[Severity, int] = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class ResourceKind(str, Enum):
    FOOD = "food"
    WATER = "water"
    RESCUERS = "rescuers"
    MEDICAL_STAFF = "medical_staff"
    SHELTERS = "shelters"
    CAPACITY = "capacity"
    VEHICLES = "vehicles"


class CatalogKind(str, Enum):
    RESCUE_TEAMS = "rescue_teams"
    MEDICAL_EQUIPMENT = "medical_equipment"
    VEHICLE_TYPES = "vehicle_types"


def _parse_enum(enum_cls: type[Enum], value: Any, field: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(item.value for item in enum_cls)
    raise InvalidScenario(f"{field} must be one of [{allowed}], got {value!r}")


def _require_number(value: Any, field: str) -> float:
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidScenario(f"{field} must be a number, got {value!r}")
    if value != value:
        raise InvalidScenario(f"{field} must not be NaN")
    return float(value)


def _check_magnitude(value: Any) -> float:
    magnitude = _require_number(value, "magnitude")
    if not MIN_MAGNITUDE <= magnitude <= MAX_MAGNITUDE:
        raise InvalidScenario(f"magnitude must be in [{MIN_MAGNITUDE:g}, {MAX_MAGNITUDE:g}], got {magnitude:g}")
    return magnitude


@dataclass(frozen=True, slots=True)
class DisasterScenario:
    """提交后不可变的灾情场景。"""

    disaster_type: DisasterType
    severity: Severity
    population_affected: int
    area_size_km2: float
    magnitude: Optional[float] = None

    def __post_init__(self) -> None:
        # frozen dataclass 只能经 object.__setattr__ 归一化字段
        object.__setattr__(self, "disaster_type", _parse_enum(DisasterType, self.disaster_type, "disaster_type"))
        object.__setattr__(self, "severity", _parse_enum(Severity, self.severity, "severity"))
        if isinstance(self.population_affected, bool) or not isinstance(self.population_affected, int):
            raise InvalidScenario(
                f"population_affected must be an integer, got {self.population_affected!r}"
            )
        if not 0 < self.population_affected <= MAX_POPULATION:
            raise InvalidScenario(
                f"population_affected must be in (0, {MAX_POPULATION}], got {self.population_affected}"
            )
        area = _require_number(self.area_size_km2, "area_size_km2")
        if not 0 < area <= MAX_AREA_KM2:
            raise InvalidScenario(f"area_size_km2 must be in (0, {MAX_AREA_KM2:g}], got {area:g}")
        object.__setattr__(self, "area_size_km2", area)
        if self.magnitude is not None:
            object.__setattr__(self, "magnitude", _check_magnitude(self.magnitude))

    @classmethod
    def create(
        cls,
        *,
        disaster_type: Any,
        severity: Any,
        population_affected: Any,
        area_size_km2: Any,
        magnitude: Any = None,
    ) -> "DisasterScenario":
        """从原始输入构造场景；非地震场景丢弃震级。"""

        parsed_type: DisasterType = _parse_enum(DisasterType, disaster_type, "disaster_type")
        if magnitude is not None:
            magnitude = _check_magnitude(magnitude)
        if parsed_type is not DisasterType.EARTHQUAKE:
            magnitude = None
        return cls(
            disaster_type=parsed_type,
            severity=severity,
            population_affected=population_affected,
            area_size_km2=area_size_km2,
            magnitude=magnitude,
        )


@dataclass(frozen=True, slots=True)
class ResourcePlan:
    """单次估算产出的资源方案，下一次估算整体替换。"""

    disaster_type: DisasterType
    severity: Severity
    food: int
    water: int
    rescuers: int
    medical_staff: int
    shelters: int
    capacity: int
    vehicles: int
    rescue_teams: Tuple[str, ...]
    medical_equipment: Tuple[str, ...]
    vehicle_types: Tuple[str, ...]
    magnitude: Optional[float] = None
    magnitude_band: Optional[str] = None

    def summary_lines(self) -> Tuple[str, ...]:
        """资源请求消息使用的简短清单。"""
        return (
            f"{self.food} meals/day",
            f"{self.water} L water/day",
            f"{self.rescuers} rescue personnel",
            f"{self.medical_staff} medical staff",
            f"{self.shelters} shelters",
            f"{self.vehicles} vehicles",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disasterType": self.disaster_type.value,
            "severity": self.severity.value,
            "food": self.food,
            "water": self.water,
            "rescuers": self.rescuers,
            "medicalStaff": self.medical_staff,
            "shelters": self.shelters,
            "capacity": self.capacity,
            "vehicles": self.vehicles,
            "rescueTeams": list(self.rescue_teams),
            "medicalEquipment": list(self.medical_equipment),
            "vehicleTypes": list(self.vehicle_types),
            "magnitude": self.magnitude,
            "magnitudeBand": self.magnitude_band,
        }
