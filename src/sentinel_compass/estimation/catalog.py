"""
资源估算参数表

按 (灾种, 资源类别) 统一存放倍率与分级清单，导入时校验：
- 每个灾种覆盖全部资源类别与清单类别
- 倍率全部为正数
- 每份清单至少包含与最高严重等级相同数量且互不重复的条目，
  因此高等级总是低等级的前缀扩展
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Sequence, Tuple

from .models import CatalogKind, DisasterType, ResourceKind, Severity


class CatalogError(ValueError):
    """参数表结构不完整或违反单调性约束。"""


# 每 1000 名受灾人员的基准资源量；capacity 为单个安置点容量（人）
BASE_RESOURCES_PER_THOUSAND: Mapping[ResourceKind, float] = MappingProxyType(
    {
        ResourceKind.FOOD: 3000.0,
        ResourceKind.WATER: 5000.0,
        ResourceKind.RESCUERS: 20.0,
        ResourceKind.MEDICAL_STAFF: 15.0,
        ResourceKind.SHELTERS: 3.0,
        ResourceKind.CAPACITY: 400.0,
        ResourceKind.VEHICLES: 10.0,
    }
)

SEVERITY_SCALARS: Mapping[Severity, float] = MappingProxyType(
    {
        Severity.LOW: 0.7,
        Severity.MEDIUM: 1.0,
        Severity.HIGH: 1.5,
        Severity.CRITICAL: 2.5,
    }
)

# 列顺序：food, water, rescuers, medical_staff, shelters, capacity, vehicles
_MULTIPLIER_ROWS: Dict[DisasterType, Tuple[float, ...]] = {
    DisasterType.FLOOD: (1.2, 1.5, 1.5, 1.2, 1.8, 1.0, 1.5),
    DisasterType.FIRE: (1.0, 1.3, 1.8, 1.5, 1.2, 1.0, 1.3),
    # 结构损毁后可用安置面积下降
    DisasterType.EARTHQUAKE: (1.3, 1.2, 2.0, 1.8, 1.5, 0.8, 1.2),
    DisasterType.HURRICANE: (1.5, 1.5, 1.5, 1.3, 2.0, 1.2, 1.4),
}

_TIERED_CATALOGS: Dict[DisasterType, Dict[CatalogKind, Tuple[str, ...]]] = {
    DisasterType.FLOOD: {
        CatalogKind.RESCUE_TEAMS: (
            "Swift Water Rescue",
            "Boat Rescue Unit",
            "Levee Reinforcement Crew",
            "Helicopter Hoist Team",
        ),
        CatalogKind.MEDICAL_EQUIPMENT: (
            "First Aid Kits",
            "Water Purification Tablets",
            "Hypothermia Treatment Kits",
            "Mobile Field Hospital",
        ),
        CatalogKind.VEHICLE_TYPES: (
            "High-Clearance Trucks",
            "Inflatable Rescue Boats",
            "Amphibious Vehicles",
            "Rescue Helicopters",
        ),
    },
    DisasterType.FIRE: {
        CatalogKind.RESCUE_TEAMS: (
            "Wildland Fire Crew",
            "Structural Firefighting Unit",
            "Smoke Jumper Team",
            "Aerial Firefighting Squadron",
        ),
        CatalogKind.MEDICAL_EQUIPMENT: (
            "Burn Dressings",
            "Oxygen Supply Units",
            "Smoke Inhalation Treatment Kits",
            "Burn Care Field Unit",
        ),
        CatalogKind.VEHICLE_TYPES: (
            "Fire Engines",
            "Water Tenders",
            "Bulldozers",
            "Air Tankers",
        ),
    },
    DisasterType.EARTHQUAKE: {
        CatalogKind.RESCUE_TEAMS: (
            "Urban Search and Rescue",
            "Structural Collapse Specialists",
            "Canine Search Unit",
            "Heavy Rescue Engineering Team",
        ),
        CatalogKind.MEDICAL_EQUIPMENT: (
            "Trauma Kits",
            "Splints and Stretchers",
            "Portable X-Ray Units",
            "Surgical Field Hospital",
        ),
        CatalogKind.VEHICLE_TYPES: (
            "Ambulances",
            "Heavy Rescue Trucks",
            "Mobile Cranes",
            "Medevac Helicopters",
        ),
    },
    DisasterType.HURRICANE: {
        CatalogKind.RESCUE_TEAMS: (
            "Storm Response Team",
            "Debris Clearance Crew",
            "Water Rescue Unit",
            "Coast Guard Air Rescue",
        ),
        CatalogKind.MEDICAL_EQUIPMENT: (
            "First Aid Kits",
            "Portable Generators for Medical Devices",
            "Wound Care Supplies",
            "Mobile Field Hospital",
        ),
        CatalogKind.VEHICLE_TYPES: (
            "Utility Trucks",
            "High-Water Vehicles",
            "Chainsaw Crew Trucks",
            "Rescue Helicopters",
        ),
    },
}


@dataclass(frozen=True)
class ResourceCatalog:
    """以 (DisasterType, ResourceKind/CatalogKind) 为键的只读参数表。"""

    multipliers: Mapping[Tuple[DisasterType, ResourceKind], float]
    tiers: Mapping[Tuple[DisasterType, CatalogKind], Tuple[str, ...]]

    def multiplier(self, disaster_type: DisasterType, kind: ResourceKind) -> float:
        return self.multipliers[(disaster_type, kind)]

    def tiered(self, disaster_type: DisasterType, kind: CatalogKind, severity: Severity) -> Tuple[str, ...]:
        return self.tiers[(disaster_type, kind)][: severity.tier]

    @classmethod
    def build(
        cls,
        multiplier_rows: Mapping[DisasterType, Sequence[float]],
        tiered_catalogs: Mapping[DisasterType, Mapping[CatalogKind, Sequence[str]]],
    ) -> "ResourceCatalog":
        resource_kinds = list(ResourceKind)
        max_tier = max(severity.tier for severity in Severity)
        multipliers: Dict[Tuple[DisasterType, ResourceKind], float] = {}
        tiers: Dict[Tuple[DisasterType, CatalogKind], Tuple[str, ...]] = {}

        for disaster_type in DisasterType:
            row = multiplier_rows.get(disaster_type)
            if row is None:
                raise CatalogError(f"missing multipliers for {disaster_type.value}")
            if len(row) != len(resource_kinds):
                raise CatalogError(
                    f"{disaster_type.value}: expected {len(resource_kinds)} multipliers, got {len(row)}"
                )
            for kind, value in zip(resource_kinds, row):
                if value <= 0:
                    raise CatalogError(f"{disaster_type.value}/{kind.value}: multiplier must be positive")
                multipliers[(disaster_type, kind)] = float(value)

            catalogs = tiered_catalogs.get(disaster_type)
            if catalogs is None:
                raise CatalogError(f"missing catalogs for {disaster_type.value}")
            for catalog_kind in CatalogKind:
                entries = tuple(catalogs.get(catalog_kind, ()))
                if len(entries) < max_tier:
                    raise CatalogError(
                        f"{disaster_type.value}/{catalog_kind.value}: needs {max_tier} entries, got {len(entries)}"
                    )
                if len(set(entries)) != len(entries):
                    raise CatalogError(f"{disaster_type.value}/{catalog_kind.value}: duplicate entries")
                tiers[(disaster_type, catalog_kind)] = entries

        return cls(multipliers=MappingProxyType(multipliers), tiers=MappingProxyType(tiers))


DEFAULT_CATALOG = ResourceCatalog.build(_MULTIPLIER_ROWS, _TIERED_CATALOGS)
