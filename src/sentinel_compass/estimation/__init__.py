"""资源估算相关导出。"""

from .catalog import DEFAULT_CATALOG, CatalogError, ResourceCatalog
from .engine import ResourceEstimator, estimate, magnitude_band
from .models import (
    CatalogKind,
    DisasterScenario,
    DisasterType,
    InvalidScenario,
    ResourceKind,
    ResourcePlan,
    Severity,
)

__all__ = [
    "DEFAULT_CATALOG",
    "CatalogError",
    "ResourceCatalog",
    "ResourceEstimator",
    "estimate",
    "magnitude_band",
    "CatalogKind",
    "DisasterScenario",
    "DisasterType",
    "InvalidScenario",
    "ResourceKind",
    "ResourcePlan",
    "Severity",
]
