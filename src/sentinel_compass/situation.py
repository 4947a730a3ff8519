"""态势数据：预警消息流与地图使用的灾情点位（示例数据，仅内存）。"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List

from sentinel_compass.estimation.models import DisasterType, Severity


class AlertLevel(str, Enum):
    EMERGENCY = "emergency"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Alert:
    id: str
    level: AlertLevel
    message: str
    location: str
    timestamp: str
    read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.level.value,
            "message": self.message,
            "location": self.location,
            "timestamp": self.timestamp,
            "read": self.read,
        }


class AlertFeed:
    def __init__(self, alerts: Iterable[Alert] = ()) -> None:
        self._alerts: List[Alert] = list(alerts)
        self._lock = threading.Lock()

    def list(self) -> List[Alert]:
        with self._lock:
            return list(self._alerts)

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for alert in self._alerts if not alert.read)

    def mark_read(self, alert_id: str) -> Alert:
        with self._lock:
            for index, alert in enumerate(self._alerts):
                if alert.id == alert_id:
                    updated = replace(alert, read=True)
                    self._alerts[index] = updated
                    return updated
        raise KeyError(alert_id)

    def mark_all_read(self) -> int:
        """返回本次被标记的条数。"""
        with self._lock:
            changed = sum(1 for alert in self._alerts if not alert.read)
            self._alerts = [replace(alert, read=True) for alert in self._alerts]
        return changed


# 地图标记半径（像素）
SEVERITY_MARKER_RADIUS: Dict[Severity, int] = {
    Severity.LOW: 15,
    Severity.MEDIUM: 25,
    Severity.HIGH: 35,
    Severity.CRITICAL: 45,
}


@dataclass(frozen=True)
class Incident:
    id: str
    name: str
    disaster_type: DisasterType
    severity: Severity
    latitude: float
    longitude: float

    @property
    def marker_radius(self) -> int:
        return SEVERITY_MARKER_RADIUS[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.disaster_type.value,
            "severity": self.severity.value,
            "location": {"latitude": self.latitude, "longitude": self.longitude},
            "markerRadius": self.marker_radius,
        }


class IncidentBoard:
    def __init__(self, incidents: Iterable[Incident] = ()) -> None:
        self._incidents = tuple(incidents)

    def list(self) -> List[Incident]:
        return list(self._incidents)


def sample_alerts() -> List[Alert]:
    return [
        Alert(
            id="1",
            level=AlertLevel.EMERGENCY,
            message="Multiple structure fires reported. Evacuation orders issued for zones A, B, and C.",
            location="Los Angeles, CA",
            timestamp="10 minutes ago",
        ),
        Alert(
            id="2",
            level=AlertLevel.WARNING,
            message="Flash flood watch upgraded to warning. Expect rapid water rise in low-lying areas.",
            location="Houston, TX",
            timestamp="25 minutes ago",
        ),
        Alert(
            id="3",
            level=AlertLevel.INFO,
            message="Hurricane tracking 150 miles offshore. Prepare for potential landfall in 48 hours.",
            location="Miami, FL",
            timestamp="1 hour ago",
            read=True,
        ),
        Alert(
            id="4",
            level=AlertLevel.WARNING,
            message="Aftershocks likely in the next 24-48 hours. Maintain earthquake safety protocols.",
            location="San Francisco, CA",
            timestamp="3 hours ago",
            read=True,
        ),
    ]


def sample_incidents() -> List[Incident]:
    return [
        Incident("1", "Houston Flooding", DisasterType.FLOOD, Severity.HIGH, 29.7604, -95.3698),
        Incident("2", "Los Angeles Wildfire", DisasterType.FIRE, Severity.CRITICAL, 34.0522, -118.2437),
        Incident("3", "Miami Hurricane", DisasterType.HURRICANE, Severity.HIGH, 25.7617, -80.1918),
        Incident("4", "San Francisco Earthquake", DisasterType.EARTHQUAKE, Severity.MEDIUM, 37.7749, -122.4194),
    ]
