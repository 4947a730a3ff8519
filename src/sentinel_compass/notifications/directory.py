"""接收人目录：应急小组与区域设备，启动时加载并注入分发器。"""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import ActionKind

_logger = structlog.get_logger(__name__)

DEFAULT_DIRECTORY_RESOURCE = "default_directory.json"


class DirectoryError(ValueError):
    """目录文档缺失或结构非法。"""


@dataclass(frozen=True)
class Contact:
    name: str
    role: str
    phone_number: str
    email: str


@dataclass(frozen=True)
class RecipientGroup:
    team_name: str
    lead: Contact
    members: Tuple[Contact, ...]

    def contacts(self) -> Tuple[Contact, ...]:
        """组长在前，其后按声明顺序的组员。"""
        return (self.lead, *self.members)


def is_phone_device(identifier: str) -> bool:
    return identifier.startswith("+")


@dataclass(frozen=True)
class RecipientDirectory:
    evacuation: RecipientGroup
    alert: RecipientGroup
    resources: RecipientGroup
    all_clear: RecipientGroup
    devices: Tuple[str, ...] = ()

    def group_for(self, action: ActionKind) -> RecipientGroup:
        action = ActionKind(action)
        if action is ActionKind.EVACUATION:
            return self.evacuation
        if action is ActionKind.ALERT:
            return self.alert
        if action is ActionKind.RESOURCE_REQUEST:
            return self.resources
        return self.all_clear

    def region_devices(self) -> Tuple[str, ...]:
        return self.devices

    def summary(self) -> Dict[str, Any]:
        teams = {
            action.value: {
                "teamName": self.group_for(action).team_name,
                "lead": self.group_for(action).lead.name,
                "members": len(self.group_for(action).members),
            }
            for action in ActionKind
        }
        phone_devices = sum(1 for item in self.devices if is_phone_device(item))
        return {
            "teams": teams,
            "regionDevices": {
                "total": len(self.devices),
                "sms": phone_devices,
                "push": len(self.devices) - phone_devices,
            },
        }


# ========== 目录文档结构（JSON） ==========
class ContactDocument(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1, alias="phoneNumber")
    email: str = Field(..., min_length=3)

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("email must contain '@'")
        return value.strip()


class GroupDocument(BaseModel):
    team_name: str = Field(..., min_length=1, alias="teamName")
    team_head: ContactDocument = Field(..., alias="teamHead")
    members: List[ContactDocument] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class DirectoryDocument(BaseModel):
    evacuation_team: GroupDocument = Field(..., alias="evacuationTeam")
    alert_team: GroupDocument = Field(..., alias="alertTeam")
    resources_team: GroupDocument = Field(..., alias="resourcesTeam")
    all_clear_team: GroupDocument = Field(..., alias="allClearTeam")
    region_devices: List[str] = Field(default_factory=list, alias="regionDevices")

    model_config = {"populate_by_name": True}

    @field_validator("region_devices")
    @classmethod
    def _strip_devices(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("region device identifiers must be non-empty")
        return cleaned


def _to_contact(doc: ContactDocument) -> Contact:
    return Contact(name=doc.name, role=doc.role, phone_number=doc.phone_number, email=doc.email)


def _to_group(doc: GroupDocument) -> RecipientGroup:
    return RecipientGroup(
        team_name=doc.team_name,
        lead=_to_contact(doc.team_head),
        members=tuple(_to_contact(item) for item in doc.members),
    )


def directory_from_mapping(payload: Mapping[str, Any]) -> RecipientDirectory:
    try:
        document = DirectoryDocument.model_validate(payload)
    except ValidationError as exc:
        raise DirectoryError(f"invalid recipient directory: {exc}") from exc
    directory = RecipientDirectory(
        evacuation=_to_group(document.evacuation_team),
        alert=_to_group(document.alert_team),
        resources=_to_group(document.resources_team),
        all_clear=_to_group(document.all_clear_team),
        devices=tuple(document.region_devices),
    )
    _logger.info(
        "recipient_directory_loaded",
        teams=len(ActionKind),
        region_devices=len(directory.devices),
    )
    return directory


def load_directory(path: str | Path) -> RecipientDirectory:
    """从 JSON 文件加载目录。"""

    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DirectoryError(f"cannot read recipient directory {file_path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DirectoryError(f"recipient directory {file_path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise DirectoryError(f"recipient directory {file_path} must be a JSON object")
    return directory_from_mapping(payload)


def default_directory() -> RecipientDirectory:
    """随包分发的示例目录。"""

    raw = resources.files(__package__).joinpath(DEFAULT_DIRECTORY_RESOURCE).read_text(encoding="utf-8")
    return directory_from_mapping(json.loads(raw))
