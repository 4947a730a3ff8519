from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, os.fspath(ROOT / "src"))

from sentinel_compass.notifications.directory import (  # noqa: E402
    Contact,
    RecipientDirectory,
    RecipientGroup,
)


class RecordingSender:
    """记录每次调用的测试发送器，可按目标注入失败、异常或延迟。"""

    def __init__(
        self,
        *,
        fail_targets: Optional[Set[str]] = None,
        raise_targets: Optional[Set[str]] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.calls: List[Tuple[str, str, Optional[str], str]] = []
        self._fail = fail_targets or set()
        self._raise = raise_targets or set()
        self._delays = delays or {}

    async def _result(self, target: str) -> bool:
        delay = self._delays.get(target)
        if delay:
            await asyncio.sleep(delay)
        if target in self._raise:
            raise ConnectionError(f"gateway unreachable for {target}")
        return target not in self._fail

    async def send_sms(self, phone_number: str, message: str) -> bool:
        self.calls.append(("sms", phone_number, None, message))
        return await self._result(phone_number)

    async def send_email(self, address: str, subject: str, message: str) -> bool:
        self.calls.append(("email", address, subject, message))
        return await self._result(address)

    async def send_push(self, device_id: str, title: str, message: str) -> bool:
        self.calls.append(("push", device_id, title, message))
        return await self._result(device_id)


def _group(prefix: str) -> RecipientGroup:
    return RecipientGroup(
        team_name=f"{prefix.title()} Team",
        lead=Contact(
            name=f"{prefix}-lead",
            role="Director",
            phone_number=f"+1-000-{prefix}-0",
            email=f"{prefix}-lead@example.org",
        ),
        members=(
            Contact(
                name=f"{prefix}-m1",
                role="Coordinator",
                phone_number=f"+1-000-{prefix}-1",
                email=f"{prefix}-m1@example.org",
            ),
            Contact(
                name=f"{prefix}-m2",
                role="Specialist",
                phone_number=f"+1-000-{prefix}-2",
                email=f"{prefix}-m2@example.org",
            ),
        ),
    )


@pytest.fixture
def small_directory() -> RecipientDirectory:
    """每组 1 名组长 + 2 名组员，3 台区域设备（2 个号码、1 个设备 ID）。"""
    return RecipientDirectory(
        evacuation=_group("evac"),
        alert=_group("alert"),
        resources=_group("res"),
        all_clear=_group("clear"),
        devices=("+1-555-111-2222", "+1-555-333-4444", "laptop-id-12345"),
    )


@pytest.fixture
def recording_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def sender_factory():
    return RecordingSender
