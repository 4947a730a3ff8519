from __future__ import annotations

import asyncio
from typing import Any, Mapping, Protocol

import httpx
import structlog

logger = structlog.get_logger(__name__)


class ChannelSender(Protocol):
    """通知通道协议：只返回成功/失败，无送达回执。"""

    async def send_sms(self, phone_number: str, message: str) -> bool:
        """发送短信。"""

    async def send_email(self, address: str, subject: str, message: str) -> bool:
        """发送邮件。"""

    async def send_push(self, device_id: str, title: str, message: str) -> bool:
        """发送推送通知。"""


class ChannelGatewayError(RuntimeError):
    """通知网关客户端基础异常。"""


class ChannelConfigurationError(ChannelGatewayError):
    """缺少通知网关访问配置。"""


class ChannelRequestError(ChannelGatewayError):
    """调用通知网关时发生网络/HTTP 错误。"""


class SimulatedChannelSender:
    """演示用发送器：仅记录日志，模拟固定延迟后返回成功。"""

    def __init__(self, latency_seconds: float = 0.5) -> None:
        self._latency = max(latency_seconds, 0.0)

    async def _simulate(self) -> bool:
        if self._latency:
            await asyncio.sleep(self._latency)
        return True

    async def send_sms(self, phone_number: str, message: str) -> bool:
        logger.info("simulated_sms", target=phone_number, message=message)
        return await self._simulate()

    async def send_email(self, address: str, subject: str, message: str) -> bool:
        logger.info("simulated_email", target=address, subject=subject, message=message)
        return await self._simulate()

    async def send_push(self, device_id: str, title: str, message: str) -> bool:
        logger.info("simulated_push", target=device_id, title=title, message=message)
        return await self._simulate()


class HttpChannelGateway:
    """通知网关 HTTP 客户端封装（短信/邮件/推送统一入口）。"""

    def __init__(
        self,
        base_url: str | None,
        timeout: float = 5.0,
        *,
        api_key: str | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = httpx.Timeout(timeout, connect=timeout)
        self._api_key = api_key
        self._async_client = async_client

    async def _get_async_client(self) -> httpx.AsyncClient:
        if self._async_client is not None:
            return self._async_client
        if not self._base_url:
            raise ChannelConfigurationError("channel gateway base url not configured")
        headers: dict[str, str] = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._async_client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            trust_env=False,
        )
        return self._async_client

    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.aclose()

    async def send_sms(self, phone_number: str, message: str) -> bool:
        return await self._post("/sms", {"to": phone_number, "message": message})

    async def send_email(self, address: str, subject: str, message: str) -> bool:
        return await self._post("/email", {"to": address, "subject": subject, "message": message})

    async def send_push(self, device_id: str, title: str, message: str) -> bool:
        return await self._post("/push", {"deviceId": device_id, "title": title, "message": message})

    async def _post(self, path: str, payload: Mapping[str, Any]) -> bool:
        client = await self._get_async_client()
        logger.debug("channel_gateway_request", path=path, target=payload.get("to") or payload.get("deviceId"))
        try:
            response = await client.post(path, json=dict(payload))
        except httpx.HTTPError as exc:
            raise ChannelRequestError(f"channel gateway request failed: {exc}") from exc
        accepted = self._parse_response(response)
        logger.info("channel_gateway_response", path=path, status_code=response.status_code, accepted=accepted)
        return accepted

    @staticmethod
    def _parse_response(response: httpx.Response) -> bool:
        if response.status_code >= 400:
            return False
        try:
            data = response.json()
        except ValueError:
            # 2xx 且无 JSON 正文视为已受理
            return True
        if isinstance(data, dict):
            code = data.get("code")
            if code is not None and str(code) not in {"0", "200"}:
                return False
            if data.get("success") is False:
                return False
        return True
