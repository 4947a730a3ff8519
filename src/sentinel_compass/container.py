# Copyright 2025 msq
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from sentinel_compass.config import AppConfig
from sentinel_compass.estimation import ResourceEstimator
from sentinel_compass.notifications import (
    ChannelSender,
    HttpChannelGateway,
    NotificationDispatcher,
    RecipientDirectory,
    SimulatedChannelSender,
    default_directory,
    load_directory,
)
from sentinel_compass.session import SessionState

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """启动时显式构造的服务集合，由 API 与 CLI 共用。"""

    config: AppConfig
    directory: RecipientDirectory
    sender: ChannelSender
    session: SessionState
    estimator: ResourceEstimator
    dispatcher: NotificationDispatcher

    async def aclose(self) -> None:
        if isinstance(self.sender, HttpChannelGateway):
            await self.sender.aclose()


def build_sender(config: AppConfig) -> ChannelSender:
    if config.channel_gateway_url:
        logger.info("channel_sender_selected", kind="http", base_url=config.channel_gateway_url)
        return HttpChannelGateway(
            config.channel_gateway_url,
            timeout=config.channel_gateway_timeout,
            api_key=config.channel_gateway_api_key,
        )
    logger.info("channel_sender_selected", kind="simulated", latency=config.simulated_send_latency)
    return SimulatedChannelSender(latency_seconds=config.simulated_send_latency)


def build_directory(config: AppConfig) -> RecipientDirectory:
    if config.directory_path:
        return load_directory(config.directory_path)
    return default_directory()


def build_services(
    config: AppConfig,
    *,
    sender: Optional[ChannelSender] = None,
    directory: Optional[RecipientDirectory] = None,
) -> ServiceContainer:
    resolved_directory = directory if directory is not None else build_directory(config)
    resolved_sender = sender if sender is not None else build_sender(config)
    session = SessionState(history_limit=config.history_limit)
    dispatcher = NotificationDispatcher(
        resolved_directory,
        resolved_sender,
        history=session.history,
        send_timeout=config.send_timeout_seconds,
    )
    return ServiceContainer(
        config=config,
        directory=resolved_directory,
        sender=resolved_sender,
        session=session,
        estimator=ResourceEstimator(),
        dispatcher=dispatcher,
    )
