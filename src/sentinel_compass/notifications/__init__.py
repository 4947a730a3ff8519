"""通知分发相关导出。"""

from .channels import (
    ChannelConfigurationError,
    ChannelGatewayError,
    ChannelRequestError,
    ChannelSender,
    HttpChannelGateway,
    SimulatedChannelSender,
)
from .directory import (
    Contact,
    DirectoryError,
    RecipientDirectory,
    RecipientGroup,
    default_directory,
    directory_from_mapping,
    load_directory,
)
from .dispatcher import GENERIC_FAILURE_MESSAGE, NotificationDispatcher
from .models import (
    ActionKind,
    ChannelKind,
    DeliveryResult,
    DispatchBatch,
    DispatchOutcome,
    InvalidTransition,
    NotificationRecord,
    NotificationStatus,
    RecipientCount,
    ScenarioContext,
    SendFailure,
)

__all__ = [
    "ChannelConfigurationError",
    "ChannelGatewayError",
    "ChannelRequestError",
    "ChannelSender",
    "HttpChannelGateway",
    "SimulatedChannelSender",
    "Contact",
    "DirectoryError",
    "RecipientDirectory",
    "RecipientGroup",
    "default_directory",
    "directory_from_mapping",
    "load_directory",
    "GENERIC_FAILURE_MESSAGE",
    "NotificationDispatcher",
    "ActionKind",
    "ChannelKind",
    "DeliveryResult",
    "DispatchBatch",
    "DispatchOutcome",
    "InvalidTransition",
    "NotificationRecord",
    "NotificationStatus",
    "RecipientCount",
    "ScenarioContext",
    "SendFailure",
]
