from __future__ import annotations

import os
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv

_logger = structlog.get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "y", "on"}


def load_env_files() -> None:
    """按 APP_ENV 加载环境文件；已存在的环境变量不会被覆盖。"""

    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
    config_dir: str = os.path.join(base_dir, "config")

    env_name: str = (os.getenv("APP_ENV") or "").strip().lower()
    if env_name:
        env_file: str = os.path.join(config_dir, f"env.{env_name}")
    else:
        env_file = os.path.join(config_dir, "dev.env")

    loaded = load_dotenv(env_file, override=False)
    # 本地覆盖层，仅补充未定义的变量
    load_dotenv(os.path.join(config_dir, "dev.local.env"), override=False)
    _logger.info("dotenv_env_selected", app_env=env_name or "(default:dev)", file=env_file, loaded=loaded)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("config_value_invalid", name=name, raw=raw, fallback=default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _logger.warning("config_value_invalid", name=name, raw=raw, fallback=default)
        return default


def _env_optional(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass(frozen=True)
class AppConfig:
    log_json: bool
    log_level: str
    directory_path: str | None
    history_limit: int
    send_timeout_seconds: float
    channel_gateway_url: str | None
    channel_gateway_api_key: str | None
    channel_gateway_timeout: float
    simulated_send_latency: float

    @staticmethod
    def load_from_env() -> "AppConfig":
        load_env_files()

        history_limit = _env_int("NOTIFICATION_HISTORY_LIMIT", 100)
        if history_limit <= 0:
            _logger.warning("history_limit_non_positive", value=history_limit, fallback=100)
            history_limit = 100

        send_timeout = _env_float("CHANNEL_SEND_TIMEOUT_SECONDS", 10.0)
        if send_timeout <= 0:
            _logger.warning("send_timeout_non_positive", value=send_timeout, fallback=10.0)
            send_timeout = 10.0

        return AppConfig(
            log_json=os.getenv("LOG_JSON", "false").strip().lower() in _TRUTHY,
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            directory_path=_env_optional("RECIPIENT_DIRECTORY_PATH"),
            history_limit=history_limit,
            send_timeout_seconds=send_timeout,
            channel_gateway_url=_env_optional("CHANNEL_GATEWAY_URL"),
            channel_gateway_api_key=_env_optional("CHANNEL_GATEWAY_API_KEY"),
            channel_gateway_timeout=_env_float("CHANNEL_GATEWAY_TIMEOUT", 5.0),
            simulated_send_latency=max(_env_float("SIMULATED_SEND_LATENCY_SECONDS", 0.5), 0.0),
        )
