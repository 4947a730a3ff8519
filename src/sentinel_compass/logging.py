"""
统一日志模块

提供全局structlog配置，包括：
- 统一processor链（时间戳、堆栈、trace-id注入）
- JSON/控制台双渲染模式
- Prometheus指标集中注册（日志计数 + 通知分发/资源估算业务指标）
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, TextIO

import structlog
from prometheus_client import Counter, Histogram

# ========== ContextVar：跨异步边界的trace-id传递 ==========
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


# ========== Prometheus指标集中注册 ==========
log_count_metric = Counter(
    "sentinel_log_total",
    "日志总数（按级别和模块分类）",
    ["level", "module"],
)

# 单次发送结果：channel ∈ sms/email/push，outcome ∈ success/failure/timeout
notification_send_metric = Counter(
    "sentinel_notification_sends_total",
    "单条通知发送次数",
    ["channel", "outcome"],
)

dispatch_count_metric = Counter(
    "sentinel_dispatch_total",
    "通知批次数（按动作与最终状态）",
    ["action", "status"],
)

dispatch_latency_metric = Histogram(
    "sentinel_dispatch_seconds",
    "通知批次耗时（秒）",
    ["action"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

estimate_count_metric = Counter(
    "sentinel_estimates_total",
    "资源估算次数",
    ["disaster_type"],
)


# ========== 自定义Processor ==========
def add_trace_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """从ContextVar中提取trace-id并注入到日志上下文"""
    trace_id = trace_id_var.get()
    if trace_id:
        event_dict["trace_id"] = trace_id
    return event_dict


def add_prometheus_metrics(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    level = event_dict.get("level", "info")
    module = event_dict.get("logger", "unknown")
    log_count_metric.labels(level=level, module=module).inc()
    return event_dict


# ========== 全局配置函数 ==========
def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """
    配置全局structlog

    Args:
        json_logs: 是否输出JSON格式（生产环境推荐True）
        log_level: 日志级别（DEBUG/INFO/WARNING/ERROR）
        stream: 输出流，默认stdout；CLI 使用 stderr 以免与结果输出混杂

    之后所有模块直接使用：
        logger = structlog.get_logger(__name__)
        logger.info("dispatch_started", action="alert")
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=stream is not None,
    )

    processors: list[Any] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_id,
        add_prometheus_metrics,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ========== 便捷函数：trace-id管理 ==========
def set_trace_id(trace_id: str) -> None:
    """设置当前协程的trace-id"""
    trace_id_var.set(trace_id)


def clear_trace_id() -> None:
    """清除当前协程的trace-id（防止上下文泄漏）"""
    trace_id_var.set(None)


# ========== 默认初始化 ==========
# 开发环境默认控制台渲染；生产环境在启动时显式调用 configure_logging(json_logs=True)
configure_logging(json_logs=False, log_level="INFO")
