# Copyright 2025 msq
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from sentinel_compass.config import AppConfig
from sentinel_compass.container import build_services
from sentinel_compass.estimation import (
    DisasterScenario,
    DisasterType,
    InvalidScenario,
    ResourceEstimator,
    Severity,
)
from sentinel_compass.logging import configure_logging
from sentinel_compass.notifications import ActionKind, ScenarioContext

EXIT_OK = 0
EXIT_DISPATCH_FAILED = 1
EXIT_INVALID_INPUT = 2


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def run_estimate(args: argparse.Namespace) -> int:
    try:
        scenario = DisasterScenario.create(
            disaster_type=args.type,
            severity=args.severity,
            population_affected=args.population,
            area_size_km2=args.area,
            magnitude=args.magnitude,
        )
    except InvalidScenario as exc:
        print(f"invalid scenario: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    _print_json(ResourceEstimator().estimate(scenario).to_dict())
    return EXIT_OK


async def _dispatch(config: AppConfig, action: ActionKind, context: ScenarioContext) -> Dict[str, Any]:
    services = build_services(config)
    try:
        outcome = await services.dispatcher.dispatch(action, context)
    finally:
        await services.aclose()
    return outcome.to_dict()


def run_notify(args: argparse.Namespace, config: AppConfig) -> int:
    action = ActionKind(args.action)
    resources: List[str] = list(args.resource or [])
    if action is ActionKind.RESOURCE_REQUEST and not resources:
        print("--resource is required for resource_request", file=sys.stderr)
        return EXIT_INVALID_INPUT
    try:
        context = ScenarioContext(region=args.region, alert_message=args.message, resources_needed=tuple(resources))
    except ValueError as exc:
        print(f"invalid context: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    result = asyncio.run(_dispatch(config, action, context))
    _print_json(result)
    return EXIT_OK if result["record"]["status"] == "success" else EXIT_DISPATCH_FAILED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentinel-compass",
        description="Estimate disaster response resources and notify response teams",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    estimate_parser = sub.add_parser("estimate", help="compute a resource plan for a scenario")
    estimate_parser.add_argument("--type", required=True, choices=[item.value for item in DisasterType])
    estimate_parser.add_argument("--severity", required=True, choices=[item.value for item in Severity])
    estimate_parser.add_argument("--population", required=True, type=int, help="affected population")
    estimate_parser.add_argument("--area", required=True, type=float, help="affected area in km2")
    estimate_parser.add_argument("--magnitude", type=float, help="earthquake magnitude (earthquake only)")

    notify_parser = sub.add_parser("notify", help="dispatch an emergency action notification batch")
    notify_parser.add_argument("action", choices=[item.value for item in ActionKind])
    notify_parser.add_argument("--region", required=True)
    notify_parser.add_argument("--message", help="alert text (alert only)")
    notify_parser.add_argument("--resource", action="append", help="needed resource; repeatable (resource_request)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # 先切到 stderr，配置加载阶段的日志同样不进入 stdout
    configure_logging(stream=sys.stderr)
    config = AppConfig.load_from_env()
    configure_logging(json_logs=config.log_json, log_level=config.log_level, stream=sys.stderr)
    if args.command == "estimate":
        return run_estimate(args)
    return run_notify(args, config)


if __name__ == "__main__":
    sys.exit(main())
