# ABOUTME: Command-line interface for the F-Bot model router
# ABOUTME: Routes ad-hoc queries, lists models, shows costs and serves the HTTP API

"""
F-Bot Router CLI.

Commands:
- route: classify a query and show which model would be picked
- models: show the capability registry
- costs: show recorded spend from the usage ledger
- status-line: one-line spend summary for dashboards and shell prompts
- serve: run the HTTP API with uvicorn
"""

import argparse
import logging
import socket
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import IO

import uvicorn
from rich.console import Console

from fbot_router.api import create_app, set_service
from fbot_router.config import Config
from fbot_router.ledger import UsageLedger
from fbot_router.meter import CostTotals
from fbot_router.registry import ConfigurationError
from fbot_router.selector import UserPreferences
from fbot_router.service import RoutingService
from fbot_router.ui import render_breakdown, render_costs, render_decision, render_models

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def check_port_available(host: str, port: int) -> bool:
    """Check if a port is available for binding."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


def ledger_totals(ledger: UsageLedger, now: datetime | None = None) -> CostTotals:
    """Spend for the current hour, day and month as recorded in the ledger."""
    now = now or datetime.now()
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    day_start = hour_start.replace(hour=0)
    month_start = day_start.replace(day=1)
    return CostTotals(
        hourly=ledger.get_spent(hour_start),
        daily=ledger.get_spent(day_start),
        monthly=ledger.get_spent(month_start),
    )


def format_status_line(totals: CostTotals, thresholds: dict[str, float]) -> str:
    """Format spend against thresholds as a single line."""
    parts = [
        f"${totals.daily:.2f}/${thresholds['daily']:.0f} today",
        f"${totals.monthly:.2f}/${thresholds['monthly']:.0f} month",
    ]
    return "💰 " + " | ".join(parts)


def route_command(config: Config, args: argparse.Namespace) -> int:
    service = RoutingService.from_config(config)
    preferences = UserPreferences(preferred_model_id=args.prefer, prioritize_cost=args.cheap)
    result = service.classify_and_select(args.task_type, args.query, args.budget, preferences)
    console.print(render_decision(result))
    return 0


def models_command(config: Config) -> int:
    service = RoutingService.from_config(config)
    console.print(render_models(service.registry))
    return 0


def costs_command(config: Config, args: argparse.Namespace) -> int:
    if not config.ledger.enabled:
        console.print("[yellow]Usage ledger is disabled in config[/yellow]")
        return 1
    ledger = UsageLedger(db_path=config.ledger.db_path)
    console.print(render_costs(ledger_totals(ledger), config.thresholds.as_dict()))
    since = datetime.now() - timedelta(hours=args.hours)
    console.print(render_breakdown(ledger.get_breakdown(since)))
    return 0


def status_line_command(config: Config, stdout: IO[str] | None = None) -> int:
    stdout = stdout if stdout is not None else sys.stdout
    totals = CostTotals()
    if config.ledger.enabled:
        totals = ledger_totals(UsageLedger(db_path=config.ledger.db_path))
    stdout.write(format_status_line(totals, config.thresholds.as_dict()) + "\n")
    return 0


def serve_command(config: Config, args: argparse.Namespace) -> int:
    host = args.host or config.server.host
    port = args.port or config.server.port

    if not check_port_available(host, port):
        console.print(f"[red]Error: Port {port} is already in use.[/red]")
        return 1

    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format=LOG_FORMAT)

    service = RoutingService.from_config(config)
    set_service(service)
    service.start()

    console.print(f"[green]🧭 F-Bot router running on http://{host}:{port}[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")
    try:
        uvicorn.run(create_app(), host=host, port=port, log_level=args.log_level)
    finally:
        service.stop()
        set_service(None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fbot-router",
        description="Model selection and cost metering for F-Bot",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.toml")
    subparsers = parser.add_subparsers(dest="command")

    route = subparsers.add_parser("route", help="Pick a model for a query")
    route.add_argument("task_type", help="Task type key, e.g. fascia_diagnosis")
    route.add_argument("query", help="Query text")
    route.add_argument("--budget", type=float, default=None, help="Cost budget")
    route.add_argument("--prefer", default=None, help="Preferred model id")
    route.add_argument("--cheap", action="store_true", help="Prioritize cost")

    subparsers.add_parser("models", help="Show registered models")

    costs = subparsers.add_parser("costs", help="Show recorded spend")
    costs.add_argument("--hours", type=int, default=24, help="Breakdown window in hours")

    subparsers.add_parser("status-line", help="Output a one-line spend summary")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument(
        "--log-level", default="info", choices=["debug", "info", "warning", "error"]
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the F-Bot router CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    config = Config.load(Path(args.config).expanduser() if args.config else None)

    try:
        if args.command == "route":
            return route_command(config, args)
        elif args.command == "models":
            return models_command(config)
        elif args.command == "costs":
            return costs_command(config, args)
        elif args.command == "status-line":
            return status_line_command(config)
        elif args.command == "serve":
            return serve_command(config, args)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
