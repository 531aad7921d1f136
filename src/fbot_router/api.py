# ABOUTME: FastAPI application exposing the F-Bot routing service over HTTP
# ABOUTME: Lets the chat backend route queries, report usage and read cost totals

"""
F-Bot Router HTTP API.

A small in-process HTTP surface over RoutingService:
- POST /v1/route: classify a query and pick a model
- POST /v1/usage: report token usage after a model call
- GET /v1/costs: current hourly/daily/monthly totals
- GET /v1/costs/breakdown: spend by model and task type from the ledger
- GET /v1/models: the capability registry
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from fastapi import FastAPI, HTTPException, Request

from fbot_router import __version__
from fbot_router.service import RoutingService

logger = logging.getLogger(__name__)

# Routing service (set via set_service before serving requests)
_service: RoutingService | None = None


def set_service(service: RoutingService | None) -> None:
    """Set the routing service used by request handlers."""
    global _service
    _service = service


def get_service() -> RoutingService | None:
    """Get the current routing service."""
    return _service


def _require_service() -> RoutingService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Routing service not configured")
    return _service


async def _json_body(request: Request) -> dict[str, Any]:
    body = await request.body()
    try:
        data = json.loads(body or b"{}")
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="JSON body must be an object")
    return data


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="F-Bot Router",
        description="Model selection and cost metering for F-Bot",
        version=__version__,
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/v1/models")
    async def list_models() -> list[dict[str, Any]]:
        """List registered models in registry order."""
        service = _require_service()
        return [
            {
                "id": profile.id,
                "capability_scores": dict(profile.capability_scores),
                "cost_tier": profile.cost_tier,
                "speed_score": profile.speed_score,
                "supported_task_categories": sorted(profile.supported_task_categories),
                "tokens_per_dollar": profile.tokens_per_dollar,
                "context_window_tokens": profile.context_window_tokens,
            }
            for profile in service.registry
        ]

    @app.post("/v1/route")
    async def route(request: Request) -> dict[str, Any]:
        """Pick a model for a query."""
        logger.info("Request received: POST /v1/route")
        service = _require_service()
        data = await _json_body(request)

        task_type = data.get("task_type")
        query = data.get("query")
        if not task_type:
            raise HTTPException(status_code=400, detail="Missing required field: task_type")
        if not isinstance(query, str) or not query:
            raise HTTPException(status_code=400, detail="Missing required field: query")
        preferences = data.get("preferences")
        if preferences is not None and not isinstance(preferences, dict):
            raise HTTPException(status_code=400, detail="preferences must be a JSON object")

        try:
            budget = data.get("cost_budget")
            result = service.classify_and_select(
                task_type,
                query,
                cost_budget=None if budget is None else float(budget),
                preferences=preferences or {},
            )
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return result.to_dict()

    @app.post("/v1/usage")
    async def report_usage(request: Request) -> dict[str, Any]:
        """Record token usage of a completed model call."""
        service = _require_service()
        data = await _json_body(request)

        model_id = data.get("model_id")
        if not model_id:
            raise HTTPException(status_code=400, detail="Missing required field: model_id")

        try:
            actual_cost = data.get("actual_cost")
            cost = service.report_usage(
                model_id,
                int(data.get("input_tokens", 0)),
                int(data.get("output_tokens", 0)),
                actual_cost=None if actual_cost is None else float(actual_cost),
                task_type=data.get("task_type"),
                check_alerts=False,
            )
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        breaches = []
        if service.alerter is not None:
            breaches = await service.alerter.check_async()

        return {
            "recorded_cost": cost,
            "totals": service.get_cost_snapshot().to_dict(),
            "breaches": [breach.to_dict() for breach in breaches],
        }

    @app.get("/v1/costs")
    async def costs() -> dict[str, float]:
        """Current cost totals."""
        return _require_service().get_cost_snapshot().to_dict()

    @app.get("/v1/costs/breakdown")
    async def cost_breakdown(hours: int = 24) -> dict[str, Any]:
        """Spend by model and task type over the last `hours` hours."""
        service = _require_service()
        if service.ledger is None:
            raise HTTPException(status_code=404, detail="Usage ledger is disabled")
        if hours <= 0:
            raise HTTPException(status_code=400, detail="hours must be positive")
        since = datetime.now() - timedelta(hours=hours)
        return service.ledger.get_breakdown(since).to_dict()

    return app
