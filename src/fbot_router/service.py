# ABOUTME: Entry points the chat backend calls around every LLM request
# ABOUTME: Combines classification, selection, cost metering, usage history and alerts

"""
F-Bot Routing Service.

Owns one instance of each collaborator and exposes the calls a request
handler makes:
- classify_and_select() before calling a model
- report_usage() after the model call completes
- get_cost_snapshot() for dashboards and alerting
- fallback_model() when the chosen model fails
"""

import logging
from collections.abc import Mapping
from typing import Any

from fbot_router.alerts import CostAlerter
from fbot_router.classifier import DEFAULT_COMPLEXITY_INDICATORS, TaskClassifier
from fbot_router.config import Config
from fbot_router.ledger import UsageLedger
from fbot_router.meter import CostMeter, CostTotals
from fbot_router.pricing import calculate_cost
from fbot_router.registry import ConfigurationError, Registry
from fbot_router.selector import ModelSelector, SelectionResult, UserPreferences

logger = logging.getLogger(__name__)


class RoutingService:
    """Routes requests to models and meters what they cost."""

    def __init__(
        self,
        registry: Registry | None = None,
        meter: CostMeter | None = None,
        ledger: UsageLedger | None = None,
        alerter: CostAlerter | None = None,
        indicators: Mapping[str, float] | None = None,
        fallbacks: Mapping[str, str] | None = None,
        default_budget: float = 100.0,
    ):
        self.registry = registry or Registry()
        self.meter = meter or CostMeter()
        self.ledger = ledger
        self.alerter = alerter
        self.classifier = TaskClassifier(self.registry, indicators)
        self.selector = ModelSelector(self.registry)
        self.default_budget = default_budget

        self.fallbacks = dict(fallbacks or {})
        for event, model_id in self.fallbacks.items():
            if model_id not in self.registry:
                raise ConfigurationError(f"Fallback {event!r} names unknown model {model_id!r}")

    @classmethod
    def from_config(cls, config: Config) -> "RoutingService":
        """Build a service from a loaded Config."""
        registry = Registry(default_model_id=config.routing.default_model)
        meter = CostMeter(monthly_reset=config.meter.monthly_reset)
        ledger = UsageLedger(db_path=config.ledger.db_path) if config.ledger.enabled else None
        alerter = None
        if config.alerts.enabled:
            alerter = CostAlerter(meter, config.thresholds.as_dict(), config.alerts.webhook)
        indicators = {**DEFAULT_COMPLEXITY_INDICATORS, **config.complexity.indicators}

        return cls(
            registry=registry,
            meter=meter,
            ledger=ledger,
            alerter=alerter,
            indicators=indicators,
            fallbacks=config.routing.fallback,
            default_budget=config.routing.cost_budget,
        )

    def classify_and_select(
        self,
        task_type_key: str,
        query_text: str,
        cost_budget: float | None = None,
        preferences: UserPreferences | dict[str, Any] | None = None,
    ) -> SelectionResult:
        """Classify a request and pick the model to send it to.

        Raises:
            TypeError: If preferences is neither a dict nor UserPreferences
            ValueError: If a preference value has the wrong type
        """
        if isinstance(preferences, dict):
            preferences = UserPreferences.from_dict(preferences)
        elif preferences is not None and not isinstance(preferences, UserPreferences):
            raise TypeError(f"preferences must be an object, got {type(preferences).__name__}")
        budget = self.default_budget if cost_budget is None else cost_budget

        requirement = self.classifier.classify(task_type_key, query_text)
        return self.selector.select(requirement, budget, preferences)

    def report_usage(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        actual_cost: float | None = None,
        task_type: str | None = None,
        check_alerts: bool = True,
    ) -> float:
        """Record a completed model call.

        When actual_cost is None the cost is computed from list prices.
        Pass check_alerts=False when the caller delivers alerts itself.

        Returns:
            The cost that was recorded
        """
        if input_tokens < 0 or output_tokens < 0:
            raise ValueError("token counts must be non-negative")
        cost = (
            calculate_cost(model_id, input_tokens, output_tokens)
            if actual_cost is None
            else actual_cost
        )

        self.meter.record(cost)
        if self.ledger is not None:
            self.ledger.record_usage(
                model=model_id,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
                task_type=task_type,
            )
        logger.debug(
            f"Recorded usage: {model_id} - {input_tokens} in, "
            f"{output_tokens} out, cost: ${cost:.6f}"
        )

        if check_alerts and self.alerter is not None:
            self.alerter.notify()
        return cost

    def get_cost_snapshot(self) -> CostTotals:
        """Current hourly/daily/monthly totals."""
        return self.meter.current_totals()

    def fallback_model(self, event: str) -> str:
        """Model to switch to after a failure event (default model if unmapped)."""
        return self.fallbacks.get(event, self.registry.default_model_id)

    def start(self) -> None:
        self.meter.start()

    def stop(self) -> None:
        self.meter.stop()
