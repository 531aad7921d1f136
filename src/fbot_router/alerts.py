# ABOUTME: Cost threshold alerting for the F-Bot cost meter
# ABOUTME: Logs breaches and optionally posts them to a webhook with httpx

"""
F-Bot Cost Alerts.

Checks the CostMeter against configured thresholds. A new breach is
logged; when a webhook URL is configured it is also POSTed as JSON.
Delivery failures are logged and never raised, alerts are advisory.
"""

import logging
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from fbot_router.meter import CostMeter, ThresholdBreach

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10.0


def alert_payload(breach: ThresholdBreach) -> dict[str, Any]:
    """JSON body sent to the alert webhook."""
    return {
        "alert": "cost_threshold_exceeded",
        **breach.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class CostAlerter:
    """Turns threshold breaches into log records and webhook calls.

    Each period alerts once when its counter goes over the threshold. It
    alerts again only after the counter has dropped back to or under the
    threshold (normally through a scheduled reset) and crossed it anew.
    """

    def __init__(
        self,
        meter: CostMeter,
        thresholds: Mapping[str, float | None],
        webhook_url: str | None = None,
    ):
        self.meter = meter
        self.thresholds = dict(thresholds)
        self.webhook_url = webhook_url or None
        self._lock = threading.Lock()
        self._alerted: set[str] = set()

    def _new_breaches(self) -> list[ThresholdBreach]:
        breaches = self.meter.check_thresholds(self.thresholds)
        with self._lock:
            self._alerted &= {breach.period for breach in breaches}
            new = [breach for breach in breaches if breach.period not in self._alerted]
            self._alerted.update(breach.period for breach in new)

        for breach in new:
            logger.warning(
                f"Cost threshold exceeded: {breach.period} "
                f"${breach.current_cost:.4f} > ${breach.threshold:.2f}"
            )
        return new

    def _deliver(self, breaches: list[ThresholdBreach]) -> None:
        for breach in breaches:
            try:
                response = httpx.post(
                    self.webhook_url, json=alert_payload(breach), timeout=WEBHOOK_TIMEOUT
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"Failed to send cost alert: {e}")

    def check(self) -> list[ThresholdBreach]:
        """Check thresholds and deliver new alerts synchronously.

        Returns:
            Breaches that alerted on this call
        """
        breaches = self._new_breaches()
        if self.webhook_url and breaches:
            self._deliver(breaches)
        return breaches

    def notify(self) -> list[ThresholdBreach]:
        """Like check(), but webhook delivery runs on a daemon thread.

        Used on the request path so recording usage never waits on the webhook.
        """
        breaches = self._new_breaches()
        if self.webhook_url and breaches:
            threading.Thread(
                target=self._deliver, args=(breaches,), name="fbot-cost-alert", daemon=True
            ).start()
        return breaches

    async def check_async(self) -> list[ThresholdBreach]:
        """Check thresholds and deliver new alerts from async code."""
        breaches = self._new_breaches()
        if not self.webhook_url or not breaches:
            return breaches

        async with httpx.AsyncClient() as client:
            for breach in breaches:
                try:
                    response = await client.post(
                        self.webhook_url, json=alert_payload(breach), timeout=WEBHOOK_TIMEOUT
                    )
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.error(f"Failed to send cost alert: {e}")
        return breaches
