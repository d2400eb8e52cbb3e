"""Summary: Client-side aggregation of per-user usage counters.

Importance: Every counter update goes through one place that validates it and keeps a snapshot.
Alternatives: Let the board and the reconciler call the gateway directly.
"""

from __future__ import annotations

import logging

from meetingpilot.errors import ValidationError
from meetingpilot.gateway import RemoteStoreGateway
from meetingpilot.models import METRIC_COUNTERS, UserMetrics

logger = logging.getLogger(__name__)


class MetricsAggregator:
    """Summary: Increments and reads the four usage counters of a user.

    Importance: Increments are forwarded to the store as atomic deltas, never as overwrites.
    Alternatives: Read the record, add locally, and write it back.
    """

    def __init__(self, gateway: RemoteStoreGateway) -> None:
        self._gateway = gateway
        self._snapshots: dict[str, UserMetrics] = {}

    def latest(self, user_id: str) -> UserMetrics:
        """Summary: Last counters the store returned for a user, zeroed if none yet."""

        return self._snapshots.get(user_id, UserMetrics(user_id=user_id))

    async def read(self, user_id: str) -> UserMetrics:
        """Summary: Fetch the counters; the store creates a zeroed record on first read."""

        metrics = await self._gateway.get_metrics(user_id)
        self._snapshots[user_id] = metrics
        return metrics

    async def increment(self, user_id: str, counter: str, amount: float = 1) -> UserMetrics:
        """Summary: Add a non-negative amount to one counter.

        Importance: Counters only grow; bad input is rejected before any I/O.
        Alternatives: Let the server reject bad input.
        """

        if counter not in METRIC_COUNTERS:
            raise ValidationError(f"Unknown metric counter: {counter}")
        if amount < 0:
            raise ValidationError("Metric increments must be non-negative")
        if counter == "hours_saved":
            metrics = await self._gateway.add_hours_saved(user_id, amount)
        else:
            if amount != int(amount):
                raise ValidationError(f"{counter} only accepts whole numbers")
            metrics = await self._gateway.increment_metric(user_id, counter, int(amount))
        self._snapshots[user_id] = metrics
        logger.debug("Incremented %s by %s for %s.", counter, amount, user_id)
        return metrics

    async def add_hours_saved(self, user_id: str, hours: float) -> UserMetrics:
        return await self.increment(user_id, "hours_saved", hours)
