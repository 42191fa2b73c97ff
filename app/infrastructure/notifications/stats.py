"""Delivery statistics computed from delivery logs."""

from datetime import datetime
from typing import Dict, Hashable, Iterable, Optional

from infrastructure.notifications.delivery_log import DeliveryLogger
from infrastructure.notifications.models import (
    ChannelStats,
    DeliveryChannel,
    DeliveryLog,
    DeliveryStatus,
    NotificationStats,
)


def delivery_rate(delivered: int, sent: int) -> float:
    """Percentage of attempts confirmed delivered; 0 when nothing was sent."""
    if sent == 0:
        return 0.0
    return delivered * 100 / sent


def _bucket(
    logs: Iterable[DeliveryLog], key, seed: Iterable[Hashable] = ()
) -> Dict[Hashable, ChannelStats]:
    buckets: Dict[Hashable, ChannelStats] = {k: ChannelStats() for k in seed}
    for log in logs:
        k = key(log)
        if k is None:
            continue
        stats = buckets.setdefault(k, ChannelStats())
        stats.sent += 1
        if log.status == DeliveryStatus.DELIVERED:
            stats.delivered += 1
        elif log.status == DeliveryStatus.FAILED:
            stats.failed += 1
    for stats in buckets.values():
        stats.delivery_rate = delivery_rate(stats.delivered, stats.sent)
    return buckets


class StatsAggregator:
    """Aggregates DeliveryLogs into NotificationStats.

    Every logged attempt counts toward ``total_sent``, including failures.
    """

    def __init__(self, delivery_logger: DeliveryLogger):
        self._logs = delivery_logger

    def compute(
        self,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> NotificationStats:
        logs = self._logs.query(user_id=user_id, start=start, end=end)
        return self.from_logs(logs)

    @staticmethod
    def from_logs(logs: Iterable[DeliveryLog]) -> NotificationStats:
        logs = list(logs)
        delivered = [log for log in logs if log.status == DeliveryStatus.DELIVERED]
        failed = sum(1 for log in logs if log.status == DeliveryStatus.FAILED)

        durations = [
            (log.delivered_at - log.created_at).total_seconds()
            for log in delivered
            if log.delivered_at is not None
        ]
        average = sum(durations) / len(durations) if durations else 0.0

        return NotificationStats(
            total_sent=len(logs),
            total_delivered=len(delivered),
            total_failed=failed,
            delivery_rate=delivery_rate(len(delivered), len(logs)),
            average_delivery_time=average,
            channel_breakdown=_bucket(
                logs, lambda log: log.channel, seed=DeliveryChannel
            ),
            type_breakdown=_bucket(logs, lambda log: log.notification_type),
        )
