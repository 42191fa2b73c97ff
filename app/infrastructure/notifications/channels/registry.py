"""Channel adapter registry.

Holds exactly one adapter per DeliveryChannel and answers lookups by channel.
"""

from typing import Dict, Iterable, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import DeliveryChannel
from infrastructure.operations import OperationResult

logger = get_module_logger()


class ChannelAdapterRegistry:
    """Registry of channel adapters keyed by DeliveryChannel.

    Example:
        registry = ChannelAdapterRegistry([PushChannel(fcm), InAppChannel()])
        adapter = registry.get(DeliveryChannel.PUSH)
    """

    def __init__(self, adapters: Optional[Iterable[ChannelAdapter]] = None):
        self._adapters: Dict[DeliveryChannel, ChannelAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ChannelAdapter) -> None:
        """Register an adapter, replacing any previous one for the channel."""
        if adapter.channel in self._adapters:
            logger.warning("channel_adapter_replaced", channel=adapter.channel.value)
        self._adapters[adapter.channel] = adapter
        logger.debug(
            "channel_adapter_registered",
            channel=adapter.channel.value,
            provider=adapter.provider_name,
        )

    def get(self, channel: DeliveryChannel) -> Optional[ChannelAdapter]:
        """Return the adapter for a channel, or None if unregistered."""
        return self._adapters.get(channel)

    def channels(self) -> List[DeliveryChannel]:
        return list(self._adapters)

    def health_check(self) -> Dict[DeliveryChannel, OperationResult]:
        """Run every adapter's health check."""
        return {channel: a.health_check() for channel, a in self._adapters.items()}

    def __contains__(self, channel: object) -> bool:
        return channel in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
