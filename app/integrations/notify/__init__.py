"""GC Notify integration."""

from integrations.notify.client import NotifyClient

__all__ = ["NotifyClient"]
