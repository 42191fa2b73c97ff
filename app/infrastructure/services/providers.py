"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.identity import RepositoryUserDirectory, UserDirectory
from infrastructure.notifications import (
    ChannelAdapterRegistry,
    ChannelDispatcher,
    DeliveryLogger,
    DomainNotifier,
    EmailChannel,
    InAppChannel,
    NotificationOrchestrator,
    NotificationService,
    NotificationStore,
    PreferenceResolver,
    PreferencesService,
    PushChannel,
    RetryPolicy,
    RetryScheduler,
    SmsChannel,
    StatsAggregator,
    TemplateCatalog,
)
from infrastructure.persistence import DocumentRepository, create_document_repository
from integrations.fcm import FcmClient
from integrations.notify import NotifyClient


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Infrastructure packages should use this directly to ensure singleton consistency:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.notifications.model_dump()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_document_repository() -> DocumentRepository:
    """
    Get application-scoped document repository singleton.

    The backend (memory or dynamodb) comes from PERSISTENCE_BACKEND.
    """
    return create_document_repository(get_settings().persistence)


@lru_cache
def get_user_directory() -> UserDirectory:
    """Get the resident directory backed by the ``users`` collection."""
    return RepositoryUserDirectory(get_document_repository())


@lru_cache
def get_notification_store() -> NotificationStore:
    settings = get_settings()
    return NotificationStore(
        get_document_repository(),
        claim_lease_seconds=settings.notifications.claim_lease_seconds,
    )


@lru_cache
def get_channel_registry() -> ChannelAdapterRegistry:
    """
    Get the channel adapter registry with every delivery channel registered.

    Provider clients are built from FCM_* and NOTIFY_* settings. Missing
    provider configuration does not prevent startup; sends through that
    channel fail and are retried like any other provider failure.
    """
    settings = get_settings()
    store = get_notification_store()
    notify_client = NotifyClient(settings.notify)
    return ChannelAdapterRegistry(
        [
            PushChannel(FcmClient(settings.fcm), unread_counter=store.count_unread),
            EmailChannel(notify_client),
            SmsChannel(notify_client),
            InAppChannel(),
        ]
    )


@lru_cache
def get_notification_orchestrator() -> NotificationOrchestrator:
    """
    Get application-scoped notification orchestrator singleton.

    Wires the store, delivery logger, dispatcher (registry, resolver, retry
    scheduler), preferences service and user directory.
    """
    settings = get_settings().notifications
    repository = get_document_repository()
    dispatcher = ChannelDispatcher(
        registry=get_channel_registry(),
        resolver=PreferenceResolver(settings.timezone),
        retry_scheduler=RetryScheduler(
            RetryPolicy(
                base_delay_minutes=settings.base_delay_minutes,
                max_delay_minutes=settings.max_delay_minutes,
            )
        ),
        max_workers=settings.dispatch_max_workers,
    )
    return NotificationOrchestrator(
        store=get_notification_store(),
        delivery_logger=DeliveryLogger(repository),
        dispatcher=dispatcher,
        preferences=PreferencesService(repository),
        users=get_user_directory(),
        max_retries=settings.max_retries,
        sweep_batch_size=settings.sweep_batch_size,
        max_workers=settings.dispatch_max_workers,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    """
    Get application-scoped notification service singleton.

    Returns:
        NotificationService: Facade used by the HTTP routes and portal modules.

    Usage:
        @router.get("/")
        def list_notifications(service: NotificationServiceDep):
            return service.list(NotificationQuery(user_id=user_id))
    """
    orchestrator = get_notification_orchestrator()
    delivery_logger = orchestrator.delivery_logger
    return NotificationService(
        orchestrator=orchestrator,
        store=orchestrator.store,
        delivery_logger=delivery_logger,
        preferences=orchestrator.preferences,
        stats=StatsAggregator(delivery_logger),
        users=orchestrator.users,
        query_limit=get_settings().notifications.query_limit,
    )


@lru_cache
def get_domain_notifier() -> DomainNotifier:
    """Get the entry points used by reservations, payments and meetings."""
    return DomainNotifier(
        get_notification_service(),
        TemplateCatalog(get_settings().notifications.timezone),
    )
