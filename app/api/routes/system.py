from fastapi import APIRouter

from infrastructure.services import SettingsDep, get_channel_registry

router = APIRouter(tags=["System"])


@router.get("/version")
def get_version(settings: SettingsDep):
    """Get the version of the application."""
    return {"version": settings.GIT_SHA}


@router.get("/health")
def get_health():
    """Healthcheck endpoint."""
    return {"status": "ok"}


@router.get("/health/channels")
def get_channel_health():
    """Provider configuration status for each delivery channel."""
    results = get_channel_registry().health_check()
    return {
        channel.value: {"healthy": result.is_success, "message": result.message}
        for channel, result in results.items()
    }
