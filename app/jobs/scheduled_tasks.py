import threading
import time
from typing import Callable

import schedule

from infrastructure.logging import get_module_logger
from infrastructure.services.providers import (
    get_channel_registry,
    get_notification_orchestrator,
    get_settings,
)

logger = get_module_logger()

JOB_TAG = "notifications"


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "safe_run_error",
                error=str(e),
                function=job.__name__,
                module=job.__module__,
                job_args=args,
                job_kwargs=kwargs,
            )

    wrapper.__name__ = job.__name__
    return wrapper


def init(sweep: Callable[[], object] | None = None):
    """Register the notification jobs with the default scheduler."""
    settings = get_settings().notifications
    sweep = sweep or sweep_due_notifications

    schedule.every(settings.sweep_interval_seconds).seconds.do(safe_run(sweep)).tag(
        JOB_TAG
    )
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat)).tag(JOB_TAG)
    schedule.every(5).minutes.do(safe_run(channel_healthchecks)).tag(JOB_TAG)
    logger.info(
        "scheduled_tasks_initialized",
        sweep_interval_seconds=settings.sweep_interval_seconds,
    )


def clear():
    schedule.clear(JOB_TAG)


def sweep_due_notifications():
    stats = get_notification_orchestrator().sweep()
    logger.debug("notification_sweep_ran", due=stats.due, errors=stats.errors)


def scheduler_heartbeat():
    logger.info("running_scheduler_heartbeat", module="scheduled_tasks", time=time.ctime())


def channel_healthchecks():
    logger.info("channel_healthchecks_started")
    for channel, result in get_channel_registry().health_check().items():
        if not result.is_success:
            logger.error(
                "channel_unhealthy",
                channel=channel.value,
                error=result.message,
                error_code=result.error_code,
            )
        else:
            logger.info("channel_healthy", channel=channel.value)


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True)
    continuous_thread.start()
    return cease_continuous_run
