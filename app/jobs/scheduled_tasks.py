import threading
import time
from typing import TYPE_CHECKING

import schedule

from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from infrastructure.notifications.service import NotificationService

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("scheduled_job_failed", job=job.__name__, error=str(e))

    return wrapper


def init(service: "NotificationService", settings: "Settings"):
    logger.info("scheduled_tasks_initialized")

    schedule.every(settings.notifications.session_sweep_minutes).minutes.do(
        safe_run(sweep_inactive_sessions), service=service
    )
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat), service=service)
    schedule.every(5).minutes.do(safe_run(channel_healthchecks), service=service)


def clear():
    schedule.clear()


def scheduler_heartbeat(service: "NotificationService"):
    logger.info(
        "scheduler_heartbeat",
        time=time.ctime(),
        queue_depth=service.queue_depth(),
        in_flight=service.in_flight_count(),
        workers_running=service.workers.is_running,
    )


def sweep_inactive_sessions(service: "NotificationService"):
    removed = service.sweep_sessions()
    logger.info(
        "realtime_sessions_swept",
        removed=removed,
        remaining=service.sessions.session_count(),
    )


def channel_healthchecks(service: "NotificationService"):
    logger.info("running_channel_healthchecks")
    for channel, health in service.channel_health().items():
        if not health["healthy"]:
            logger.error(
                "channel_unhealthy",
                channel=channel,
                message=health["message"],
                error_code=health["error_code"],
            )
        else:
            logger.info("channel_healthy", channel=channel)


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
        def run(self):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                cease_continuous_run.wait(interval)

    continuous_thread = ScheduleThread(name="scheduled-tasks", daemon=True)
    continuous_thread.start()
    return cease_continuous_run
