"""定时任务."""

from podsync.scheduler.tasks import (
    create_scheduler,
    reschedule_refresh,
    shutdown_scheduler,
)

__all__ = [
    "create_scheduler",
    "reschedule_refresh",
    "shutdown_scheduler",
]
