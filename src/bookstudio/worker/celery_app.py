import logging

from celery import Celery
from celery.signals import task_failure, worker_ready

from bookstudio.api.settings import get_settings

from . import celery_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

celery_app = Celery(
    "bookstudio_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.config_from_object(celery_config)

celery_app.conf.update(
    task_track_started=True,
    worker_hijack_root_logger=False,
    task_default_retry_delay=10,
    task_max_retries=3,
)


@task_failure.connect
def handle_task_failure(
    sender=None,
    task_id=None,
    exception=None,
    args=None,
    kwargs=None,
    traceback=None,
    einfo=None,
    **kw,
):
    """Log detailed information when a task fails."""
    logger.error(f"Task {sender.name}[{task_id}] failed with exception: {exception}")
    logger.error(f"Task args: {args}")


@worker_ready.connect
def worker_ready_handler(sender, **kwargs):
    logger.info(f"Worker ready: {sender}")


# Import tasks to ensure they are registered with the Celery app
from . import tasks  # noqa: F401,E402
