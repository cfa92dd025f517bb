"""Celery configuration for best-effort provider pushes."""

import os
from datetime import timedelta

# Logging configuration
CELERYD_LOG_LEVEL = os.getenv("CELERY_LOG_LEVEL", "INFO")
CELERYD_LOG_FORMAT = (
    "[%(asctime)s: %(levelname)s/%(processName)s] [%(task_name)s(%(task_id)s)] %(message)s"
)

# Provider pushes are short; keep them off long-running queues
CELERY_TASK_SOFT_TIME_LIMIT = 60
CELERY_TASK_TIME_LIMIT = 90

CELERY_RESULT_EXPIRES = timedelta(hours=6)

# Serialization
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]

# Tasks acknowledged after completion so a lost worker re-runs the push
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_TASK_ACKS_LATE = True

CELERY_WORKER_CONCURRENCY = int(os.getenv("CELERY_WORKER_CONCURRENCY", "4"))
