"""
Celery application configuration
"""
from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

from listing_studio.core.config import settings

DEFAULT_QUEUE = "default"
PUBLISHING_QUEUE = "publishing"

celery_app = Celery(
    "listing_studio_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["listing_studio.workers.reconciliation"],
)

main_exchange = Exchange("main", type="direct", durable=True)

task_queues = [
    Queue(DEFAULT_QUEUE, main_exchange, routing_key=DEFAULT_QUEUE),
    Queue(PUBLISHING_QUEUE, main_exchange, routing_key=PUBLISHING_QUEUE),
]

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task execution
    task_track_started=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,

    # Queue configuration
    task_queues=task_queues,
    task_default_queue=DEFAULT_QUEUE,
    task_default_exchange="main",
    task_default_exchange_type="direct",
    task_default_routing_key=DEFAULT_QUEUE,
    task_routes={
        "listing_studio.workers.reconciliation.reconcile_stale_pushes": {
            "queue": PUBLISHING_QUEUE,
            "routing_key": PUBLISHING_QUEUE,
        },
    },

    # Periodic tasks
    beat_schedule={
        "reconcile-stale-pushes": {
            "task": "listing_studio.workers.reconciliation.reconcile_stale_pushes",
            "schedule": crontab(minute="*/15"),
        },
    },

    result_expires=3600,  # 1 hour
    worker_hijack_root_logger=False,
    worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
    worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s",
)
