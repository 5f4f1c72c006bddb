from celery import Celery
from celery.schedules import crontab

from nido.core.config import settings

celery = Celery(
    "nido-worker",
    broker=settings.rabbitmq_url,
    backend=settings.redis_url,
    include=["worker.tasks"],
)

celery.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    task_routes={
        "worker.tasks.expire_verifications": {"queue": "lifecycle"},
        "worker.tasks.send_notifications": {"queue": "notifications"},
    },
    beat_schedule={
        "expire-verifications-hourly": {
            "task": "worker.tasks.expire_verifications",
            "schedule": crontab(minute=0),
        },
        "send-notifications-every-5-minutes": {
            "task": "worker.tasks.send_notifications",
            "schedule": crontab(minute="*/5"),
        },
    },
)
