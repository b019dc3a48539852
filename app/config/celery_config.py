"""Celery application factory"""
from celery import Celery

from app.config.settings import get_settings


def create_celery_app() -> Celery:
    """Create the Celery app used by the worker and by task producers"""
    settings = get_settings()

    app = Celery(
        "turnos",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["app.tasks.notification_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        task_routes={
            "app.tasks.notification_tasks.*": {"queue": "notifications"},
        },
    )

    return app


celery_app = create_celery_app()
