from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from driftwatch.core.config import settings
from driftwatch.core.logging import setup_logging

app = Celery("driftwatch", include=["driftwatch.tasks.drift"])
app.conf.broker_url = settings.CELERY_BROKER_URL
app.conf.result_backend = settings.CELERY_RESULT_BACKEND
app.conf.timezone = settings.CELERY_TIMEZONE
app.conf.enable_utc = False

app.conf.beat_schedule = {
    "refresh-and-evaluate-drift": {
        "task": "driftwatch.tasks.drift.refresh_and_evaluate",
        "schedule": crontab(
            day_of_week="mon-fri",
            hour=settings.PRICE_REFRESH_HOUR,
            minute=settings.PRICE_REFRESH_MINUTE,
        ),
    },
}


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    # Workers and beat log with the same format as the API
    setup_logging()
