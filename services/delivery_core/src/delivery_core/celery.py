"""Celery application setup and worker initialization."""

import logging

from celery import Celery, signals
from kombu import Queue

from notify_shared.config import CeleryConfig

from delivery_core.bootstrap import DeliveryServices, build_services
from delivery_core.config import DeliveryConfig
from delivery_core.log import setup_logging

logger = logging.getLogger(__name__)

celery_config = CeleryConfig()

app = Celery(
    "delivery_core",
    broker=celery_config.broker_url,
    backend=celery_config.result_backend,
)

app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_queues=[
        Queue("delivery"),
        Queue("batch"),
    ],
    task_default_queue="delivery",
    task_routes={"delivery_core.tasks.dispatch_batch": {"queue": "batch"}},
)

app.autodiscover_tasks(["delivery_core"])


@signals.worker_init.connect
def _init_worker(**_kwargs: object) -> None:
    """Initialize shared resources once per worker process."""
    delivery_config = DeliveryConfig()
    setup_logging(delivery_config.log_level)

    app.conf.update(_services=build_services(delivery_config))
    logger.info("Worker initialized")


@signals.worker_shutdown.connect
def _shutdown_worker(**_kwargs: object) -> None:
    """Clean up resources on worker shutdown."""
    services: DeliveryServices | None = getattr(app.conf, "_services", None)
    if services is not None:
        services.close()
    logger.info("Worker shut down")
