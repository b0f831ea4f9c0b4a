import atexit
import logging

from flask import Flask

from delivery_core.bootstrap import DeliveryServices

from notification_api.config import ApiConfig
from notification_api.log import setup_logging
from notification_api.routes import bp

logger = logging.getLogger(__name__)


def create_app(services: DeliveryServices, config: ApiConfig | None = None) -> Flask:
    """Flask application factory.

    Args:
        services: Delivery collaborators (real or mock for tests).
        config: API settings; read from the environment when omitted.
    """
    config = config or ApiConfig()
    setup_logging(config.log_level)

    app = Flask(__name__)
    app.extensions["delivery_services"] = services
    app.extensions["api_config"] = config

    app.register_blueprint(bp)

    atexit.register(services.close)

    logger.info("Notification API initialized")
    return app
