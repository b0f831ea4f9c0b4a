"""Dev entry point: python -m notification_api."""
from delivery_core.bootstrap import build_services

from notification_api.app import create_app
from notification_api.config import ApiConfig


def main() -> None:
    config = ApiConfig()
    app = create_app(build_services(), config)
    app.run(host=config.host, port=config.port)


if __name__ == "__main__":
    main()
