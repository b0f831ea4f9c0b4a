"""Integration fixtures: a Redis testcontainer and fake vendor HTTP APIs.

The fake vendors run in a background werkzeug server so adapters talk
real HTTP end to end.
"""

import os
import threading
from collections.abc import Generator
from unittest.mock import patch

import pytest
from redis import Redis
from testcontainers.redis import RedisContainer
from werkzeug.serving import make_server

from delivery_core.bootstrap import DeliveryServices, build_services
from delivery_core.config import DeliveryConfig

from tests.integration.helpers import VendorState, fake_vendor_app

# ---------------------------------------------------------------------------
# Redis (session-scoped container)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    with RedisContainer("redis:7-alpine") as redis_c:
        yield redis_c


@pytest.fixture(scope="session")
def redis_host_port(redis_container: RedisContainer) -> tuple[str, int]:
    host = redis_container.get_container_host_ip()
    port = int(redis_container.get_exposed_port(6379))
    return host, port


@pytest.fixture()
def redis_client(redis_host_port: tuple[str, int]) -> Generator[Redis, None, None]:
    host, port = redis_host_port
    client = Redis(host=host, port=port)
    client.flushdb()
    yield client
    client.close()


# ---------------------------------------------------------------------------
# Fake vendor APIs (session-scoped server, function-scoped state)
# ---------------------------------------------------------------------------



@pytest.fixture(scope="session")
def _vendor_server() -> Generator[tuple[str, VendorState], None, None]:
    state = VendorState()
    server = make_server("127.0.0.1", 0, fake_vendor_app(state))
    port = server.server_address[1]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{port}", state

    server.shutdown()


@pytest.fixture()
def vendors(_vendor_server: tuple[str, VendorState]) -> VendorState:
    _, state = _vendor_server
    state.reset()
    return state


@pytest.fixture()
def services(
    _vendor_server: tuple[str, VendorState],
) -> Generator[DeliveryServices, None, None]:
    """Real delivery services wired to the fake vendors through env vars."""
    base_url, _ = _vendor_server
    env = {
        "NOTIFY_WHATSAPP_PROVIDERS": '["greenapi", "twilio"]',
        "NOTIFY_SMS_PROVIDERS": '["twilio"]',
        "GREEN_API_INSTANCE_ID": "1101",
        "GREEN_API_TOKEN": "green-token",
        "GREEN_API_BASE_URL": base_url,
        "TWILIO_ACCOUNT_SID": "AC1",
        "TWILIO_AUTH_TOKEN": "twilio-token",
        "TWILIO_SMS_FROM": "+15005550006",
        "TWILIO_BASE_URL": f"{base_url}/2010-04-01",
        "RATE_LIMIT_BACKEND": "memory",
    }
    config = DeliveryConfig(
        max_attempts_per_provider=2,
        backoff_base_seconds=0,
        backoff_max_seconds=0,
        provider_timeout_seconds=5,
    )
    with patch.dict(os.environ, env, clear=False):
        built = build_services(config)
    yield built
    built.close()
