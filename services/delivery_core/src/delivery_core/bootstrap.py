"""Wires configuration into the registry, limiter and orchestrator."""

import logging

import httpx
from redis import Redis

from notify_shared.config import PhoneSettings, RedisConfig

from delivery_core.config import (
    DeliveryConfig,
    ProviderOrderConfig,
    RateLimitConfig,
    load_provider_configs,
)
from delivery_core.orchestrator import Orchestrator
from delivery_core.pool import DispatchPool
from delivery_core.providers import ProviderRegistry, create_default_registry
from delivery_core.rate_limiter import LocalRateLimiter, RateLimiter, RedisRateLimiter
from delivery_core.tracker import DeliveryTracker

logger = logging.getLogger(__name__)


def build_registry(
    delivery_config: DeliveryConfig, http_client: httpx.Client | None = None
) -> ProviderRegistry:
    order = ProviderOrderConfig()
    configs = load_provider_configs(order.disabled_providers)
    return create_default_registry(
        configs,
        order,
        http_client=http_client,
        timeout=delivery_config.provider_timeout_seconds,
    )


def build_rate_limiter(config: RateLimitConfig) -> RateLimiter:
    """Return the limiter selected by ``RATE_LIMIT_BACKEND``.

    Raises ValueError for an unknown backend.
    """
    if config.backend == "memory":
        return LocalRateLimiter(config)
    if config.backend == "redis":
        redis_config = RedisConfig()
        redis_client = Redis(
            host=redis_config.host,
            port=redis_config.port,
            db=redis_config.db,
        )
        return RedisRateLimiter(redis_client, config)
    raise ValueError(f"Unknown rate limit backend: {config.backend!r}")


class DeliveryServices:
    """Process-scoped collaborators, built once at startup."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        pool: DispatchPool,
        tracker: DeliveryTracker,
        http_client: httpx.Client,
    ) -> None:
        self.orchestrator = orchestrator
        self.pool = pool
        self.tracker = tracker
        self.http_client = http_client

    @property
    def registry(self) -> ProviderRegistry:
        return self.orchestrator.registry

    def close(self) -> None:
        self.http_client.close()


def build_services(delivery_config: DeliveryConfig | None = None) -> DeliveryServices:
    """Build every delivery collaborator from the environment."""
    delivery_config = delivery_config or DeliveryConfig()
    http_client = httpx.Client()
    registry = build_registry(delivery_config, http_client)
    orchestrator = Orchestrator(
        registry,
        delivery_config,
        rate_limiter=build_rate_limiter(RateLimitConfig()),
        phone_format=PhoneSettings().to_format(),
    )
    pool = DispatchPool(orchestrator, delivery_config.pool_size)
    logger.info(
        "Delivery services built",
        extra={"pool_size": delivery_config.pool_size},
    )
    return DeliveryServices(orchestrator, pool, DeliveryTracker(registry), http_client)
