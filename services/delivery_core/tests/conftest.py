"""Test fixtures for delivery_core tests."""

from collections.abc import Callable, Sequence
from unittest.mock import MagicMock

import httpx
import pytest

from notify_shared.enums import Channel
from notify_shared.models import NotificationPayload, ProviderConfig

from delivery_core.config import DeliveryConfig
from delivery_core.orchestrator import Orchestrator
from delivery_core.providers import ProviderRegistry
from delivery_core.providers.base import ProviderAdapter, SendReceipt

Outcome = SendReceipt | Exception


class ScriptedAdapter(ProviderAdapter):
    """Adapter returning pre-scripted outcomes; the last one repeats."""

    def __init__(self, channel: Channel, vendor: str, outcomes: Sequence[Outcome]) -> None:
        self.channel = channel
        self.vendor = vendor
        self._outcomes = list(outcomes)
        self.calls: list[NotificationPayload] = []

    def _send(self, config: ProviderConfig, payload: NotificationPayload) -> SendReceipt:
        self.calls.append(payload)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def registry() -> ProviderRegistry:
    return ProviderRegistry()


@pytest.fixture()
def add_provider(registry: ProviderRegistry) -> Callable[..., ScriptedAdapter]:
    """Register a scripted provider at the end of its channel chain."""

    def _add(
        vendor: str,
        outcomes: Sequence[Outcome],
        channel: Channel = Channel.WHATSAPP,
        enabled: bool = True,
    ) -> ScriptedAdapter:
        adapter = ScriptedAdapter(channel, vendor, outcomes)
        registry.register(
            ProviderConfig(channel=channel, vendor=vendor, enabled=enabled), adapter
        )
        return adapter

    return _add


@pytest.fixture()
def delivery_config() -> DeliveryConfig:
    return DeliveryConfig(
        max_attempts_per_provider=3,
        backoff_base_seconds=0,
        backoff_max_seconds=0,
    )


@pytest.fixture()
def mock_sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def orchestrator(
    registry: ProviderRegistry, delivery_config: DeliveryConfig, mock_sleep: MagicMock
) -> Orchestrator:
    return Orchestrator(registry, delivery_config, sleep=mock_sleep)


@pytest.fixture()
def whatsapp_payload() -> NotificationPayload:
    return NotificationPayload(to="011 1234-5678", content="Your order shipped")


@pytest.fixture()
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Build an httpx client whose requests are answered by *handler*."""

    def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    return _client
