"""Provider registry: per-channel ordered fallback chains."""

import logging
from collections.abc import Iterable, Set
from dataclasses import dataclass
from typing import Any

import httpx

from notify_shared.enums import Channel
from notify_shared.models import ProviderConfig

from delivery_core.config import ProviderOrderConfig
from delivery_core.cost import is_priced, unit_cost
from delivery_core.providers.base import HttpProviderAdapter, ProviderAdapter
from delivery_core.providers.email import ResendAdapter, SendGridAdapter
from delivery_core.providers.push import FcmAdapter, InboxAdapter
from delivery_core.providers.twilio import TwilioSmsAdapter, TwilioWhatsAppAdapter
from delivery_core.providers.whatsapp import (
    CallMeBotAdapter,
    GreenApiAdapter,
    MetaWhatsAppAdapter,
)

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: dict[tuple[Channel, str], type[HttpProviderAdapter]] = {
    (cls.channel, cls.vendor): cls
    for cls in (
        GreenApiAdapter,
        CallMeBotAdapter,
        MetaWhatsAppAdapter,
        TwilioWhatsAppAdapter,
        TwilioSmsAdapter,
        ResendAdapter,
        SendGridAdapter,
        FcmAdapter,
        InboxAdapter,
    )
}


@dataclass(frozen=True, slots=True)
class ProviderEntry:
    config: ProviderConfig
    adapter: ProviderAdapter

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    @property
    def available(self) -> bool:
        return self.adapter.is_available(self.config)


class ProviderRegistry:
    """Maps each channel to its providers in fallback order.

    Availability is read from configuration only, so the registry is
    immutable once built and safe to share between threads.
    """

    def __init__(self) -> None:
        self._chains: dict[Channel, list[ProviderEntry]] = {}
        self._by_id: dict[str, ProviderEntry] = {}

    def register(self, config: ProviderConfig, adapter: ProviderAdapter) -> None:
        """Append a provider to the end of its channel's chain.

        Raises ValueError if the adapter serves a different channel or the
        provider id is already registered.
        """
        if adapter.channel != config.channel:
            raise ValueError(
                f"Adapter for {adapter.channel} cannot serve {config.channel}"
            )
        if config.provider_id in self._by_id:
            raise ValueError(f"Provider already registered: {config.provider_id}")
        entry = ProviderEntry(config=config, adapter=adapter)
        self._chains.setdefault(config.channel, []).append(entry)
        self._by_id[config.provider_id] = entry

    def get(self, provider_id: str) -> ProviderEntry:
        """Return a provider by id.

        Raises KeyError if no such provider is registered.
        """
        return self._by_id[provider_id]

    def channels(self) -> list[Channel]:
        return list(self._chains)

    def candidates(self, channel: str) -> list[ProviderEntry]:
        return list(self._chains.get(Channel(channel), ()))

    def next(self, channel: str, excluded: Set[str] = frozenset()) -> ProviderEntry | None:
        """First available provider of *channel* whose id is not excluded."""
        for entry in self._chains.get(Channel(channel), ()):
            if entry.provider_id in excluded or not entry.available:
                continue
            return entry
        return None

    def snapshot(self, channel: str) -> list[dict[str, Any]]:
        """Describe every provider of a channel for status dashboards."""
        rows = []
        for entry in self.candidates(channel):
            adapter, config = entry.adapter, entry.config
            configured = adapter.is_configured(config)
            if not configured:
                status = "not_configured"
            elif not config.enabled:
                status = "disabled"
            else:
                status = adapter.probe_status(config)
            rows.append(
                {
                    "provider": entry.provider_id,
                    "vendor": config.vendor,
                    "configured": configured,
                    "available": entry.available,
                    "status": status,
                    "cost_tier": adapter.cost_tier,
                    "unit_cost": (
                        unit_cost(config.channel, config.vendor)
                        if is_priced(config.channel, config.vendor)
                        else None
                    ),
                    "limitations": adapter.limitations,
                }
            )
        return rows


def create_default_registry(
    configs: Iterable[ProviderConfig],
    order: ProviderOrderConfig,
    http_client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> ProviderRegistry:
    """Build a registry from loaded configs in the configured order.

    Raises ValueError if the order names a vendor with no adapter.
    """
    by_key = {(c.channel, c.vendor): c for c in configs}
    client = http_client or httpx.Client()
    registry = ProviderRegistry()

    for channel in Channel:
        for vendor in order.order_for(channel):
            adapter_cls = ADAPTER_CLASSES.get((channel, vendor))
            if adapter_cls is None:
                raise ValueError(f"No adapter for {vendor!r} on channel {channel}")
            config = by_key.get((channel, vendor)) or ProviderConfig(
                channel=channel, vendor=vendor
            )
            registry.register(config, adapter_cls(client, timeout))

    logger.info(
        "Provider registry built",
        extra={
            "chains": {
                str(ch): [e.provider_id for e in registry.candidates(ch) if e.available]
                for ch in registry.channels()
            }
        },
    )
    return registry
