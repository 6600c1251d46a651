"""
Client Factory
Centralizes wiring of the transport, cache and rate governor into a client.
"""

from typing import Any

from wanikani.application.client import WaniKaniClient
from wanikani.application.config import ClientSettings, resolve_settings
from wanikani.domain.interfaces import Transport
from wanikani.infrastructure.adapters.httpx_transport import HttpxTransport
from wanikani.infrastructure.http.conditional_cache import ConditionalCache
from wanikani.infrastructure.http.rate_governor import RateGovernor


def create_client(
    settings: ClientSettings | None = None,
    transport: Transport | None = None,
    **overrides: Any,
) -> WaniKaniClient:
    """
    Returns a WaniKaniClient configured from settings.

    Each client gets its own cache and governor.
    """
    settings = settings or resolve_settings(overrides)
    if settings.api_token is None:
        raise ValueError("No API token configured (set WANIKANI_API_TOKEN)")

    return WaniKaniClient(
        token=settings.api_token.get_secret_value(),
        transport=transport or HttpxTransport(timeout=settings.request_timeout),
        cache=ConditionalCache(),
        governor=RateGovernor(window=settings.rate_limit_window),
        base_url=settings.base_url,
        revision=settings.revision,
    )
