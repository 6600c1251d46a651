"""
Conditional-request cache.

Stores the last envelope seen for each GET together with its `ETag` and
`Last-Modified` validators, offers those validators on the next identical
request and substitutes the stored envelope when the server answers 304.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from wanikani.domain.constants import (
    ETAG_HEADER,
    IF_MODIFIED_SINCE_HEADER,
    IF_NONE_MATCH_HEADER,
    LAST_MODIFIED_HEADER,
)
from wanikani.domain.envelope import Envelope
from wanikani.domain.errors import CacheMissError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cacheable request. `url` includes the full query string."""

    method: str
    url: str
    revision: str

    @property
    def cacheable(self) -> bool:
        return self.method.upper() == "GET"


@dataclass(frozen=True)
class ValidatorRecord:
    etag: str | None
    last_modified: str | None
    envelope: Envelope


@dataclass(frozen=True)
class Resolved:
    """
    Outcome of feeding a response through the cache.

    `envelope` is None only for passthrough statuses that carried no body.
    """

    status: int
    envelope: Envelope | None
    from_cache: bool = False


class ConditionalCache:
    def __init__(self):
        self._entries: dict[CacheKey, ValidatorRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> ValidatorRecord | None:
        with self._lock:
            return self._entries.get(key)

    def prepare_request(self, key: CacheKey) -> dict[str, str]:
        """Return the conditional headers to attach, empty when there is no baseline."""
        if not key.cacheable:
            return {}
        record = self.get(key)
        if record is None:
            return {}

        headers = {}
        if record.etag:
            headers[IF_NONE_MATCH_HEADER] = record.etag
        if record.last_modified:
            headers[IF_MODIFIED_SINCE_HEADER] = record.last_modified
        return headers

    def observe_response(
        self,
        key: CacheKey,
        status: int,
        headers: Mapping[str, str],
        envelope: Envelope | None = None,
    ) -> Resolved:
        """
        Reconcile a response with the store.

        200 stores the validators and envelope, 304 yields the stored envelope
        and every other status passes through untouched.

        Raises:
            CacheMissError: 304 for a key with no stored envelope.
        """
        if status == 304:
            record = self.get(key)
            if record is None:
                raise CacheMissError(f"304 received for {key.method} {key.url} with no cached envelope")
            logger.info(f"Cache hit (304) for {key.url}")
            return Resolved(status, record.envelope, from_cache=True)

        if status != 200 or envelope is None or not key.cacheable:
            return Resolved(status, envelope)

        headers = httpx.Headers(headers)
        fresh = ValidatorRecord(
            etag=headers.get(ETAG_HEADER),
            last_modified=headers.get(LAST_MODIFIED_HEADER),
            envelope=envelope,
        )

        with self._lock:
            current = self._entries.get(key)
            if current is not None and _is_older(envelope, current.envelope):
                logger.warning(
                    f"Ignoring stale response for {key.url}: data_updated_at "
                    f"{envelope.data_updated_at} < {current.envelope.data_updated_at}"
                )
                return Resolved(status, current.envelope, from_cache=True)
            self._entries[key] = fresh

        logger.debug(f"Cached {key.url} (etag={fresh.etag}, last_modified={fresh.last_modified})")
        return Resolved(status, envelope)

    def invalidate(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _is_older(candidate: Envelope, stored: Envelope) -> bool:
    if candidate.data_updated_at is None or stored.data_updated_at is None:
        return False
    return candidate.data_updated_at < stored.data_updated_at
