"""HTTP client for the upstream token feed."""

from __future__ import annotations

from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests
from cachetools import TTLCache
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config.settings import DataSourceConfig, get_app_config
from ..datalake.schemas import TokenSnapshot
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from .normalizer import normalize

DEFAULT_HEADERS = {"User-Agent": "kol-tracker/1.0", "Accept": "application/json"}

_ENVELOPE_KEYS = ("tokens", "data", "items", "results", "coins")


class FeedClient:
    """Fetches raw token payloads and hands them to the normalizer."""

    def __init__(
        self,
        config: Optional[DataSourceConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config or get_app_config().data_sources
        self._base_url = str(self._config.feed_base_url).rstrip("/")
        self._cache: TTLCache[str, List[Mapping[str, Any]]] = TTLCache(
            maxsize=128, ttl=max(self._config.cache_ttl_seconds, 0)
        )
        self._cache_lock = Lock()
        self._session = session or requests.Session()
        self._logger = get_logger(__name__)

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self._base_url}{path}"
        headers = dict(DEFAULT_HEADERS)
        if self._config.feed_api_key:
            headers["Authorization"] = f"Bearer {self._config.feed_api_key}"
        retrying = Retrying(
            wait=wait_exponential(multiplier=1, min=1, max=10),
            stop=stop_after_attempt(self._config.retry_attempts),
            retry=retry_if_exception_type(requests.RequestException),
        )
        response = retrying(self._fetch, url, params, headers)
        # Decoded outside the retry loop: a malformed body will not improve on retry.
        return response.json()

    def _fetch(self, url: str, params: Optional[dict], headers: Dict[str, str]) -> requests.Response:
        response = self._session.get(
            url,
            params=params,
            headers=headers,
            timeout=self._config.http_timeout,
        )
        response.raise_for_status()
        return response

    @staticmethod
    def _extract_items(payload: Any) -> Iterable[Mapping[str, Any]]:
        if isinstance(payload, list):
            items: Iterable[Any] = payload
        elif isinstance(payload, Mapping):
            for key in _ENVELOPE_KEYS:
                if isinstance(payload.get(key), list):
                    items = payload[key]
                    break
            else:
                items = [payload]
        else:
            items = []
        return [item for item in items if isinstance(item, Mapping)]

    def fetch_payloads(self, limit: int = 20) -> List[Mapping[str, Any]]:
        """Return up to ``limit`` raw token payloads; errors yield an empty list."""

        endpoint = self._config.feed_tokens_endpoint
        cache_key = f"{endpoint}::{limit}"
        with self._cache_lock:
            if cache_key in self._cache:
                return self._cache[cache_key]

        try:
            payload = self._get(endpoint, params={"limit": limit})
        except ValueError as exc:
            # requests.exceptions.JSONDecodeError is both a ValueError and a
            # RequestException, so this branch must come first.
            self._logger.warning("Token feed returned invalid JSON from %s: %s", endpoint, exc)
            METRICS.increment("feed.invalid_payloads")
            return []
        except (RetryError, requests.RequestException) as exc:
            self._logger.warning("Token feed request to %s failed: %s", endpoint, exc)
            METRICS.increment("feed.request_failures")
            return []

        results = list(self._extract_items(payload))[: max(limit, 0)]
        METRICS.increment("feed.payloads_fetched", len(results))
        with self._cache_lock:
            self._cache[cache_key] = results
        return results

    def fetch_snapshots(self, limit: int = 20) -> List[TokenSnapshot]:
        return [normalize(payload) for payload in self.fetch_payloads(limit)]


__all__ = ["FeedClient"]
