"""Sentinel Hub client for the Statistical and Process APIs."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Final, Protocol

import httpx
from django.conf import settings
from django.core.cache import caches

from .exceptions import MAX_ERROR_SNIPPET_CHARS, ImageryProviderError
from .metrics import upstream_latency_seconds, upstream_requests_total
from .strategies import RasterFormat

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final[float] = float(
    getattr(settings, "INDICES_REQUEST_TIMEOUT_SECONDS", 60)
)
TOKEN_EXPIRY_MARGIN_SECONDS: Final[int] = 60


class ImageryClient(Protocol):
    """What the caching engine needs from an imagery provider."""

    def authenticate(self) -> str:
        """Acquire a bearer credential for the following calls."""

    def fetch_statistics(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Run one aggregation request and return the decoded response."""

    def render(self, payload: dict[str, Any], fmt: RasterFormat) -> bytes:
        """Render one raster and return the raw image bytes."""


def _response_snippet(response: httpx.Response | None) -> str | None:
    if response is None:
        return None
    try:
        text = response.text.strip()
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return None
    if not text:
        return None
    normalized = " ".join(text.splitlines())
    if len(normalized) > MAX_ERROR_SNIPPET_CHARS:
        normalized = f"{normalized[:MAX_ERROR_SNIPPET_CHARS]}..."
    return normalized


class SentinelHubClient:
    """Bearer-authenticated calls to Sentinel Hub.

    Calls are made once; failures surface as ``ImageryProviderError`` and
    are retried only by re-running the whole analysis.
    """

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        cache_alias: str = "default",
        http: httpx.Client | None = None,
    ) -> None:
        self.client_id = client_id or getattr(
            settings, "SENTINELHUB_CLIENT_ID", ""
        )
        self.client_secret = client_secret or getattr(
            settings, "SENTINELHUB_CLIENT_SECRET", ""
        )
        if not self.client_id or not self.client_secret:
            raise ValueError("Sentinel Hub client credentials are required")

        self.base_url = (
            base_url
            or getattr(
                settings,
                "SENTINELHUB_BASE_URL",
                "https://services.sentinel-hub.com",
            )
        ).rstrip("/")
        self.token_url = f"{self.base_url}/oauth/token"
        self.statistics_url = f"{self.base_url}/api/v1/statistics"
        self.process_url = f"{self.base_url}/api/v1/process"
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT
        self.cache = caches[cache_alias]
        self._http = http or httpx.Client(timeout=self.timeout_seconds)
        self._token: str | None = None

    # ---- auth -----------------------------------------------------------

    def authenticate(self) -> str:
        """Fetch a bearer token and keep it for the following calls."""

        key = f"indices:sentinelhub:token:{self.client_id}"
        cached = self.cache.get(key)
        if cached:
            self._token = str(cached)
            return self._token

        response = self._send(
            "token",
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        token_data = self._json(response)
        token = token_data.get("access_token")
        if not token:
            raise ImageryProviderError(
                "Sentinel Hub token response missing access_token"
            )
        expires_in = int(token_data.get("expires_in", 3600))
        ttl = max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 60)
        self.cache.set(key, token, ttl)
        self._token = str(token)
        return self._token

    def _auth_headers(self, accept: str) -> dict[str, str]:
        token = self._token or self.authenticate()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": accept,
        }

    # ---- endpoints ------------------------------------------------------

    def fetch_statistics(self, payload: dict[str, Any]) -> dict[str, Any]:
        logger.debug(
            "sentinelhub.statistics payload=%s", json.dumps(payload)
        )
        response = self._send(
            "statistics",
            self.statistics_url,
            json=payload,
            headers=self._auth_headers("application/json"),
        )
        return self._json(response)

    def render(self, payload: dict[str, Any], fmt: RasterFormat) -> bytes:
        response = self._send(
            "process",
            self.process_url,
            json=payload,
            headers=self._auth_headers(fmt.mime_type),
        )
        return response.content

    # ---- transport ------------------------------------------------------

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ImageryProviderError(
                "Unparseable Sentinel Hub response",
                status_code=response.status_code,
                snippet=_response_snippet(response),
            ) from exc
        if not isinstance(data, dict):
            raise ImageryProviderError(
                "Unexpected Sentinel Hub response shape",
                status_code=response.status_code,
            )
        return data

    def _send(
        self,
        endpoint: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        started = time.monotonic()
        try:
            response = self._http.post(
                url,
                json=json,
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
            upstream_latency_seconds.labels(endpoint=endpoint).observe(
                time.monotonic() - started
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            upstream_requests_total.labels(
                endpoint=endpoint, outcome="error"
            ).inc()
            status_code = exc.response.status_code
            snippet = _response_snippet(exc.response)
            logger.warning(
                "sentinelhub.upstream.error endpoint=%s status=%s body=%s",
                endpoint,
                status_code,
                snippet or "<empty>",
            )
            raise ImageryProviderError(
                f"Sentinel Hub {endpoint} error",
                status_code=status_code,
                snippet=snippet,
            ) from exc
        except httpx.RequestError as exc:
            upstream_requests_total.labels(
                endpoint=endpoint, outcome="network"
            ).inc()
            logger.warning(
                "sentinelhub.upstream.network endpoint=%s err=%s",
                endpoint,
                exc,
            )
            raise ImageryProviderError(
                f"Sentinel Hub {endpoint} transport error: {exc}"
            ) from exc
        upstream_requests_total.labels(
            endpoint=endpoint, outcome="success"
        ).inc()
        return response

    def close(self) -> None:
        self._http.close()

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            "SentinelHubClient("
            f"client_id={self.client_id}, base_url={self.base_url}, "
            f"timeout={self.timeout_seconds}"
            ")"
        )
