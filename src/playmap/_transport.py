"""HTTP transport for the document-store backend."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from playmap._constants import USER_AGENT
from playmap._redact import redact_for_log
from playmap.config import PlaymapConfig
from playmap.exceptions import PlaymapTransportError, RecordNotFoundError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        ...


class HttpTransport:
    """JSON-over-HTTP transport with optional bearer authentication."""

    def __init__(self, config: PlaymapConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        """GET ``base_url + endpoint`` and return the decoded JSON body.

        Raises
        ------
        RecordNotFoundError
            On HTTP 404.
        PlaymapTransportError
            On any other non-200 status, network failure or invalid JSON.
        """
        url = f"{self._config.base_url}{endpoint}"
        headers = self._headers()
        _logger.debug("GET %s params=%s headers=%s", url, redact_for_log(params), redact_for_log(headers))

        try:
            async with self._http.get(url, params=params, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status == 404:
                    raise RecordNotFoundError(
                        f"No record at {endpoint}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                if resp.status != 200:
                    raise PlaymapTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except PlaymapTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PlaymapTransportError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlaymapTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
