"""HTTP transport for the vehicle feed."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pybusmap._constants import USER_AGENT
from pybusmap.config import LiveMapConfig
from pybusmap.exceptions import BusMapTransportError, FeedParseError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the feed poller.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str) -> Any:
        ...


class HttpTransport:
    """Plain JSON-over-HTTP transport backed by an ``aiohttp.ClientSession``."""

    def __init__(self, config: LiveMapConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = (
            aiohttp.ClientTimeout(total=config.request_timeout) if config.request_timeout is not None else None
        )

    async def get_json(self, endpoint: str) -> Any:
        """GET *endpoint* and return the decoded JSON body.

        Raises
        ------
        BusMapTransportError
            On connection failure or a non-2xx status.
        FeedParseError
            If the body is not valid JSON.
        """
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("GET %s", url)

        kwargs: dict[str, Any] = {"headers": headers}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout

        try:
            async with self._http.get(url, **kwargs) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise BusMapTransportError(
                        f"HTTP error! status: {resp.status}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except BusMapTransportError:
            raise
        except UnicodeDecodeError as exc:
            raise FeedParseError(f"Undecodable response body from {endpoint}: {exc.reason}") from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise BusMapTransportError(
                f"Request to {endpoint} failed: {str(exc) or type(exc).__name__}",
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FeedParseError(f"Invalid JSON from {endpoint}: {text[:200]}") from exc
