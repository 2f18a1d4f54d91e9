# mcinfo - A Minecraft server status lookup
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
import asyncio
import logging
from collections.abc import Iterable, Mapping

import httpx

from .models import Address, ProviderEndpoint, ServerFamily, ServerStatus
from .normalize import DEFAULT_OFFLINE_MESSAGE, normalize_api_response

logger = logging.getLogger(__name__)

ADDRESS_MARKER = "${address}"
DEFAULT_USER_AGENT = "mcinfo/1.0"
REQUEST_TIMEOUT = 10


class ProviderError(Exception):
    """A status lookup service did not return a usable payload."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


def expand_url(template: str, address: str) -> str:
    return template.replace(ADDRESS_MARKER, address)


async def fetch_provider(client: httpx.AsyncClient, url: str, user_agent: str = DEFAULT_USER_AGENT) -> Mapping:
    """
    Fetch one status lookup URL.

    :raises ProviderError: On transport errors, non-2xx responses and bodies that are not a JSON object
    """
    try:
        response = await client.get(url, headers={"User-Agent": user_agent})
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ProviderError(url, f"request failed: {e!r}") from e
    if not response.is_success:
        raise ProviderError(url, f"HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as e:
        raise ProviderError(url, "response is not JSON") from e
    if not isinstance(payload, Mapping):
        raise ProviderError(url, f"expected a JSON object, got {type(payload).__name__}")
    return payload


async def aggregate(
    address: str,
    fallback: Address,
    family: ServerFamily,
    endpoints: Iterable[ProviderEndpoint],
    *,
    client: httpx.AsyncClient | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: float = REQUEST_TIMEOUT,
    offline_message: str = DEFAULT_OFFLINE_MESSAGE,
) -> ServerStatus | None:
    """
    Ask every endpoint of `family` at once and normalise the preferred answer.

    All requests are awaited to completion. The answer used is the first one in
    declaration order that succeeded, not the fastest one, so the endpoint
    order in the configuration is the order of preference.

    :param address: The validated address as typed, substituted into each URL template
    :param fallback: The parsed form of `address`
    :param family: Server family to look up
    :param endpoints: Configured endpoints, those of other families are skipped
    :param client: Client to send the requests with, a temporary one is created if omitted
    :return: The normalised status, or None if no endpoint returned a usable payload
    """
    urls = [expand_url(endpoint.url, address) for endpoint in endpoints if endpoint.family is family]
    if not urls:
        logger.warning("No %s status endpoints configured", family)
        return None

    if client is None:
        async with httpx.AsyncClient(timeout=httpx.Timeout(timeout)) as own_client:
            results = await asyncio.gather(
                *(fetch_provider(own_client, url, user_agent) for url in urls), return_exceptions=True
            )
    else:
        results = await asyncio.gather(
            *(fetch_provider(client, url, user_agent) for url in urls), return_exceptions=True
        )

    for url, result in zip(urls, results):
        if isinstance(result, ProviderError):
            logger.debug("Status lookup failed: %s", result)
            continue
        if isinstance(result, BaseException):
            raise result
        logger.debug("Using status from %s", url)
        return normalize_api_response(result, fallback, family, offline_message)

    logger.warning("All %d %s status endpoints failed for %s", len(urls), family, address)
    return None
