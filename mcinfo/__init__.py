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
import logging
from collections.abc import Callable

import httpx

from .address import (
    FORBIDDEN_PATTERNS,
    classify,
    is_valid_port,
    parse_server_address,
    validate_server_address,
)
from .config import DEFAULT_SERVER_APIS, DEFAULT_TEMPLATE, Config, Messages
from .models import (
    Address,
    Edition,
    NamedEntry,
    Players,
    ProviderEndpoint,
    ServerFamily,
    ServerStatus,
    SrvRecord,
)
from .normalize import normalize_api_response
from .probe import UNREACHABLE, ping_server
from .providers import aggregate
from .render import format_image, format_server_status

__version__ = "1.0.0"

__all__ = [
    "Address",
    "Checker",
    "Config",
    "DEFAULT_SERVER_APIS",
    "DEFAULT_TEMPLATE",
    "Edition",
    "FORBIDDEN_PATTERNS",
    "Messages",
    "NamedEntry",
    "Players",
    "ProviderEndpoint",
    "ServerFamily",
    "ServerStatus",
    "SrvRecord",
    "UNREACHABLE",
    "aggregate",
    "classify",
    "fetch_server_status",
    "format_server_status",
    "info",
    "info_be",
    "normalize_api_response",
    "parse_server_address",
    "ping_server",
    "query_info",
    "validate_server_address",
]

logger = logging.getLogger(__name__)


async def fetch_server_status(
    server: str,
    family: ServerFamily | str = ServerFamily.JAVA,
    config: Config | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> ServerStatus:
    """
    Look up a server through the configured status services and time it.

    Failures never raise: an invalid address, a failed lookup or an offline
    server all come back as a `ServerStatus` with `online` False and `error` set.

    :param server: Server address as typed, e.g. "example.com" or "[2001:db8::1]:19132"
    :param family: Server family to look up
    :param config: Endpoints, timeouts and messages, defaults to `Config()`
    :param client: HTTP client for the status services, one is created per call if omitted
    """
    config = config or Config()
    family = ServerFamily.lookup(family)
    server = server.strip()
    default_port = family.default_port

    address = validate_server_address(server)
    if address is None:
        parsed = parse_server_address(server, default_port)
        port = parsed.port if is_valid_port(parsed.port) else default_port
        return ServerStatus.offline(parsed.host, port, config.messages.invalid_address)

    parsed = parse_server_address(address, default_port)
    status = await aggregate(
        address,
        parsed,
        family,
        config.server_apis,
        client=client,
        user_agent=config.user_agent,
        timeout=config.request_timeout,
        offline_message=config.messages.offline,
    )
    if status is None:
        return ServerStatus.offline(parsed.host, parsed.port, config.messages.lookup_failed)
    if not status.online:
        logger.debug("%s reported offline: %s", address, status.error)
        return status

    latency = await ping_server(status.host, status.port, family, config.probe_timeout)
    return status.with_latency(latency)


async def query_info(
    server: str | None,
    family: ServerFamily | str = ServerFamily.JAVA,
    config: Config | None = None,
    *,
    default_address: str | None = None,
    client: httpx.AsyncClient | None = None,
    image: Callable[[str], str] = format_image,
) -> str:
    """
    Look up a server and render it with the configured template.

    :param server: Server address, or None to use `default_address`
    :param default_address: Address to fall back to, e.g. the one configured for a chat channel
    :param image: Turns the icon data URI into markup for the output channel
    """
    config = config or Config()
    target = server or default_address
    if not target:
        return config.messages.no_address
    status = await fetch_server_status(target, family, config, client=client)
    return format_server_status(status, config.server_template, config.messages, image)


async def info(server: str | None = None, config: Config | None = None, **kwargs) -> str:
    """Query a Java edition server."""
    return await query_info(server, ServerFamily.JAVA, config, **kwargs)


async def info_be(server: str | None = None, config: Config | None = None, **kwargs) -> str:
    """Query a Bedrock edition server."""
    return await query_info(server, ServerFamily.BEDROCK, config, **kwargs)


class Checker:
    def __init__(
        self,
        address: str,
        family: ServerFamily | str = ServerFamily.JAVA,
        config: Config | None = None,
    ):
        """Initializes Checker with the given address and server family.

        Args:
            address (str): The address of the Minecraft server, optionally with a port.
            family (ServerFamily, optional): Java or Bedrock. Defaults to Java.
            config (Config, optional): Endpoints, template and timeouts. Defaults to Config().
        """
        self.address = address
        self.family = ServerFamily.lookup(family)
        self.config = config or Config()

    async def check(self, client: httpx.AsyncClient | None = None) -> ServerStatus:
        """
        Look up the server.

        Returns:
            ServerStatus: The status, offline with an error message if the lookup failed.
        """
        return await fetch_server_status(self.address, self.family, self.config, client=client)

    async def info(
        self, client: httpx.AsyncClient | None = None, image: Callable[[str], str] = format_image
    ) -> str:
        """
        Look up the server and render it with the configured template.

        Args:
            image (Callable, optional): Turns the icon data URI into markup. Defaults to an <img> tag.

        Returns:
            str: The rendered text, or the error message for an offline server.
        """
        status = await self.check(client)
        return format_server_status(status, self.config.server_template, self.config.messages, image)
