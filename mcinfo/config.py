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
from collections.abc import Mapping
from dataclasses import dataclass, field, fields

from .models import ProviderEndpoint, ServerFamily

DEFAULT_SERVER_APIS: tuple[ProviderEndpoint, ...] = (
    ProviderEndpoint("https://api.mcstatus.io/v2/status/java/${address}", ServerFamily.JAVA),
    ProviderEndpoint("https://api.mcsrvstat.us/3/${address}", ServerFamily.JAVA),
    ProviderEndpoint("https://api.mcstatus.io/v2/status/bedrock/${address}", ServerFamily.BEDROCK),
    ProviderEndpoint("https://api.mcsrvstat.us/bedrock/3/${address}", ServerFamily.BEDROCK),
)
"""Public status lookup services, in order of preference"""

DEFAULT_TEMPLATE = "\n".join(
    [
        "{icon}",
        "{name}",
        "{motd}",
        "Version: {version}",
        "Players: {online}/{max}",
        "Ping: {ping}",
        "Software: {software}",
        "Edition: {edition}",
        "Game mode: {gamemode}",
        "EULA blocked: {eulablock}",
        "Server ID: {serverid}",
        "SRV: {srv}",
        "IP: {ip}",
        "Online players ({playercount}): {playerlist:10}",
        "Plugins ({plugincount}): {pluginlist:10}",
        "Mods ({modcount}): {modlist:10}",
    ]
)


@dataclass(frozen=True)
class Messages:
    """User facing strings, override to localise."""

    invalid_address: str = "Invalid address"
    lookup_failed: str = "Lookup failed"
    offline: str = "Server is offline"
    no_address: str = "Please provide a server address"
    edition_bedrock: str = "Bedrock Edition"
    edition_education: str = "Education Edition"
    yes: str = "Yes"


@dataclass
class Config:
    server_apis: list[ProviderEndpoint] = field(default_factory=lambda: list(DEFAULT_SERVER_APIS))
    """endpoints to query, in order of preference"""
    server_template: str = DEFAULT_TEMPLATE
    """template the status is rendered with"""
    request_timeout: float = 10
    """seconds each status lookup request may take"""
    probe_timeout: float = 10
    """seconds the latency probe waits for the server"""
    user_agent: str = "mcinfo/1.0"
    """User-Agent header sent to the status lookup services"""
    messages: Messages = field(default_factory=Messages)

    @classmethod
    def from_mapping(cls, options: Mapping) -> "Config":
        """
        Build a Config from a plain mapping, e.g. a parsed JSON or YAML file.

        Accepts snake_case keys as well as the camelCase `serverApis` and
        `serverTemplate`. Each entry of `serverApis` is a mapping with a `url`
        and a `type` of "java" or "bedrock".

        :raises TypeError: If a value has the wrong type
        :raises ValueError: If an endpoint names an unknown server family
        """
        config = cls()
        apis = options.get("serverApis", options.get("server_apis"))
        if apis is not None:
            if not isinstance(apis, list):
                raise TypeError(f"serverApis must be a list, not {type(apis).__name__}")
            config.server_apis = [_endpoint(api) for api in apis]
        template = options.get("serverTemplate", options.get("server_template"))
        if template is not None:
            if not isinstance(template, str):
                raise TypeError(f"serverTemplate must be a string, not {type(template).__name__}")
            config.server_template = template
        for key in ("request_timeout", "probe_timeout"):
            if key in options:
                value = options[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    raise ValueError(f"{key} must be a positive number, not {value!r}")
                setattr(config, key, value)
        if "user_agent" in options:
            config.user_agent = str(options["user_agent"])
        messages = options.get("messages")
        if messages is not None:
            if not isinstance(messages, Mapping):
                raise TypeError(f"messages must be a mapping, not {type(messages).__name__}")
            known = {f.name for f in fields(Messages)}
            config.messages = Messages(**{k: str(v) for k, v in messages.items() if k in known})
        return config


def _endpoint(api) -> ProviderEndpoint:
    if isinstance(api, ProviderEndpoint):
        return api
    if not isinstance(api, Mapping) or not isinstance(api.get("url"), str):
        raise TypeError(f"server API entries need a 'url' string, got {api!r}")
    try:
        family = ServerFamily.lookup(api.get("type", "java"))
    except ValueError:
        raise ValueError(f"unknown server type {api.get('type')!r} for {api['url']}") from None
    return ProviderEndpoint(api["url"], family)
