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
from dataclasses import dataclass, field, replace
from enum import Enum


class ServerFamily(Enum):
    """
    Contains the two server families that can be looked up.

    - `JAVA`: Minecraft Java edition, queried over TCP.
    - `BEDROCK`: Minecraft Bedrock/Education edition, queried over UDP (RakNet).
    """

    def __str__(self) -> str:
        return str(self.value)

    JAVA = "java"
    """Minecraft Java edition (TCP)"""

    BEDROCK = "bedrock"
    """Minecraft Bedrock/Pocket/Education edition (UDP)"""

    @property
    def default_port(self) -> int:
        """default port for this family"""
        return 25565 if self is ServerFamily.JAVA else 19132

    @classmethod
    def lookup(cls, value: "str | ServerFamily") -> "ServerFamily":
        if isinstance(value, ServerFamily):
            return value
        return cls(str(value).strip().lower())


DEFAULT_PORTS = frozenset(family.default_port for family in ServerFamily)


class Edition(Enum):
    """
    Contains the Bedrock family editions a provider may report.

    - `BEDROCK`: Minecraft Bedrock (Pocket/Windows 10/console).
    - `EDUCATION`: Minecraft Education edition.
    """

    def __str__(self) -> str:
        return str(self.value)

    BEDROCK = "MCPE"
    """Minecraft Bedrock edition"""

    EDUCATION = "MCEE"
    """Minecraft Education edition"""

    @classmethod
    def lookup(cls, value) -> "Edition | None":
        """
        Map a provider edition tag onto an `Edition`.

        :param value: Raw value from a provider payload, e.g. "MCPE" or "education"
        :return: The matching member, or None for anything unrecognised
        """
        if isinstance(value, Edition):
            return value
        if not isinstance(value, str):
            return None
        return _EDITION_ALIASES.get(value.strip().lower())


_EDITION_ALIASES = {
    "mcpe": Edition.BEDROCK,
    "bedrock": Edition.BEDROCK,
    "pocket": Edition.BEDROCK,
    "mcee": Edition.EDUCATION,
    "education": Edition.EDUCATION,
}


@dataclass(frozen=True)
class Address:
    host: str
    """hostname or IP address, IPv6 literals without brackets"""
    port: int
    """port number"""

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ProviderEndpoint:
    url: str
    """URL template containing the `${address}` marker"""
    family: ServerFamily
    """server family this endpoint answers for"""


@dataclass(frozen=True)
class NamedEntry:
    """A mod or plugin reported by a provider."""

    name: str
    version: str | None = None

    def __str__(self) -> str:
        return f"{self.name}-{self.version}" if self.version else self.name


@dataclass(frozen=True)
class SrvRecord:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Players:
    online: int | None = None
    """current number of players online"""
    max: int | None = None
    """maximum player capacity"""
    list: tuple[str, ...] | None = None
    """names of online players, may be shorter than `online`"""


@dataclass(frozen=True)
class ServerStatus:
    """
    The canonical status record every provider payload is reduced to.

    Optional attributes are None when the provider did not supply them, which
    keeps "no data" distinguishable from "empty data" when rendering.
    """

    online: bool
    host: str
    port: int
    players: Players = field(default_factory=Players)
    ip_address: str | None = None
    eula_blocked: bool | None = None
    latency: int | None = None
    """round trip time in milliseconds, `UNREACHABLE` if the probe failed"""
    version_name: str | None = None
    version_name_clean: str | None = None
    motd: str | None = None
    icon: str | None = None
    """base64 PNG data URI"""
    mods: tuple[NamedEntry, ...] | None = None
    software: str | None = None
    plugins: tuple[NamedEntry, ...] | None = None
    srv_record: SrvRecord | None = None
    gamemode: str | None = None
    server_id: str | None = None
    edition: Edition | None = None
    error: str | None = None

    @classmethod
    def offline(cls, host: str, port: int, error: str) -> "ServerStatus":
        return cls(online=False, host=host, port=port, players=Players(), error=error)

    def with_latency(self, latency: int) -> "ServerStatus":
        return replace(self, latency=latency)

    @property
    def display_name(self) -> str:
        """The address as a user would type it, omitting a default port."""
        if self.port in DEFAULT_PORTS:
            return self.host
        return str(Address(self.host, self.port))
