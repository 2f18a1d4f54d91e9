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
import ipaddress
import logging
import re

import idna

from .models import Address

logger = logging.getLogger(__name__)

FORBIDDEN_PATTERNS_VERSION = 2
"""Bumped whenever FORBIDDEN_PATTERNS changes"""

FORBIDDEN_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"^localhost\.?$"), "loopback hostname"),
    (re.compile(r"^127\."), "IPv4 loopback"),
    (re.compile(r"^0\.0\.0\.0$"), "unspecified IPv4 address"),
    (re.compile(r"^(?:0{0,4}:){2,7}0{0,4}$"), "unspecified IPv6 address"),
    (re.compile(r"^(?:0{0,4}:){2,7}0{0,3}1$"), "IPv6 loopback"),
    (re.compile(r"^10\."), "private network (10/8)"),
    (re.compile(r"^192\.168\."), "private network (192.168/16)"),
    (re.compile(r"^172\.(?:1[6-9]|2[0-9]|3[01])\."), "private network (172.16/12)"),
    (re.compile(r"^169\.254\."), "IPv4 link-local"),
    (re.compile(r"^fe[89ab][0-9a-f]:"), "IPv6 link-local"),
    (re.compile(r"^f[cd][0-9a-f]{0,2}:"), "IPv6 unique local"),
    (re.compile(r"^ff[0-9a-f]{0,2}:"), "IPv6 multicast"),
)
"""
(pattern, reason) pairs of hosts that must never be queried.

This keeps the lookup from being used to scan local networks or reserved
address space. Patterns are matched against the lower-cased host component.
"""

_IPV4_MAPPED = re.compile(r"^(?:0{0,4}:){2,5}ffff:(\d{1,3}(?:\.\d{1,3}){3})$")
_IPV6_WITH_PORT = re.compile(r"^\[(.+)\]:(\d+)$")
_IPV6_BRACKETED = re.compile(r"^\[(.+)\]$")
_DOMAIN = re.compile(
    r"^(?!-)(?:[A-Za-z0-9-]{1,63}\.)+(?:[A-Za-z]{2,})$|^(xn--[A-Za-z0-9-]{1,63})\.[A-Za-z]{2,}$"
)

MIN_PORT = 1
MAX_PORT = 65535


def is_valid_port(port) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and MIN_PORT <= port <= MAX_PORT


def split_address(address: str) -> tuple[str, str | None]:
    """
    Split an address into its host and the raw text after the port separator.

    The order of the checks matters, IPv6 literals contain colons that must
    not be mistaken for a port separator:

    1. `[addr]:port`
    2. `[addr]`
    3. more than one colon and no closing bracket: a bare IPv6 literal
    4. `host:suffix`, split at the last colon
    5. anything else is a host without a port

    :return: (host, port text) where port text is None if there is no separator
    """
    if match := _IPV6_WITH_PORT.match(address):
        return match.group(1), match.group(2)
    if match := _IPV6_BRACKETED.match(address):
        return match.group(1), None
    if address.count(":") > 1 and not address.endswith("]"):
        return address, None
    host, sep, suffix = address.rpartition(":")
    if sep:
        return host, suffix
    return address, None


def parse_server_address(address: str, default_port: int) -> Address:
    """
    Parse a user supplied server address into host and port.

    :param address: The address as typed, e.g. "example.com:25565" or "[2001:db8::1]:19132"
    :param default_port: Port used when the address does not carry one
    """
    host, port_text = split_address(address)
    if port_text is None:
        return Address(host, default_port)
    if port_text.isdigit():
        return Address(host, int(port_text))
    return Address(address, default_port)


def classify(host: str) -> str | None:
    """
    Check a host against FORBIDDEN_PATTERNS.

    :param host: Hostname or IP literal, brackets around IPv6 literals are tolerated
    :return: The reason the host is forbidden, or None if it may be queried
    """
    candidate = host.strip().lower()
    if candidate.startswith("["):
        candidate = candidate[1:].split("]", 1)[0]
    if match := _IPV4_MAPPED.match(candidate):
        candidate = match.group(1)
    for pattern, reason in FORBIDDEN_PATTERNS:
        if pattern.search(candidate):
            return reason
    return None


def validate_server_address(address: str) -> str | None:
    """
    Verify that a server address is a public address with a sane port.

    Runs before any network access.

    :param address: The address as typed by the user
    :return: The unchanged address if it is acceptable, otherwise None
    """
    host, port_text = split_address(address.strip())
    if not host:
        logger.debug("Rejected %r: empty host", address)
        return None
    if (reason := classify(host)) is not None:
        logger.debug("Rejected %r: %s", address, reason)
        return None
    if host.startswith("[") or "]" in host:
        logger.debug("Rejected %r: malformed IPv6 literal", address)
        return None
    if port_text is not None and not (port_text.isdigit() and is_valid_port(int(port_text))):
        logger.debug("Rejected %r: invalid port %r", address, port_text)
        return None
    return address


def is_ip_literal(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


def is_domain(address: str) -> bool:
    """
    Whether the given address is a syntactically valid domain name.

    Internationalised names are checked in their punycode form.
    """
    if address.lower() == "localhost":
        return True
    try:
        punycode_address = idna.encode(address, uts46=True).decode("utf-8")
    except idna.IDNAError:
        return False
    return bool(_DOMAIN.match(punycode_address))


def get_ip_type(address: str) -> str:
    """
    :return: "IPv4", "IPv6", "Domain" or "Unknown"
    """
    if is_ip_literal(address):
        return "IPv6" if ":" in address else "IPv4"
    if is_domain(address):
        return "Domain"
    return "Unknown"
