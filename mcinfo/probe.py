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
from time import perf_counter

import dns.asyncresolver
import dns.exception

from .address import classify, get_ip_type
from .models import ServerFamily

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10
"""seconds before a probe gives up"""

UNREACHABLE = -1
"""latency reported when the server could not be reached"""

RAKNET_MAGIC = bytes(
    [
        0x00,
        0xFF,
        0xFF,
        0x00,
        0xFE,
        0xFE,
        0xFE,
        0xFE,
        0xFD,
        0xFD,
        0xFD,
        0xFD,
        0x12,
        0x34,
        0x56,
        0x78,
    ]
)

# Unconnected Ping:
#   byte     - 0x01 packet id
#   long     - timestamp, always zero
#   16 bytes - RakNet magic, its last four bytes double as the client id
UNCONNECTED_PING = bytes([0x01]) + bytes(8) + RAKNET_MAGIC


def _elapsed_ms(start_time: float) -> int:
    return round((perf_counter() - start_time) * 1000)


async def tcp_latency(host: str, port: int, timeout: float = PROBE_TIMEOUT) -> int:
    """
    Time how long it takes to establish a TCP connection.

    :return: Milliseconds until connected, or UNREACHABLE on error or timeout
    """
    start_time = perf_counter()
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug("TCP probe of %s:%s failed: %r", host, port, e)
        return UNREACHABLE
    latency = _elapsed_ms(start_time)
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return latency


class _PongProtocol(asyncio.DatagramProtocol):
    """Resolves `reply` with the arrival time of the first datagram."""

    def __init__(self, reply: asyncio.Future) -> None:
        self.reply = reply

    def datagram_received(self, data: bytes, addr) -> None:
        if not self.reply.done():
            self.reply.set_result(perf_counter())

    def error_received(self, exc: Exception) -> None:
        if not self.reply.done():
            self.reply.set_exception(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if not self.reply.done():
            self.reply.set_exception(exc or ConnectionAbortedError())


async def udp_latency(host: str, port: int, timeout: float = PROBE_TIMEOUT) -> int:
    """
    Send a RakNet `Unconnected Ping` and time the first reply of any kind.

    See https://wiki.vg/Raknet_Protocol#Unconnected_Ping

    :return: Milliseconds until a datagram came back, or UNREACHABLE on error or timeout
    """
    loop = asyncio.get_running_loop()
    reply = loop.create_future()
    transport = None
    try:
        transport, _ = await asyncio.wait_for(
            loop.create_datagram_endpoint(lambda: _PongProtocol(reply), remote_addr=(host, port)),
            timeout,
        )
        start_time = perf_counter()
        transport.sendto(UNCONNECTED_PING)
        received_at = await asyncio.wait_for(reply, timeout)
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug("UDP probe of %s:%s failed: %r", host, port, e)
        return UNREACHABLE
    finally:
        if transport is not None:
            transport.close()
        if not reply.done():
            reply.cancel()
    return round((received_at - start_time) * 1000)


async def resolve_host(host: str) -> str | None:
    """
    Resolve a hostname to the first A (or, failing that, AAAA) record.

    IP literals are returned unchanged.

    :return: The address, or None if it does not resolve
    """
    ip_type = get_ip_type(host)
    if ip_type in ("IPv4", "IPv6"):
        return host
    if ip_type != "Domain":
        return None

    try:
        resolver = dns.asyncresolver.Resolver()
    except dns.exception.DNSException as e:
        logger.debug("No resolver for %s: %r", host, e)
        return None
    resolver.lifetime = PROBE_TIMEOUT
    for rdtype in ("A", "AAAA"):
        try:
            response = await resolver.resolve(host, rdtype)
        except dns.exception.DNSException as e:
            logger.debug("%s lookup of %s failed: %r", rdtype, host, e)
            continue
        for rdata in response:
            return str(rdata.address)
    return None


async def ping_server(
    host: str, port: int, family: ServerFamily, timeout: float = PROBE_TIMEOUT
) -> int:
    """
    Measure the round trip time to a server already known to exist.

    TCP connect time for Java servers, unconnected ping/pong time for Bedrock
    servers. Hosts that resolve into a forbidden range are never contacted.

    :param host: Hostname or IP address of the server
    :param port: Port of the server
    :param family: Which transport to time
    :param timeout: Seconds to wait for the connection or reply
    :return: Latency in milliseconds, or UNREACHABLE
    """
    address = await resolve_host(host)
    if address is None:
        logger.debug("Not probing %s: unresolvable", host)
        return UNREACHABLE
    if (reason := classify(address)) is not None:
        logger.debug("Not probing %s (%s): %s", host, address, reason)
        return UNREACHABLE
    if family is ServerFamily.JAVA:
        return await tcp_latency(address, port, timeout)
    return await udp_latency(address, port, timeout)
