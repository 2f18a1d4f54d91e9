from __future__ import annotations

import asyncio
import socket

import dns.asyncresolver
import dns.resolver

from mcinfo import probe
from mcinfo.models import ServerFamily
from mcinfo.probe import RAKNET_MAGIC, UNCONNECTED_PING, UNREACHABLE, ping_server, tcp_latency, udp_latency


def _free_port(kind: int) -> int:
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_unconnected_ping_layout() -> None:
    assert len(UNCONNECTED_PING) == 25
    assert UNCONNECTED_PING[0] == 0x01
    assert UNCONNECTED_PING[1:9] == bytes(8)
    assert UNCONNECTED_PING[9:] == RAKNET_MAGIC
    assert RAKNET_MAGIC.hex() == "00ffff00fefefefefdfdfdfd12345678"


def test_tcp_latency_of_listening_server() -> None:
    async def go() -> int:
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            return await tcp_latency("127.0.0.1", port, timeout=2)

    latency = asyncio.run(go())
    assert latency >= 0
    assert latency != UNREACHABLE


def test_tcp_latency_connection_refused() -> None:
    port = _free_port(socket.SOCK_STREAM)
    assert asyncio.run(tcp_latency("127.0.0.1", port, timeout=2)) == UNREACHABLE


def test_udp_latency_with_reply() -> None:
    received = []

    class Echo(asyncio.DatagramProtocol):
        def connection_made(self, transport) -> None:
            self.transport = transport

        def datagram_received(self, data: bytes, addr) -> None:
            received.append(data)
            self.transport.sendto(b"\x1c", addr)

    async def go() -> int:
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(Echo, local_addr=("127.0.0.1", 0))
        try:
            port = transport.get_extra_info("sockname")[1]
            return await udp_latency("127.0.0.1", port, timeout=2)
        finally:
            transport.close()

    latency = asyncio.run(go())
    assert latency >= 0
    assert latency != UNREACHABLE
    assert received == [UNCONNECTED_PING]


def test_udp_latency_without_reply_times_out() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as silent:
        silent.bind(("127.0.0.1", 0))
        port = silent.getsockname()[1]
        assert asyncio.run(udp_latency("127.0.0.1", port, timeout=0.2)) == UNREACHABLE


def test_ping_server_never_contacts_forbidden_hosts(monkeypatch) -> None:
    async def fail(*args, **kwargs):
        raise AssertionError("probe must not run")

    monkeypatch.setattr(probe, "tcp_latency", fail)
    monkeypatch.setattr(probe, "udp_latency", fail)

    assert asyncio.run(ping_server("127.0.0.1", 25565, ServerFamily.JAVA)) == UNREACHABLE
    assert asyncio.run(ping_server("::1", 19132, ServerFamily.BEDROCK)) == UNREACHABLE
    assert asyncio.run(ping_server("not a host", 25565, ServerFamily.JAVA)) == UNREACHABLE


def test_ping_server_rejects_domains_resolving_to_private_ranges(monkeypatch) -> None:
    async def resolve(host: str) -> str:
        return "192.168.0.10"

    monkeypatch.setattr(probe, "resolve_host", resolve)
    assert asyncio.run(ping_server("sneaky.example.com", 25565, ServerFamily.JAVA)) == UNREACHABLE


def test_ping_server_dispatches_by_family(monkeypatch) -> None:
    calls = []

    async def tcp(host, port, timeout):
        calls.append(("tcp", host, port))
        return 11

    async def udp(host, port, timeout):
        calls.append(("udp", host, port))
        return 22

    monkeypatch.setattr(probe, "tcp_latency", tcp)
    monkeypatch.setattr(probe, "udp_latency", udp)

    assert asyncio.run(ping_server("203.0.113.7", 25565, ServerFamily.JAVA)) == 11
    assert asyncio.run(ping_server("203.0.113.7", 19132, ServerFamily.BEDROCK)) == 22
    assert calls == [("tcp", "203.0.113.7", 25565), ("udp", "203.0.113.7", 19132)]


def test_resolve_host_passes_ip_literals_through() -> None:
    assert asyncio.run(probe.resolve_host("203.0.113.7")) == "203.0.113.7"
    assert asyncio.run(probe.resolve_host("2001:db8::1")) == "2001:db8::1"
    assert asyncio.run(probe.resolve_host("not a host")) is None


def test_missing_resolver_configuration_is_unreachable(monkeypatch) -> None:
    def no_config():
        raise dns.resolver.NoResolverConfiguration("no nameservers")

    monkeypatch.setattr(dns.asyncresolver, "Resolver", no_config)
    assert asyncio.run(probe.resolve_host("play.example.com")) is None
    assert asyncio.run(ping_server("play.example.com", 25565, ServerFamily.JAVA)) == UNREACHABLE
