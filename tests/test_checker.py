from __future__ import annotations

import asyncio

import httpx
import pytest

import mcinfo
from mcinfo import Checker, Config, ServerFamily, fetch_server_status, info, info_be, query_info
from mcinfo.models import ProviderEndpoint
from mcinfo.probe import UNREACHABLE

JAVA_API = ProviderEndpoint("https://java.example/${address}", ServerFamily.JAVA)
BEDROCK_API = ProviderEndpoint("https://bedrock.example/${address}", ServerFamily.BEDROCK)
CONFIG = Config(server_apis=[JAVA_API, BEDROCK_API], server_template="{name}\nPlayers: {online}/{max}\nPing: {ping}")


@pytest.fixture
def probes(monkeypatch):
    calls = []

    async def fake_ping(host, port, family, timeout=10):
        calls.append((host, port, family))
        return 17

    monkeypatch.setattr(mcinfo, "ping_server", fake_ping)
    return calls


def client_for(payload, status_code: int = 200) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


def test_online_server_is_probed_after_lookup(probes) -> None:
    client = client_for({"online": True, "host": "play.example.com", "port": 25566, "players": {"online": 2, "max": 8}})
    status = run(fetch_server_status("play.example.com:25566", "java", CONFIG, client=client))

    assert status.online
    assert status.latency == 17
    assert probes == [("play.example.com", 25566, ServerFamily.JAVA)]


def test_invalid_address_short_circuits(probes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no lookup expected")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    status = run(fetch_server_status("192.168.1.5:25565", ServerFamily.JAVA, CONFIG, client=client))

    assert not status.online
    assert status.error == CONFIG.messages.invalid_address
    assert (status.host, status.port) == ("192.168.1.5", 25565)
    assert status.players.online is None and status.players.max is None
    assert probes == []


def test_invalid_port_keeps_port_in_range(probes) -> None:
    status = run(fetch_server_status("play.example.com:99999", ServerFamily.JAVA, CONFIG))
    assert status.error == CONFIG.messages.invalid_address
    assert status.port == 25565


def test_total_provider_failure(probes) -> None:
    status = run(fetch_server_status("play.example.com", ServerFamily.JAVA, CONFIG, client=client_for({}, 503)))

    assert not status.online
    assert status.error == CONFIG.messages.lookup_failed
    assert (status.host, status.port) == ("play.example.com", 25565)
    assert probes == []


def test_provider_reported_offline_is_not_probed(probes) -> None:
    client = client_for({"online": False, "error": "Timed out"})
    status = run(fetch_server_status("play.example.com", ServerFamily.JAVA, CONFIG, client=client))

    assert status.error == "Timed out"
    assert probes == []


def test_query_info_renders_template(probes) -> None:
    client = client_for({"online": True, "players": {"online": 5, "max": 20}})
    text = run(query_info("play.example.com", ServerFamily.JAVA, CONFIG, client=client))
    assert text == "play.example.com\nPlayers: 5/20\nPing: 17ms"


def test_query_info_uses_default_address_or_asks_for_one(probes) -> None:
    client = client_for({"online": True, "players": {"online": 1, "max": 2}})
    text = run(query_info(None, ServerFamily.JAVA, CONFIG, default_address="play.example.com", client=client))
    assert text.startswith("play.example.com")

    assert run(query_info(None, ServerFamily.JAVA, CONFIG)) == CONFIG.messages.no_address


def test_info_and_info_be_select_the_family(probes) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(200, json={"online": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    run(info("play.example.com", CONFIG, client=client))
    run(info_be("pe.example.com", CONFIG, client=client))

    assert seen == ["java.example", "bedrock.example"]
    assert [family for _, _, family in probes] == [ServerFamily.JAVA, ServerFamily.BEDROCK]
    assert [port for _, port, _ in probes] == [25565, 19132]


def test_unreachable_probe_drops_ping_line(monkeypatch) -> None:
    async def unreachable(host, port, family, timeout=10):
        return UNREACHABLE

    monkeypatch.setattr(mcinfo, "ping_server", unreachable)
    checker = Checker("play.example.com", ServerFamily.JAVA, CONFIG)
    text = run(checker.info(client_for({"online": True, "players": {"online": 5, "max": 20}})))
    assert text == "play.example.com\nPlayers: 5/20"


def test_checker_check(probes) -> None:
    checker = Checker("pe.example.com:19133", "bedrock", CONFIG)
    status = run(checker.check(client_for({"online": True})))

    assert status.port == 19133
    assert status.edition is mcinfo.Edition.BEDROCK


def test_unencodable_lookup_url_counts_as_failed_lookup(probes) -> None:
    client = client_for({"online": True})
    status = run(fetch_server_status("exa\tmple.com", ServerFamily.JAVA, CONFIG, client=client))

    assert not status.online
    assert status.error == CONFIG.messages.lookup_failed
    assert probes == []


def test_checker_info_passes_image_formatter(probes) -> None:
    config = Config(server_apis=[JAVA_API], server_template="{icon}\n{name}")
    client = client_for({"online": True, "icon": "data:image/png;base64,iVBORw0KGgo="})
    text = run(Checker("play.example.com", ServerFamily.JAVA, config).info(client, image=lambda uri: "[icon]"))
    assert text == "[icon]\nplay.example.com"
