from __future__ import annotations

import asyncio

import httpx

from mcinfo.models import Address, ProviderEndpoint, ServerFamily
from mcinfo.providers import ADDRESS_MARKER, aggregate, expand_url

ADDRESS = "play.example.com:25566"
FALLBACK = Address("play.example.com", 25566)

FIRST = ProviderEndpoint("https://first.example/status/${address}", ServerFamily.JAVA)
SECOND = ProviderEndpoint("https://second.example/status/${address}", ServerFamily.JAVA)
BEDROCK = ProviderEndpoint("https://bedrock.example/status/${address}", ServerFamily.BEDROCK)


def run_aggregate(handler, endpoints, family=ServerFamily.JAVA):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await aggregate(ADDRESS, FALLBACK, family, endpoints, client=client)

    return asyncio.run(go())


def test_expand_url() -> None:
    assert ADDRESS_MARKER == "${address}"
    assert expand_url(FIRST.url, ADDRESS) == "https://first.example/status/play.example.com:25566"


def test_first_endpoint_in_declaration_order_wins_even_if_slower() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example":
            await asyncio.sleep(0.05)
            return httpx.Response(200, json={"online": True, "software": "first"})
        return httpx.Response(200, json={"online": True, "software": "second"})

    status = run_aggregate(handler, [FIRST, SECOND])
    assert status.software == "first"


def test_failed_first_endpoint_falls_through_to_second() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example":
            await asyncio.sleep(0.05)
            return httpx.Response(500)
        return httpx.Response(200, json={"online": True, "software": "second"})

    status = run_aggregate(handler, [FIRST, SECOND])
    assert status.software == "second"


def test_undecodable_and_non_object_bodies_count_as_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example":
            return httpx.Response(200, content=b"<html>oops</html>")
        return httpx.Response(200, json=["not", "an", "object"])

    assert run_aggregate(handler, [FIRST, SECOND]) is None


def test_transport_errors_count_as_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"online": True, "software": "second"})

    assert run_aggregate(handler, [FIRST, SECOND]).software == "second"


def test_only_endpoints_of_the_family_are_queried() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(200, json={"online": True})

    status = run_aggregate(handler, [FIRST, BEDROCK, SECOND], family=ServerFamily.BEDROCK)
    assert seen == ["bedrock.example"]
    assert status.edition is not None


def test_no_endpoints_for_family() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert run_aggregate(handler, [BEDROCK]) is None


def test_requests_carry_user_agent_and_address() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.headers["User-Agent"], request.url.path))
        return httpx.Response(200, json={"online": True})

    run_aggregate(handler, [FIRST])
    assert seen == [("mcinfo/1.0", "/status/play.example.com:25566")]


def test_all_requests_are_awaited() -> None:
    finished = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "second.example":
            await asyncio.sleep(0.05)
        finished.append(request.url.host)
        return httpx.Response(200, json={"online": True})

    run_aggregate(handler, [FIRST, SECOND])
    assert sorted(finished) == ["first.example", "second.example"]


def test_provider_reported_offline_is_returned() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"online": False, "error": "Connection refused"})

    status = run_aggregate(handler, [FIRST])
    assert not status.online
    assert status.error == "Connection refused"
    assert (status.host, status.port) == ("play.example.com", 25566)
