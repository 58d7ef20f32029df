"""Shared fixtures: fake providers/resolvers and a FastAPI test client."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from api.index import (
    app,
    get_ip_chain,
    get_ipv4_probe,
    get_resolve_chain,
    get_resolver,
)
from ipgeo.chain import ProviderChain
from ipgeo.errors import DomainNotFound
from ipgeo.models import CanonicalGeoRecord, EdgeMetadata, ip_version
from ipgeo.result import Failure, Success


def make_record(ip: str = "203.0.113.5", **overrides) -> CanonicalGeoRecord:
    fields = {
        "ip": ip,
        "ip_version": ip_version(ip),
        "timestamp": "2024-05-01T10:00:00.000Z",
        "country": "Japan",
        "country_code": "JP",
        "city": "Tokyo",
        "region": "Tokyo",
        "postal": "100-0001",
        "timezone": "Asia/Tokyo",
        "latitude": 35.6895,
        "longitude": 139.6917,
        "isp": "Example ISP",
        "org": "Example Org",
        "asn": "AS64500",
        "source": "fake-provider",
    }
    fields.update(overrides)
    return CanonicalGeoRecord(**fields)


class FakeProvider:
    """Stand-in GeoIP provider that records every lookup."""

    def __init__(self, name: str, *, succeed: bool = True, error: str = "boom",
                 raises: Exception | None = None, **record_fields):
        self.name = name
        self.succeed = succeed
        self.error = error
        self.raises = raises
        self.record_fields = record_fields
        self.calls: list[str] = []

    async def lookup(self, ip: str):
        self.calls.append(ip)
        if self.raises is not None:
            raise self.raises
        if not self.succeed:
            return Failure(error=self.error)
        return Success(value=make_record(ip, source=self.name, **self.record_fields))


class FakeResolver:
    def __init__(self, answer=None):
        self.answer = answer
        self.calls: list[str] = []

    async def resolve(self, domain: str):
        self.calls.append(domain)
        if isinstance(self.answer, Exception):
            raise self.answer
        if self.answer is None:
            raise DomainNotFound(domain)
        return self.answer


@pytest.fixture
def edge() -> EdgeMetadata:
    return EdgeMetadata(
        connecting_ip="203.0.113.5",
        country_code="VN",
        city="Hanoi",
        region="HN",
        timezone="Asia/Ho_Chi_Minh",
        postal="100000",
        user_agent="pytest-agent/1.0",
    )


@pytest.fixture
def client():
    """TestClient with the outbound collaborators replaced by fakes.

    Tests set ``client.ip_providers`` / ``client.resolve_providers`` /
    ``client.resolver`` before issuing requests.
    """
    test_client = TestClient(app, raise_server_exceptions=False)
    test_client.ip_providers = [FakeProvider("fake-provider")]
    test_client.resolve_providers = [FakeProvider("fake-provider")]
    test_client.resolver = FakeResolver()
    test_client.probe = None

    app.dependency_overrides[get_ip_chain] = lambda: ProviderChain(test_client.ip_providers)
    app.dependency_overrides[get_resolve_chain] = lambda: ProviderChain(
        test_client.resolve_providers
    )
    app.dependency_overrides[get_resolver] = lambda: test_client.resolver
    app.dependency_overrides[get_ipv4_probe] = lambda: test_client.probe

    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def slow_server():
    """Local HTTP server that sends a 200 body 8 bytes every 0.2 s.

    Each chunk arrives well inside httpx's per-read timeout, but the whole
    body takes over two seconds. The body is a valid answer for every
    provider, the DNS resolver and the IPv4 lookup. Yields the base URL.
    """
    body = (
        b'{"status": "success", "success": true, "ip": "198.51.100.4", '
        b'"Answer": [{"type": 1, "data": "198.51.100.4"}]}'
    )

    async def handle(reader, writer):
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
                b"Content-Length: %d\r\nConnection: close\r\n\r\n" % len(body)
            )
            await writer.drain()
            for start in range(0, len(body), 8):
                writer.write(body[start:start + 8])
                await writer.drain()
                await asyncio.sleep(0.2)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield f"http://127.0.0.1:{port}"
    server.close()
    await server.wait_closed()
