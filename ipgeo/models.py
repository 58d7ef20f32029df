import ipaddress
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import IntEnum

EDGE_FALLBACK_SOURCE = "edge-fallback"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ip_version(address: str) -> str | None:
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return None
    return "IPv6" if parsed.version == 6 else "IPv4"


@dataclass(frozen=True)
class IpSubject:
    address: str
    ip_version: str | None

    @classmethod
    def from_address(cls, address: str) -> "IpSubject":
        address = address.strip()
        return cls(address=address, ip_version=ip_version(address))

    @property
    def is_valid(self) -> bool:
        return self.ip_version is not None


@dataclass(frozen=True)
class DomainSubject:
    name: str


@dataclass(frozen=True)
class EdgeMetadata:
    """Facts the edge proxy already knows about the caller (no network cost)."""

    connecting_ip: str | None = None
    country: str | None = None
    country_code: str | None = None
    city: str | None = None
    region: str | None = None
    timezone: str | None = None
    postal: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class CanonicalGeoRecord:
    ip: str
    timestamp: str
    ip_version: str | None = None
    country: str | None = None
    country_code: str | None = None
    city: str | None = None
    region: str | None = None
    postal: str | None = None
    timezone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    isp: str | None = None
    org: str | None = None
    asn: str | None = None
    source: str | None = None


class RecordType(IntEnum):
    A = 1
    AAAA = 28

    @property
    def version(self) -> str:
        return "IPv4" if self is RecordType.A else "IPv6"


@dataclass(frozen=True)
class DnsAnswer:
    name: str
    type: RecordType
    data: str

    @property
    def version(self) -> str:
        return self.type.version
