"""Third-party GeoIP providers.

Each provider owns one service's URL and response grammar: an explicit
success predicate plus a mapping onto CanonicalGeoRecord. Adding a service
means adding a subclass and a ``PROVIDERS`` entry; the chain never branches
on provider names.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, TypeAlias
from urllib.parse import quote

import httpx
import structlog

from ipgeo.models import CanonicalGeoRecord, ip_version, utc_timestamp
from ipgeo.result import Failure, Result, Success

logger = structlog.get_logger(__name__)

ProviderResult: TypeAlias = Result[CanonicalGeoRecord, str]


def first_present(*values: Any) -> Any:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _nested(payload: dict, key: str) -> dict:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


class GeoIPProvider(ABC):
    """One GeoIP HTTP service, queried once per lookup."""

    name: str
    url_template: str

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        user_agent: str | None = None,
        url_template: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        if url_template is not None:
            self.url_template = url_template

    def build_url(self, ip: str) -> str:
        return self.url_template.format(ip=quote(ip, safe=":."))

    @abstractmethod
    def is_success(self, payload: dict) -> bool:
        """Whether a 2xx body reports a successful lookup."""

    @abstractmethod
    def normalize(self, ip: str, payload: dict) -> CanonicalGeoRecord:
        """Map this provider's response onto the canonical record."""

    async def lookup(self, ip: str) -> ProviderResult:
        headers = {"Accept": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        try:
            # one deadline for connect, headers and the whole body
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.build_url(ip), headers=headers)
                    if not response.is_success:
                        return Failure(error=f"HTTP {response.status_code}")
                    payload = response.json()
        except (TimeoutError, httpx.TimeoutException):
            return Failure(error="timeout")
        except httpx.HTTPError as e:
            return Failure(error=f"{type(e).__name__}: {e}")
        except ValueError:
            return Failure(error="malformed JSON body")

        if not isinstance(payload, dict):
            return Failure(error="unexpected response shape")
        if not self.is_success(payload):
            reason = first_present(payload.get("message"), payload.get("reason"))
            return Failure(error=f"lookup rejected: {reason or 'no detail'}")

        return Success(value=self.normalize(ip, payload))

    def _record(self, ip: str, **fields: Any) -> CanonicalGeoRecord:
        return CanonicalGeoRecord(
            ip=ip,
            ip_version=ip_version(ip),
            timestamp=utc_timestamp(),
            source=self.name,
            **fields,
        )


class IpApiProvider(GeoIPProvider):
    """ip-api.com (free tier is plain HTTP only)."""

    name = "ip-api.com"
    url_template = (
        "http://ip-api.com/json/{ip}?fields=status,message,country,countryCode,"
        "region,regionName,city,zip,lat,lon,timezone,isp,org,as,query"
    )

    def is_success(self, payload: dict) -> bool:
        return payload.get("status") == "success"

    def normalize(self, ip: str, payload: dict) -> CanonicalGeoRecord:
        return self._record(
            ip,
            country=_str(payload.get("country")),
            country_code=_str(payload.get("countryCode")),
            region=_str(first_present(payload.get("regionName"), payload.get("region"))),
            city=_str(payload.get("city")),
            postal=_str(payload.get("zip")),
            timezone=_str(payload.get("timezone")),
            latitude=_float(payload.get("lat")),
            longitude=_float(payload.get("lon")),
            isp=_str(first_present(payload.get("isp"), payload.get("org"))),
            org=_str(first_present(payload.get("org"), payload.get("as"))),
            asn=_str(payload.get("as")),
        )


class IpWhoisProvider(GeoIPProvider):
    """ipwho.is"""

    name = "ipwho.is"
    url_template = "https://ipwho.is/{ip}"

    def is_success(self, payload: dict) -> bool:
        return payload.get("success") is True

    def normalize(self, ip: str, payload: dict) -> CanonicalGeoRecord:
        connection = _nested(payload, "connection")
        timezone = _nested(payload, "timezone")
        asn = connection.get("asn")
        if isinstance(asn, int) and not isinstance(asn, bool):
            asn = f"AS{asn}"
        return self._record(
            ip,
            country=_str(payload.get("country")),
            country_code=_str(payload.get("country_code")),
            region=_str(payload.get("region")),
            city=_str(payload.get("city")),
            postal=_str(payload.get("postal")),
            timezone=_str(timezone.get("id")),
            latitude=_float(payload.get("latitude")),
            longitude=_float(payload.get("longitude")),
            isp=_str(first_present(connection.get("isp"), connection.get("org"))),
            org=_str(connection.get("org")),
            asn=_str(asn),
        )


class IpapiCoProvider(GeoIPProvider):
    """ipapi.co, which signals errors in the body as ``{"error": true, "reason": ...}``."""

    name = "ipapi.co"
    url_template = "https://ipapi.co/{ip}/json/"

    def is_success(self, payload: dict) -> bool:
        return not payload.get("error") and bool(payload.get("ip"))

    def normalize(self, ip: str, payload: dict) -> CanonicalGeoRecord:
        return self._record(
            ip,
            country=_str(payload.get("country_name")),
            country_code=_str(payload.get("country_code")),
            region=_str(payload.get("region")),
            city=_str(payload.get("city")),
            postal=_str(payload.get("postal")),
            timezone=_str(payload.get("timezone")),
            latitude=_float(payload.get("latitude")),
            longitude=_float(payload.get("longitude")),
            isp=_str(payload.get("org")),
            org=_str(payload.get("org")),
            asn=_str(payload.get("asn")),
        )


PROVIDERS: dict[str, type[GeoIPProvider]] = {
    "ip-api": IpApiProvider,
    "ipwhois": IpWhoisProvider,
    "ipapi": IpapiCoProvider,
}


def build_providers(
    names: tuple[str, ...] | list[str],
    *,
    timeout: float,
    user_agent: str | None = None,
) -> list[GeoIPProvider]:
    """Instantiate providers in the given priority order.

    Raises:
        ValueError: If a name is not in ``PROVIDERS``.
    """
    providers = []
    for name in names:
        try:
            provider_cls = PROVIDERS[name]
        except KeyError:
            raise ValueError(
                f"Unknown GeoIP provider {name!r}; expected one of {sorted(PROVIDERS)}"
            ) from None
        providers.append(provider_cls(timeout=timeout, user_agent=user_agent))
    return providers
