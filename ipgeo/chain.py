"""Ordered GeoIP provider chain with edge-header fallback."""

from collections.abc import Sequence

import structlog

from ipgeo.models import CanonicalGeoRecord, EdgeMetadata
from ipgeo.providers import GeoIPProvider, ProviderResult
from ipgeo.response import edge_record
from ipgeo.result import Failure, Success

logger = structlog.get_logger(__name__)


class ProviderChain:
    """Query providers one at a time, in priority order.

    The first success ends the walk; later providers are never contacted.
    When every provider fails the record is built from edge metadata alone
    (``source == "edge-fallback"``), so ``enrich`` always returns a record.
    """

    def __init__(self, providers: Sequence[GeoIPProvider]) -> None:
        self.providers = list(providers)

    async def _attempt(self, provider: GeoIPProvider, ip: str) -> ProviderResult:
        try:
            return await provider.lookup(ip)
        except Exception as e:
            # a provider bug must not take the request down
            logger.error(
                "geoip_provider_crashed",
                provider=provider.name,
                ip=ip,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return Failure(error=f"{type(e).__name__}: {e}")

    async def enrich(self, ip: str, edge: EdgeMetadata) -> CanonicalGeoRecord:
        for provider in self.providers:
            match await self._attempt(provider, ip):
                case Success(value=record):
                    logger.debug("geoip_lookup_succeeded", provider=provider.name, ip=ip)
                    return record
                case Failure(error=reason):
                    logger.warning(
                        "geoip_provider_failed",
                        provider=provider.name,
                        ip=ip,
                        reason=reason,
                    )

        return self.fallback(ip, edge)

    def fallback(self, ip: str, edge: EdgeMetadata) -> CanonicalGeoRecord:
        logger.info("geoip_edge_fallback", ip=ip, providers=len(self.providers))
        return edge_record(ip, edge)
