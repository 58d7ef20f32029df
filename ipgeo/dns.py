"""DNS-over-HTTPS resolution of a domain to one address.

Queries the JSON API (``?name=...&type=A|AAAA``) served by dns.google and
Cloudflare's ``/dns-query`` endpoint.
"""

import asyncio
from typing import Any

import httpx
import structlog

from ipgeo.errors import DomainNotFound
from ipgeo.models import DnsAnswer, RecordType

logger = structlog.get_logger(__name__)


class DnsResolver:
    """Resolve a domain, preferring IPv4.

    A and AAAA queries run concurrently; a query that fails or times out
    counts as an empty answer so the other record type can still win.
    """

    def __init__(
        self,
        *,
        base_url: str = "https://dns.google/resolve",
        timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout

    async def query(self, domain: str, record_type: RecordType) -> list[DnsAnswer]:
        try:
            async with asyncio.timeout(self._timeout):
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(
                        self._base_url,
                        params={"name": domain, "type": record_type.name},
                        headers={"Accept": "application/json"},
                    )
                    response.raise_for_status()
                    payload = response.json()
        except (TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                "dns_query_failed",
                domain=domain,
                record_type=record_type.name,
                error=str(e) or type(e).__name__,
            )
            return []

        return self._parse_answers(domain, record_type, payload)

    @staticmethod
    def _parse_answers(
        domain: str, record_type: RecordType, payload: Any
    ) -> list[DnsAnswer]:
        if not isinstance(payload, dict):
            return []
        answers = []
        # Answer may also hold CNAME hops before the address records
        for record in payload.get("Answer") or []:
            if not isinstance(record, dict):
                continue
            if record.get("type") == record_type.value and record.get("data"):
                answers.append(
                    DnsAnswer(name=domain, type=record_type, data=str(record["data"]))
                )
        return answers

    async def resolve(self, domain: str) -> DnsAnswer:
        a_records, aaaa_records = await asyncio.gather(
            self.query(domain, RecordType.A),
            self.query(domain, RecordType.AAAA),
        )
        if a_records:
            return a_records[0]
        if aaaa_records:
            return aaaa_records[0]
        raise DomainNotFound(domain)
