import asyncio
import ipaddress

import httpx
import structlog

logger = structlog.get_logger(__name__)


class Ipv4Probe:
    """Ask a "what is my IP" service for an IPv4 address.

    Accepts a plain-text body or ``{"ip": "..."}`` (ipify and friends).
    Any failure returns None; the caller keeps the address it already has.
    """

    def __init__(self, url: str, *, timeout: float = 3.0) -> None:
        self.url = url
        self.timeout = timeout

    async def fetch(self) -> str | None:
        try:
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.url)
                    response.raise_for_status()
                    if "json" in response.headers.get("content-type", ""):
                        body = response.json()
                        candidate = body.get("ip") if isinstance(body, dict) else None
                    else:
                        candidate = response.text
        except (TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.info("ipv4_probe_failed", url=self.url, error=str(e) or type(e).__name__)
            return None

        if not isinstance(candidate, str):
            return None
        try:
            address = ipaddress.ip_address(candidate.strip())
        except ValueError:
            return None
        return str(address) if address.version == 4 else None
