from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from mangum import Mangum
import structlog

from ipgeo import __version__
from ipgeo.chain import ProviderChain
from ipgeo.config import Settings, get_settings
from ipgeo.dns import DnsResolver
from ipgeo.domain import normalize_domain
from ipgeo.edge import edge_metadata_from_headers
from ipgeo.errors import GeoLookupError, MissingParameter
from ipgeo.log import configure_logging
from ipgeo.messages import message, pick_language
from ipgeo.models import EDGE_FALLBACK_SOURCE, DomainSubject, EdgeMetadata, IpSubject
from ipgeo.probe import Ipv4Probe
from ipgeo.providers import build_providers
from ipgeo.response import build_ip_payload, build_resolve_payload

settings = get_settings()
configure_logging(settings.log_level, use_json=settings.log_json)
logger = structlog.get_logger(__name__)

app = FastAPI(title="IP & Domain GeoIP lookup", version=__version__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


# --- Dependencies (overridden in tests) ---
def get_ip_chain(settings: Settings = Depends(get_settings)) -> ProviderChain:
    return ProviderChain(
        build_providers(
            settings.provider_order,
            timeout=settings.ip_lookup_timeout,
            user_agent=settings.user_agent,
        )
    )


def get_resolve_chain(settings: Settings = Depends(get_settings)) -> ProviderChain:
    return ProviderChain(
        build_providers(
            settings.provider_order,
            timeout=settings.resolve_lookup_timeout,
            user_agent=settings.user_agent,
        )
    )


def get_resolver(settings: Settings = Depends(get_settings)) -> DnsResolver:
    return DnsResolver(base_url=settings.dns_resolver_url, timeout=settings.dns_timeout)


def get_ipv4_probe(settings: Settings = Depends(get_settings)) -> Ipv4Probe | None:
    if not settings.ipv4_probe_url:
        return None
    return Ipv4Probe(settings.ipv4_probe_url, timeout=settings.ipv4_probe_timeout)


def request_language(request: Request) -> str:
    return pick_language(
        request.headers.get("accept-language"),
        default=get_settings().default_language,
    )


# --- Error rendering ---
@app.exception_handler(GeoLookupError)
async def geo_lookup_error_handler(request: Request, exc: GeoLookupError):
    return JSONResponse(
        exc.to_payload(request_language(request)),
        status_code=exc.status_code,
        headers=CORS_HEADERS,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )
    return JSONResponse(
        {
            "error": str(exc) or "Unknown error",
            "message": message("internal_error", request_language(request)),
        },
        status_code=500,
        headers=CORS_HEADERS,
    )


@app.get("/health")
async def health():
    return JSONResponse({"ok": True}, headers=CORS_HEADERS)


@app.get("/ip")
async def whoami(
    request: Request,
    chain: ProviderChain = Depends(get_ip_chain),
    probe: Ipv4Probe | None = Depends(get_ipv4_probe),
):
    headers = {k.lower(): v for k, v in request.headers.items()}
    edge = edge_metadata_from_headers(
        headers, peer_ip=request.client.host if request.client else None
    )
    subject = IpSubject.from_address(edge.connecting_ip or "Unknown")

    if not subject.is_valid:
        record = chain.fallback(subject.address, edge)
    else:
        lookup_ip = subject.address
        if subject.ip_version == "IPv6" and probe is not None:
            lookup_ip = await probe.fetch() or lookup_ip
        record = await chain.enrich(lookup_ip, edge)

    return JSONResponse(build_ip_payload(subject, record, edge), headers=CORS_HEADERS)


@app.get("/resolve")
async def resolve(
    request: Request,
    domain: str | None = None,
    chain: ProviderChain = Depends(get_resolve_chain),
    resolver: DnsResolver = Depends(get_resolver),
):
    if not domain or not domain.strip():
        raise MissingParameter()

    subject = DomainSubject(normalize_domain(domain))
    answer = await resolver.resolve(subject.name)
    # the caller's edge headers describe the caller, not the domain's host
    record = await chain.enrich(answer.data, EdgeMetadata())

    note = None
    if record.source == EDGE_FALLBACK_SOURCE:
        note = message("geoip_unavailable", request_language(request))

    return JSONResponse(
        build_resolve_payload(subject, answer, record, message=note),
        headers=CORS_HEADERS,
    )


@app.options("/ip")
@app.options("/resolve")
async def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


# Vercel / AWS Lambda entrypoint
handler = Mangum(app)
