from urllib.parse import unquote

from ipgeo.models import EdgeMetadata

# Preferred header order for the real client IP behind Cloudflare / Vercel
IP_HEADER_CANDIDATES = [
    "cf-connecting-ip",         # Cloudflare, single value
    "x-forwarded-for",          # client, proxy1, proxy2, ...
    "x-real-ip",
    "x-vercel-forwarded-for",
    "x-vercel-proxied-for",
    "forwarded",
]

COUNTRY_HEADERS = ["cf-ipcountry", "x-vercel-ip-country"]
CITY_HEADERS = ["cf-ipcity", "x-vercel-ip-city"]
REGION_HEADERS = ["cf-region", "x-vercel-ip-country-region"]
TIMEZONE_HEADERS = ["cf-timezone", "x-vercel-ip-timezone"]
POSTAL_HEADERS = ["cf-postal-code", "x-vercel-ip-postal-code"]
LATITUDE_HEADERS = ["cf-iplatitude", "x-vercel-ip-latitude"]
LONGITUDE_HEADERS = ["cf-iplongitude", "x-vercel-ip-longitude"]

# Cloudflare sends XX when it cannot place the address
UNKNOWN_COUNTRY_CODES = {"XX", ""}


def strip_port(value: str) -> str:
    """Drop quotes and a trailing port: "[v6]:port" and "v4:port" forms."""
    value = value.strip().strip('"')
    if value.startswith("["):
        end = value.find("]")
        return value[1:end] if end != -1 else value[1:]
    # a bare IPv6 address has several colons and no port
    if value.count(":") == 1:
        return value.split(":", 1)[0]
    return value


def extract_ip_from_headers(headers: dict) -> str | None:
    for name in IP_HEADER_CANDIDATES:
        val = headers.get(name)
        if not val:
            continue
        if name == "x-forwarded-for":
            for token in val.split(","):
                ip = strip_port(token)
                if ip:
                    return ip
            continue
        if name == "forwarded":
            if "for=" not in val:
                continue
            part = val.split("for=")[1].split(";")[0].split(",")[0]
            ip = strip_port(part)
            if ip:
                return ip
            continue
        ip = strip_port(val)
        if ip:
            return ip

    return None


def _first_header(headers: dict, names: list[str]) -> str | None:
    for name in names:
        val = headers.get(name)
        if val and val.strip():
            return val.strip()
    return None


def _float_header(headers: dict, names: list[str]) -> float | None:
    val = _first_header(headers, names)
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        return None


def edge_metadata_from_headers(
    headers: dict, peer_ip: str | None = None
) -> EdgeMetadata:
    """Build EdgeMetadata from lower-cased request headers.

    ``peer_ip`` is the socket address, used when no proxy header names the
    caller.
    """
    country_code = _first_header(headers, COUNTRY_HEADERS)
    if country_code is not None:
        country_code = country_code.upper()
        if country_code in UNKNOWN_COUNTRY_CODES:
            country_code = None

    city = _first_header(headers, CITY_HEADERS)
    if city is not None:
        # Vercel URL-encodes non-ASCII city names
        city = unquote(city)

    return EdgeMetadata(
        connecting_ip=extract_ip_from_headers(headers) or peer_ip,
        country_code=country_code,
        city=city,
        region=_first_header(headers, REGION_HEADERS),
        timezone=_first_header(headers, TIMEZONE_HEADERS),
        postal=_first_header(headers, POSTAL_HEADERS),
        latitude=_float_header(headers, LATITUDE_HEADERS),
        longitude=_float_header(headers, LONGITUDE_HEADERS),
        user_agent=headers.get("user-agent"),
    )
