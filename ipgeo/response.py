"""Canonical record merging and the JSON payloads of /ip and /resolve."""

from dataclasses import fields, replace
from typing import Any

from ipgeo.models import (
    EDGE_FALLBACK_SOURCE,
    CanonicalGeoRecord,
    DnsAnswer,
    DomainSubject,
    EdgeMetadata,
    IpSubject,
    ip_version,
    utc_timestamp,
)


def edge_record(ip: str, edge: EdgeMetadata) -> CanonicalGeoRecord:
    """Record built only from proxy headers; isp/org/asn are never known here."""
    return CanonicalGeoRecord(
        ip=ip,
        ip_version=ip_version(ip),
        timestamp=utc_timestamp(),
        country=edge.country or edge.country_code,
        country_code=edge.country_code,
        city=edge.city,
        region=edge.region,
        postal=edge.postal,
        timezone=edge.timezone,
        latitude=edge.latitude,
        longitude=edge.longitude,
        source=EDGE_FALLBACK_SOURCE,
    )


def merge_records(
    base: CanonicalGeoRecord, overlay: CanonicalGeoRecord
) -> CanonicalGeoRecord:
    """Overlay wins field by field, but only where it is not None."""
    changes = {
        f.name: getattr(overlay, f.name)
        for f in fields(overlay)
        if getattr(overlay, f.name) is not None
    }
    return replace(base, **changes)


def build_ip_payload(
    subject: IpSubject, record: CanonicalGeoRecord, edge: EdgeMetadata
) -> dict[str, Any]:
    if record.source != EDGE_FALLBACK_SOURCE:
        record = merge_records(edge_record(subject.address, edge), record)
    return {
        "ip": subject.address,
        "type": subject.ip_version,
        "country": record.country,
        "countryCode": record.country_code,
        "city": record.city,
        "region": record.region,
        "postal": record.postal,
        "timezone": record.timezone,
        "latitude": record.latitude,
        "longitude": record.longitude,
        "isp": record.isp,
        "org": record.org,
        "userAgent": edge.user_agent,
        "timestamp": record.timestamp,
        "source": record.source,
    }


def build_resolve_payload(
    subject: DomainSubject,
    answer: DnsAnswer,
    record: CanonicalGeoRecord,
    message: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "domain": subject.name,
        "ip": answer.data,
        "version": answer.version,
        "country": record.country,
        "countryCode": record.country_code,
        "region": record.region,
        "city": record.city,
        "postal": record.postal,
        "timezone": record.timezone,
        "isp": record.isp,
        "org": record.org,
        "asn": record.asn,
        "latitude": record.latitude,
        "longitude": record.longitude,
        "timestamp": record.timestamp,
        "source": record.source,
    }
    if message is not None:
        payload["message"] = message
    return payload
