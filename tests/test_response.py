"""Record merging and response payload shapes."""

from ipgeo.models import (
    EDGE_FALLBACK_SOURCE,
    DnsAnswer,
    DomainSubject,
    IpSubject,
    RecordType,
)
from ipgeo.response import build_ip_payload, build_resolve_payload, edge_record, merge_records
from tests.conftest import make_record

IP_FIELDS = {
    "ip", "type", "country", "countryCode", "city", "region", "postal", "timezone",
    "latitude", "longitude", "isp", "org", "userAgent", "timestamp", "source",
}
RESOLVE_FIELDS = {
    "domain", "ip", "version", "country", "countryCode", "region", "city", "postal",
    "timezone", "isp", "org", "asn", "latitude", "longitude", "timestamp", "source",
}


def test_merge_only_non_null_overlay_fields_win():
    base = make_record(city="Hanoi", isp=None)
    overlay = make_record(city=None, isp="VNPT", source="ipwho.is")

    merged = merge_records(base, overlay)

    assert merged.city == "Hanoi"
    assert merged.isp == "VNPT"
    assert merged.source == "ipwho.is"


def test_ip_payload_fills_gaps_from_edge(edge):
    subject = IpSubject.from_address("203.0.113.5")
    record = make_record(city=None, postal=None, source="ip-api.com")

    payload = build_ip_payload(subject, record, edge)

    assert set(payload) == IP_FIELDS
    assert payload["city"] == "Hanoi"
    assert payload["postal"] == "100000"
    assert payload["country"] == "Japan"
    assert payload["type"] == "IPv4"
    assert payload["userAgent"] == "pytest-agent/1.0"
    assert payload["source"] == "ip-api.com"


def test_ip_payload_degraded(edge):
    subject = IpSubject.from_address("2001:db8::1")

    payload = build_ip_payload(subject, edge_record(subject.address, edge), edge)

    assert payload["type"] == "IPv6"
    assert payload["source"] == EDGE_FALLBACK_SOURCE
    assert payload["isp"] is None


def test_resolve_payload_shape():
    answer = DnsAnswer(name="example.com", type=RecordType.AAAA, data="2001:db8::10")

    payload = build_resolve_payload(
        DomainSubject("example.com"), answer, make_record("2001:db8::10")
    )

    assert set(payload) == RESOLVE_FIELDS
    assert payload["version"] == "IPv6"
    assert payload["asn"] == "AS64500"


def test_resolve_payload_message_only_when_given():
    answer = DnsAnswer(name="example.com", type=RecordType.A, data="192.0.2.1")

    payload = build_resolve_payload(
        DomainSubject("example.com"), answer, make_record("192.0.2.1"), message="note"
    )

    assert payload["message"] == "note"
