# User-facing messages, keyed by language then message id.
MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "missing_domain": "Please provide ?domain=example.com",
        "invalid_domain": "Invalid domain",
        "domain_not_found": "No IPv4 or IPv6 address found for this domain",
        "geoip_unavailable": "IP found, but geolocation (GeoIP) lookup is unavailable.",
        "internal_error": "Unable to complete the lookup",
    },
    "vi": {
        "missing_domain": "Vui lòng cung cấp ?domain=example.com",
        "invalid_domain": "Domain không hợp lệ",
        "domain_not_found": "Không tìm thấy địa chỉ IPv4 hoặc IPv6 cho domain này",
        "geoip_unavailable": "Đã tìm thấy IP, nhưng không thể tra thông tin địa lý (GeoIP).",
        "internal_error": "Không thể tra cứu domain",
    },
}


def pick_language(accept_language: str | None, default: str = "en") -> str:
    """Return the first supported language named in an Accept-Language header."""
    if accept_language:
        for part in accept_language.split(","):
            tag = part.split(";")[0].strip().lower()
            primary = tag.split("-")[0]
            if primary in MESSAGES:
                return primary
    return default if default in MESSAGES else "en"


def message(key: str, lang: str = "en") -> str:
    catalog = MESSAGES.get(lang, MESSAGES["en"])
    return catalog.get(key, MESSAGES["en"][key])
