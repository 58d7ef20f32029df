import re

from ipgeo.errors import InvalidDomain

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

# dot-separated labels (1-63 chars, no leading/trailing hyphen) ending in an
# alphabetic TLD of at least two characters; IDN must arrive as punycode
DOMAIN_RE = re.compile(
    r"^(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}$"
)


def clean_domain(raw: str) -> str:
    """Strip the scheme and anything from the first path/query/fragment separator."""
    cleaned = _SCHEME_RE.sub("", raw.strip())
    return re.split(r"[/?#]", cleaned, maxsplit=1)[0]


def normalize_domain(raw: str) -> str:
    cleaned = clean_domain(raw)
    if not DOMAIN_RE.fullmatch(cleaned):
        raise InvalidDomain(cleaned)
    return cleaned
