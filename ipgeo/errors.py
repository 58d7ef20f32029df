"""Errors that end a request with a non-200 status.

Provider problems never appear here: they are recovered inside the
provider chain and only degrade the response.
"""

from typing import Any

from ipgeo.messages import message


class GeoLookupError(Exception):
    status_code = 500
    error = "Internal error"
    message_key = "internal_error"

    def __init__(self, domain: str | None = None) -> None:
        super().__init__(self.error)
        self.domain = domain

    def to_payload(self, lang: str = "en") -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.error,
            "message": message(self.message_key, lang),
        }
        if self.domain is not None:
            payload["domain"] = self.domain
        return payload


class MissingParameter(GeoLookupError):
    status_code = 400
    error = "Missing domain parameter"
    message_key = "missing_domain"


class InvalidDomain(GeoLookupError):
    status_code = 400
    error = "Invalid domain"
    message_key = "invalid_domain"

    def __init__(self, domain: str) -> None:
        super().__init__(domain)

    def __str__(self) -> str:
        return f"Invalid domain: {self.domain!r}"


class DomainNotFound(GeoLookupError):
    status_code = 404
    error = "No valid IP found"
    message_key = "domain_not_found"

    def __init__(self, domain: str) -> None:
        super().__init__(domain)

    def __str__(self) -> str:
        return f"No A or AAAA record for {self.domain}"
