import os
from dataclasses import dataclass
from functools import lru_cache

import structlog
from dotenv import load_dotenv

load_dotenv()

logger = structlog.get_logger(__name__)

DEFAULT_PROVIDERS = "ip-api,ipwhois,ipapi"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("invalid_env_value", name=name, value=value, default=default)
        return default


@dataclass(frozen=True)
class Settings:
    provider_order: tuple[str, ...] = tuple(DEFAULT_PROVIDERS.split(","))
    ip_lookup_timeout: float = 3.0
    resolve_lookup_timeout: float = 5.0
    dns_resolver_url: str = "https://dns.google/resolve"
    dns_timeout: float = 5.0
    ipv4_probe_url: str | None = None
    ipv4_probe_timeout: float = 3.0
    user_agent: str = "DomainResolver/1.0"
    default_language: str = "en"
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        providers = os.getenv("GEOIP_PROVIDERS") or DEFAULT_PROVIDERS
        return cls(
            provider_order=tuple(
                name.strip().lower() for name in providers.split(",") if name.strip()
            ),
            ip_lookup_timeout=_env_float("GEOIP_IP_TIMEOUT", 3.0),
            resolve_lookup_timeout=_env_float("GEOIP_RESOLVE_TIMEOUT", 5.0),
            dns_resolver_url=os.getenv("DNS_RESOLVER_URL", "https://dns.google/resolve"),
            dns_timeout=_env_float("DNS_TIMEOUT", 5.0),
            ipv4_probe_url=os.getenv("IPV4_PROBE_URL") or None,
            ipv4_probe_timeout=_env_float("IPV4_PROBE_TIMEOUT", 3.0),
            user_agent=os.getenv("HTTP_USER_AGENT", "DomainResolver/1.0"),
            default_language=os.getenv("DEFAULT_LANGUAGE", "en").strip().lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
