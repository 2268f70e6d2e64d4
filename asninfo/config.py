import os
from dataclasses import dataclass

# Refuse to hit the upstream dumps more often than once an hour.
MINIMUM_REFRESH_SECS = 3600
DEFAULT_REFRESH_SECS = 6 * 3600
DEFAULT_MAX_ASNS = 100

DEFAULT_SOURCE_URL = "https://data.bgpkit.com/commons/asinfo.jsonl"
DEFAULT_COUNTRIES_URL = "https://download.geonames.org/export/dump/countryInfo.txt"


def int_env(name: str, default: int, *, min_value: int | None = None, max_value: int | None = None) -> int:
    """Integer setting from the environment, clamped into [min_value, max_value].

    Unset or non-numeric values yield `default`.
    """
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except (ValueError, TypeError):
        value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value
    return value


def bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    refresh_secs: int = DEFAULT_REFRESH_SECS
    simplified: bool = False
    max_asns: int = DEFAULT_MAX_ASNS
    source_url: str = DEFAULT_SOURCE_URL
    countries_url: str = DEFAULT_COUNTRIES_URL
    http_timeout: int = 60
    bind_host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        refresh_secs=int_env("ASNINFO_REFRESH_SECS", DEFAULT_REFRESH_SECS, min_value=MINIMUM_REFRESH_SECS),
        simplified=bool_env("ASNINFO_SIMPLIFIED"),
        max_asns=int_env("ASNINFO_MAX_ASNS", DEFAULT_MAX_ASNS, min_value=1),
        source_url=os.getenv("ASNINFO_SOURCE_URL", DEFAULT_SOURCE_URL),
        countries_url=os.getenv("ASNINFO_COUNTRIES_URL", DEFAULT_COUNTRIES_URL),
        http_timeout=int_env("ASNINFO_HTTP_TIMEOUT", 60, min_value=1),
        bind_host=os.getenv("BIND_HOST", "0.0.0.0"),
        port=int_env("PORT", 8080, min_value=1, max_value=65535),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
