"""
Request options and the header sets shared by every call site.
"""

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any

from storefront.settings import Settings, global_settings

BASE_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "X-Requested-With": "XMLHttpRequest",
}

SERVER_HEADERS: dict[str, str] = {
    "User-Agent": "storefront-server/1.0",
    "X-Client-Type": "Web",
}

LANG_CODES = {
    "ar": "1",
    "en": "2",
}


@dataclass(frozen=True)
class RequestOptions:
    """Recognized per-call settings."""

    timeout: float = 10.0  # seconds, per attempt
    max_attempts: int = 3  # retries after the initial attempt
    cache_ttl: timedelta = timedelta(seconds=5)  # zero disables caching
    headers: dict[str, str] = field(default_factory=dict)
    base_delay: float = 1.0
    max_delay: float | None = 5.0
    vary_on: tuple[str, ...] = ()  # header names folded into the request identity

    def merge(self, **overrides: Any) -> "RequestOptions":
        """
        Return a copy with overrides applied.

        None values are ignored. ``headers`` are merged into the existing
        headers rather than replacing them, and ``cache_ttl`` may be given as
        seconds.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "headers" in changes:
            changes["headers"] = {**self.headers, **changes["headers"]}
        if "cache_ttl" in changes and not isinstance(changes["cache_ttl"], timedelta):
            changes["cache_ttl"] = timedelta(seconds=changes["cache_ttl"])
        if "vary_on" in changes:
            changes["vary_on"] = tuple(changes["vary_on"])
        return replace(self, **changes)

    @property
    def caching(self) -> bool:
        return self.cache_ttl > timedelta(0)


def server_options(settings: Settings | None = None) -> RequestOptions:
    """Defaults for server-side data fetchers."""
    settings = settings or global_settings
    return RequestOptions(
        timeout=settings.request_timeout,
        max_attempts=settings.server_max_attempts,
        cache_ttl=settings.cache_ttl("client"),
        headers={**BASE_HEADERS, **SERVER_HEADERS},
        base_delay=settings.retry_base_delay,
        max_delay=settings.server_retry_max_delay,
    )


def client_options(settings: Settings | None = None) -> RequestOptions:
    """Defaults for browser-initiated calls proxied through the app."""
    settings = settings or global_settings
    return RequestOptions(
        timeout=settings.client_request_timeout,
        max_attempts=settings.client_max_attempts,
        cache_ttl=settings.cache_ttl("client"),
        headers=dict(BASE_HEADERS),
        base_delay=settings.retry_base_delay,
        max_delay=settings.client_retry_max_delay,
    )


def lang_headers(locale: str) -> dict[str, str]:
    """Headers the backend uses to pick the response language."""
    is_english = locale == "en"
    return {
        "langCode": LANG_CODES["en"] if is_english else LANG_CODES["ar"],
        "Accept-Language": "en-US" if is_english else "ar-EG",
    }


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
