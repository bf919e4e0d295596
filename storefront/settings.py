import os
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Backend API
    api_base_url: str = Field(
        default="https://beneshtyapi.geniussystemapi.com/api", alias="API_BASE_URL"
    )

    # Timeouts (seconds)
    request_timeout: float = Field(default=10.0, alias="API_TIMEOUT")
    client_request_timeout: float = Field(default=8.0, alias="API_CLIENT_TIMEOUT")
    upload_timeout: float = Field(default=30.0, alias="API_UPLOAD_TIMEOUT")

    # Retry policy
    server_max_attempts: int = Field(default=3, alias="API_SERVER_MAX_ATTEMPTS")
    client_max_attempts: int = Field(default=2, alias="API_CLIENT_MAX_ATTEMPTS")
    retry_base_delay: float = Field(default=1.0, alias="API_RETRY_BASE_DELAY")
    client_retry_max_delay: float = Field(
        default=5.0, alias="API_CLIENT_RETRY_MAX_DELAY"
    )
    server_retry_max_delay: float | None = Field(
        default=None, alias="API_SERVER_RETRY_MAX_DELAY"
    )

    # Response cache
    cache_max_entries: int = Field(default=100, alias="API_CACHE_MAX_ENTRIES")
    cache_ttl_client: int = Field(default=5, alias="API_CACHE_TTL_CLIENT")
    cache_ttl_home: int = Field(default=300, alias="API_CACHE_TTL_HOME")
    cache_ttl_product: int = Field(default=600, alias="API_CACHE_TTL_PRODUCT")
    cache_ttl_product_bundle: int = Field(
        default=300, alias="API_CACHE_TTL_PRODUCT_BUNDLE"
    )
    cache_ttl_advanced_search: int = Field(
        default=60, alias="API_CACHE_TTL_ADVANCED_SEARCH"
    )

    debug: bool = Field(default=False, alias="API_DEBUG")

    def cache_ttl(self, name: str) -> timedelta:
        """Look up a named TTL (``client``, ``home``, ``product``, ...)."""
        seconds = getattr(self, f"cache_ttl_{name}", None)
        if seconds is None:
            raise KeyError(f"Unknown cache TTL: {name!r}")
        return timedelta(seconds=seconds)


global_settings = Settings.model_validate(dict(os.environ))
