"""
Base data source interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from storefront.services.client import ApiClient
from storefront.services.options import lang_headers


class BaseDataSource(ABC):
    """
    Abstract base class for server-side data fetchers.

    All data sources should:
    - Use ApiClient for HTTP requests (with caching, dedup, retries)
    - Send the locale headers the backend expects
    - Raise ClassifiedError on failure
    """

    def __init__(self, locale: str = "ar", client: ApiClient | None = None):
        from storefront.services.client import get_api_client

        self.locale = locale
        self.client = client or get_api_client()

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in log messages."""
        ...

    @abstractmethod
    async def fetch(self) -> Any:
        """Fetch the source's primary payload."""
        ...

    @property
    def headers(self) -> dict[str, str]:
        return lang_headers(self.locale)
