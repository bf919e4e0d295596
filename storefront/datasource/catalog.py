"""
Catalog data source: home page, product bundles, search and product details.

Responses are localized through the ``langCode`` header, which is folded
into the request identity so each language gets its own cache slot.
"""

import re
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storefront.datasource.base import BaseDataSource
from storefront.services.client import ApiClient
from storefront.services.errors import ClassifiedError, ErrorKind
from storefront.settings import Settings, global_settings

HOME = "/Home"
PRODUCT_BUNDLE = "/ProductBundle"
ADVANCED_SEARCH = "/AdvancedSearch"
PRODUCT_DETAILS = "/ProductDetails"


class ProductDetails(BaseModel):
    """Product payload. Only the identifying fields are required."""

    model_config = ConfigDict(extra="allow")

    productId: int | str
    name: str = Field(min_length=1)


class CatalogSource(BaseDataSource):
    """
    Storefront catalog endpoints.

    Usage:
        catalog = CatalogSource(locale="en")
        home = await catalog.get_home()
        product = await catalog.get_product_by_id(42)
    """

    def __init__(
        self,
        locale: str = "ar",
        client: ApiClient | None = None,
        settings: Settings | None = None,
    ):
        super().__init__(locale, client)
        self.settings = settings or global_settings

    @property
    def name(self) -> str:
        return "catalog"

    async def fetch(self) -> Any:
        return await self.get_home()

    async def _get(self, endpoint: str, ttl_name: str) -> Any:
        result = await self.client.get(
            endpoint,
            headers=self.headers,
            cache_ttl=self.settings.cache_ttl(ttl_name),
            vary_on=("langCode",),
        )
        return result.unwrap()

    async def get_home(self) -> Any:
        """Home page sections."""
        return await self._get(HOME, "home")

    async def get_product_bundle(self, page_no: int = 1, page_size: int = 20) -> Any:
        """One page of product bundles."""
        params = httpx.QueryParams({"pageNo": page_no, "pageSize": page_size})
        return await self._get(f"{PRODUCT_BUNDLE}?{params}", "product_bundle")

    async def advanced_search(self, filters: dict[str, Any] | None = None) -> Any:
        """Search results for the given filters, sent as query parameters."""
        endpoint = ADVANCED_SEARCH
        if filters:
            endpoint = f"{endpoint}?{httpx.QueryParams(filters)}"

        try:
            return await self._get(endpoint, "advanced_search")
        except ClassifiedError as e:
            logger.warning(f"Advanced search failed ({e.kind.value}): {e.message}")
            raise

    async def get_product_by_id(self, product_id: int | str) -> ProductDetails:
        """
        Product details by id.

        Non-numeric ids are rejected without a request. Payloads that are not
        objects or lack ``productId``/``name`` raise INVALID_RESPONSE.
        """
        if not re.fullmatch(r"[0-9]+", str(product_id).strip()):
            raise ClassifiedError(
                ErrorKind.INVALID_RESPONSE,
                "Invalid product ID",
                details={"product_id": product_id},
            )

        params = httpx.QueryParams({"id": str(product_id).strip()})
        data = await self._get(f"{PRODUCT_DETAILS}?{params}", "product")

        if not isinstance(data, dict):
            raise ClassifiedError(
                ErrorKind.INVALID_RESPONSE,
                "Invalid product data received",
                details={"product_id": product_id},
            )

        try:
            return ProductDetails.model_validate(data)
        except ValidationError as e:
            raise ClassifiedError(
                ErrorKind.INVALID_RESPONSE,
                "Product data is incomplete",
                details={"product_id": product_id, "errors": e.errors()},
            ) from e
