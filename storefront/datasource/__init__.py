"""
Server-side data sources for the storefront.
"""

from storefront.datasource.base import BaseDataSource
from storefront.datasource.catalog import CatalogSource, ProductDetails

__all__ = ["BaseDataSource", "CatalogSource", "ProductDetails"]
