"""
Storefront API entry point.

Fetches the home payload for a locale through the shared ApiClient and
logs a summary of what came back.
"""

import asyncio
import sys

from loguru import logger

from storefront.datasource import CatalogSource
from storefront.services import ClassifiedError, close_api_client, get_api_client


async def main(locale: str = "ar") -> int:
    """Main function"""
    logger.info(f"Fetching home page (locale={locale})...")

    client = get_api_client()
    catalog = CatalogSource(locale=locale, client=client)

    try:
        home = await catalog.get_home()
        keys = list(home) if isinstance(home, dict) else type(home).__name__
        logger.info(f"Home payload received: {keys}")
        return 0

    except ClassifiedError as e:
        logger.error(f"Failed to fetch home page: {e.kind.value} {e.message}")
        return 1
    finally:
        logger.debug(f"Client status: {client.get_health_status()}")
        await close_api_client()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "ar")))
