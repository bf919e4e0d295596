"""
Service layer infrastructure - resilient requests to the commerce backend.

Provides:
- ResponseCache: FIFO-bounded TTL cache for GET responses
- RequestDeduplicator: Prevents duplicate concurrent requests
- Retry policy: Exponential backoff for transient failures
- ApiClient: Unified client combining all patterns
"""

from storefront.services.errors import (
    ServiceError,
    ClassifiedError,
    ErrorKind,
)
from storefront.services.classifier import (
    classify_exception,
    classify_status,
    decode_json,
)
from storefront.services.cache import ResponseCache, CacheEntry, CacheResult
from storefront.services.deduplicator import RequestDeduplicator
from storefront.services.retry import AttemptContext, RetryDecision, backoff_delay
from storefront.services.options import (
    RequestOptions,
    auth_headers,
    client_options,
    lang_headers,
    server_options,
)
from storefront.services.client import (
    ApiClient,
    RequestResult,
    close_api_client,
    get_api_client,
    request_identity,
)

__all__ = [
    # Errors
    "ServiceError",
    "ClassifiedError",
    "ErrorKind",
    "classify_exception",
    "classify_status",
    "decode_json",
    # Cache
    "ResponseCache",
    "CacheEntry",
    "CacheResult",
    # Deduplicator
    "RequestDeduplicator",
    # Retry
    "AttemptContext",
    "RetryDecision",
    "backoff_delay",
    # Options
    "RequestOptions",
    "auth_headers",
    "client_options",
    "lang_headers",
    "server_options",
    # Client
    "ApiClient",
    "RequestResult",
    "close_api_client",
    "get_api_client",
    "request_identity",
]
