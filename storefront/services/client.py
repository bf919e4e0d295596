"""
ApiClient - Async HTTP client for the commerce backend.

Combines:
- RequestDeduplicator so concurrent identical calls share one request
- ResponseCache for successful GET responses
- Exponential backoff retries for transient failures
- A timeout on every attempt
"""

import asyncio
import hashlib
import json
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

import httpx
from loguru import logger

from storefront.services.cache import ResponseCache
from storefront.services.classifier import (
    classify_exception,
    classify_status,
    decode_json,
)
from storefront.services.deduplicator import RequestDeduplicator
from storefront.services.errors import ClassifiedError
from storefront.services.options import (
    RequestOptions,
    auth_headers,
    client_options,
    server_options,
)
from storefront.services.retry import AttemptContext, decide
from storefront.settings import Settings, global_settings

T = TypeVar("T")

METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
MAX_KEY_LENGTH = 200


@dataclass
class RequestResult(Generic[T]):
    """Either the response payload or the error the request ended with."""

    data: T | None = None
    error: ClassifiedError | None = None
    from_cache: bool = False
    endpoint: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the payload, raising the ClassifiedError on failure."""
        if self.error is not None:
            raise self.error
        return self.data


def serialize_body(body: Any) -> str | None:
    """JSON-encode a request body. Raises TypeError for unserializable bodies."""
    if body is None:
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def request_identity(
    method: str,
    url: str,
    payload: str | None = None,
    vary: dict[str, str] | None = None,
) -> str:
    """
    Key used for both deduplication and caching.

    Identical inputs always give the same key. Bodies are compared by their
    serialized form, so differently ordered but equal objects may not match.
    """
    key = f"{method} {url}"
    if payload:
        key = f"{key} {payload}"
    if vary:
        key = f"{key} " + "&".join(f"{k}={v}" for k, v in sorted(vary.items()))

    # Hash long keys
    if len(key) > MAX_KEY_LENGTH:
        hash_val = hashlib.md5(key.encode()).hexdigest()[:16]
        return f"{method} #{hash_val}"

    return key


class ApiClient:
    """
    Client for the storefront backend API.

    Usage:
        client = ApiClient.for_server()

        result = await client.get("/Home", headers=lang_headers("en"))
        if result.ok:
            home = result.data

        # Or let the error propagate
        product = (await client.get(f"/ProductDetails?id={pid}")).unwrap()
    """

    def __init__(
        self,
        base_url: str | None = None,
        options: RequestOptions | None = None,
        cache: ResponseCache | None = None,
        deduplicator: RequestDeduplicator | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        settings: Settings | None = None,
        debug: bool | None = None,
    ):
        settings = settings or global_settings
        debug = settings.debug if debug is None else debug

        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._options = options or server_options(settings)
        self._upload_timeout = settings.upload_timeout
        self._sleep = sleep

        # Initialize components
        self._cache = (
            cache
            if cache is not None
            else ResponseCache(
                max_size=settings.cache_max_entries,
                default_ttl=self._options.cache_ttl,
                debug=debug,
            )
        )
        self._deduplicator = (
            deduplicator
            if deduplicator is not None
            else RequestDeduplicator(debug=debug)
        )

        # HTTP client (lazy initialization unless injected)
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @classmethod
    def for_server(
        cls, settings: Settings | None = None, **kwargs: Any
    ) -> "ApiClient":
        """Client with the server-side data fetcher defaults."""
        return cls(options=server_options(settings), settings=settings, **kwargs)

    @classmethod
    def for_client(
        cls, settings: Settings | None = None, **kwargs: Any
    ) -> "ApiClient":
        """Client with the browser-initiated call defaults."""
        return cls(options=client_options(settings), settings=settings, **kwargs)

    @property
    def options(self) -> RequestOptions:
        return self._options

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def deduplicator(self) -> RequestDeduplicator:
        return self._deduplicator

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._options.timeout),
                follow_redirects=True,
            )
        return self._http_client

    def build_url(self, endpoint: str) -> str:
        """Resolve an endpoint path against the base URL."""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        *,
        token: str | None = None,
        options: RequestOptions | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        cache_ttl: timedelta | float | None = None,
        vary_on: Iterable[str] | None = None,
    ) -> RequestResult[Any]:
        """
        Make an HTTP request with deduplication, caching and retries.

        Args:
            endpoint: Path relative to the base URL, or an absolute URL
            method: GET, POST, PUT, PATCH or DELETE
            body: JSON-serializable body, sent for mutating methods
            headers: Call-specific headers, override every other header
            token: Bearer token for the Authorization header
            options: Replaces the client's default RequestOptions
            timeout: Per-attempt timeout override (seconds)
            max_attempts: Retry count override
            cache_ttl: Cache TTL override for GET; zero disables caching
            vary_on: Header names whose values become part of the identity

        Returns:
            RequestResult holding the payload or the ClassifiedError

        Raises:
            ValueError: Unsupported method
            TypeError: Body is not JSON serializable
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        opts = (options or self._options).merge(
            timeout=timeout,
            max_attempts=max_attempts,
            cache_ttl=cache_ttl,
            vary_on=vary_on,
        )

        # Merge headers
        req_headers = dict(opts.headers)
        if token:
            req_headers.update(auth_headers(token))
        if headers:
            req_headers.update(headers)

        url = self.build_url(endpoint)
        payload = serialize_body(body)
        vary = {name: req_headers[name] for name in opts.vary_on if name in req_headers}
        key = request_identity(method, url, payload, vary)

        # Nothing below may await until the request is registered
        task = self._deduplicator.acquire(key)
        if task is None:
            if method == "GET" and opts.caching:
                cached = self._cache.get(key)
                if cached is not None:
                    return RequestResult(
                        data=cached.data, from_cache=True, endpoint=url
                    )

            task = self._deduplicator.register(
                key,
                self._run_attempts(key, method, url, payload, req_headers, opts),
            )

        return await self._observe(task, url)

    async def _observe(self, task: "asyncio.Task[Any]", url: str) -> RequestResult[Any]:
        """Wait for a shared request without letting our cancellation reach it."""
        try:
            data = await asyncio.shield(task)
        except ClassifiedError as e:
            return RequestResult(error=e, endpoint=url)
        except asyncio.CancelledError as e:
            if not task.cancelled():
                # We were cancelled, the shared request keeps running
                raise
            return RequestResult(error=classify_exception(e, url), endpoint=url)

        return RequestResult(data=data, endpoint=url)

    async def _run_attempts(
        self,
        key: str,
        method: str,
        url: str,
        payload: str | None,
        headers: dict[str, str],
        opts: RequestOptions,
    ) -> Any:
        """Attempt the request until it succeeds or the retry policy gives up."""
        context = AttemptContext(
            attempt_number=0,
            max_attempts=opts.max_attempts,
            base_delay=opts.base_delay,
            max_delay=opts.max_delay,
        )
        content = payload if method != "GET" else None

        while True:
            try:
                data = await self._attempt(
                    method, url, headers, opts.timeout, context, content=content
                )
            except ClassifiedError as error:
                decision = decide(error, context)
                if not decision.retry:
                    logger.error(
                        f"{method} {url} failed after "
                        f"{context.attempt_number + 1} attempt(s): "
                        f"{error.kind.value} {error.message}"
                    )
                    raise

                logger.warning(
                    f"{method} {url} attempt "
                    f"{context.attempt_number + 1}/{context.max_attempts + 1} "
                    f"failed ({error.kind.value}), retrying in {decision.delay:.1f}s"
                )
                await self._sleep(decision.delay)
                context = context.next()
                continue

            if method == "GET" and opts.caching:
                self._cache.put(key, data, opts.cache_ttl)
            return data

    async def _attempt(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout: float,
        context: AttemptContext | None = None,
        content: str | None = None,
        files: Any = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return its parsed body."""
        client = self._get_http_client()
        if context is not None:
            logger.debug(
                f"{method} {url} "
                f"(attempt {context.attempt_number + 1}/{context.max_attempts + 1})"
            )

        try:
            response = await asyncio.wait_for(
                client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    content=content,
                    files=files,
                    data=data,
                    timeout=timeout,
                ),
                timeout,
            )
        except (asyncio.TimeoutError, httpx.RequestError) as e:
            raise classify_exception(e, url) from e
        except Exception as e:
            # Anything else the transport raises, e.g. a closed client
            raise classify_exception(e, url) from e

        error = classify_status(response.status_code, response.text, url)
        if error is not None:
            raise error

        return decode_json(response.content, response.status_code, url)

    async def get(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RequestResult[Any]:
        """GET request, served from the cache when possible."""
        return await self.request(endpoint, "GET", headers=headers, **kwargs)

    async def post(
        self,
        endpoint: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RequestResult[Any]:
        return await self.request(endpoint, "POST", body, headers, **kwargs)

    async def put(
        self,
        endpoint: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RequestResult[Any]:
        return await self.request(endpoint, "PUT", body, headers, **kwargs)

    async def patch(
        self,
        endpoint: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RequestResult[Any]:
        return await self.request(endpoint, "PATCH", body, headers, **kwargs)

    async def delete(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RequestResult[Any]:
        return await self.request(endpoint, "DELETE", headers=headers, **kwargs)

    async def upload(
        self,
        endpoint: str,
        files: Any,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> RequestResult[Any]:
        """
        POST a multipart form.

        Uploads are sent once: they are never retried, deduplicated or
        cached. The JSON Content-Type is dropped so httpx can set the
        multipart boundary.
        """
        url = self.build_url(endpoint)
        req_headers = {
            k: v
            for k, v in self._options.headers.items()
            if k.lower() != "content-type"
        }
        if token:
            req_headers.update(auth_headers(token))
        if headers:
            req_headers.update(headers)

        try:
            result = await self._attempt(
                "POST",
                url,
                req_headers,
                timeout or self._upload_timeout,
                files=files,
                data=data,
            )
        except ClassifiedError as e:
            logger.error(f"Upload to {url} failed: {e.kind.value} {e.message}")
            return RequestResult(error=e, endpoint=url)

        return RequestResult(data=result, endpoint=url)

    def cancel_all_requests(self) -> int:
        """Cancel in-flight requests and clear the response cache."""
        cancelled = self._deduplicator.cancel_all()
        cleared = self._cache.clear()
        logger.info(
            f"Cancelled {cancelled} in-flight request(s), "
            f"cleared {cleared} cache entries"
        )
        return cancelled

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        self.cancel_all_requests()
        if self._http_client and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ApiClient closed")

    async def __aenter__(self) -> "ApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def get_health_status(self) -> dict[str, Any]:
        """Get cache and deduplicator statistics."""
        return {
            "cache": self._cache.get_stats().to_dict(),
            "deduplicator": self._deduplicator.get_stats().to_dict(),
        }


# Global client instance
_global_client: ApiClient | None = None


def get_api_client() -> ApiClient:
    """Get the global API client instance."""
    global _global_client
    if _global_client is None:
        _global_client = ApiClient.for_server()
    return _global_client


async def close_api_client() -> None:
    """Close the global API client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
