"""
Resilient HTTP client for the Cloudflare REST API.

``request`` returns the raw ``httpx.Response`` after retries; ``make_request``
parses it into a ResponseEnvelope. HTTP error statuses never raise here, they
surface as ``success: false`` envelopes. Only transport failures
(RequestError) and undecodable bodies (MalformedResponse) raise.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .auth import CredentialResolver
from .config import HttpConfig, RetryConfig
from .response import PaginatedResult, ResponseEnvelope
from .retry_manager import RetryManager


class GatewayClient:
    """
    Authenticated, retrying client bound to the REST base URL.

    Use as an async context manager or call ``aclose()`` when done.
    """

    COMPONENT = "http_client"

    def __init__(
        self,
        auth: CredentialResolver,
        config: Optional[HttpConfig] = None,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            auth: Credential resolver supplying headers for every call
            config: Endpoints and timeouts
            retry: Retry policy configuration
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
            logger: Optional logger
            sleep: Coroutine used for backoff waits
        """
        self._auth = auth
        self._config = config or HttpConfig()
        self._transport = transport
        self._logger = logger
        self._retry = RetryManager(retry or RetryConfig(), sleep=sleep, logger=logger)
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def auth(self) -> CredentialResolver:
        return self._auth

    @property
    def config(self) -> HttpConfig:
        return self._config

    @property
    def retry_manager(self) -> RetryManager:
        return self._retry

    async def __aenter__(self) -> "GatewayClient":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url.rstrip("/") + "/",
                timeout=httpx.Timeout(self._config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, headers: Optional[dict], multipart: bool) -> dict[str, str]:
        if not self._auth.has_credentials():
            self._auth.refresh_credentials()

        merged = dict(headers or {})
        merged.update(self._auth.get_auth_headers())
        if multipart:
            # httpx sets multipart/form-data with its boundary
            merged.pop("Content-Type", None)
        return merged

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        files: Optional[dict] = None,
        data: Optional[dict] = None,
        headers: Optional[dict] = None,
        deadline: Optional[float] = None,
    ) -> httpx.Response:
        """
        Issue a call with auth headers and retry.

        Returns:
            The last raw response received

        Raises:
            RequestError: If the transport failed on the final attempt
        """
        method = method.upper()
        path = path.lstrip("/")
        request_headers = self._build_headers(headers, multipart=files is not None)
        query = {k: v for k, v in (params or {}).items() if v is not None} or None
        client = self._get_client()

        async def send() -> httpx.Response:
            if self._logger:
                self._logger.debug(self.COMPONENT, "Sending request", {"method": method, "path": path})
            return await client.request(
                method,
                path,
                params=query,
                json=json,
                files=files,
                data=data,
                headers=request_headers,
            )

        return await self._retry.execute(send, method=method, path=f"/{path}", deadline=deadline)

    async def make_request(self, method: str, path: str, **options: Any) -> ResponseEnvelope:
        """``request`` followed by envelope parsing."""
        response = await self.request(method, path, **options)
        return ResponseEnvelope.from_response(response)

    async def paginate(
        self,
        path: str,
        params: Optional[dict] = None,
        per_page: int = 100,
        max_pages: Optional[int] = None,
    ) -> PaginatedResult:
        """
        Fetch every page of a list endpoint.

        Raises:
            ApiError: If any page reports failure
        """
        envelopes: list[ResponseEnvelope] = []
        page = 1
        while True:
            query = dict(params or {})
            query.update({"page": page, "per_page": per_page})
            envelope = (await self.make_request("GET", path, params=query)).throw_if_failed()
            envelopes.append(envelope)

            total_pages = int(envelope.result_info.get("total_pages") or 1)
            if page >= total_pages or (max_pages is not None and page >= max_pages):
                break
            page += 1

        return PaginatedResult.merge(envelopes)

    def for_graphql(self) -> httpx.AsyncClient:
        """
        A separate client for the GraphQL endpoint.

        It shares auth headers but uses its own base URL and timeout and has
        no retry wrapper. The caller owns and closes it.
        """
        if not self._auth.has_credentials():
            self._auth.refresh_credentials()
        return httpx.AsyncClient(
            base_url=self._config.graphql_url,
            timeout=httpx.Timeout(self._config.graphql_timeout_seconds),
            headers=self._auth.get_auth_headers(),
            transport=self._transport,
        )

