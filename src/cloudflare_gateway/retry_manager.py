"""
Retry policy for outbound API calls.

A call is retried when the provider answers 429 or any 5xx status, or when
the transport raised before a response arrived. Other 4xx answers are final.
Delays honor a numeric ``Retry-After`` on 429 and otherwise grow
exponentially from the base delay.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Awaitable, Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import RetryConfig
from .exceptions import RequestError


class RetryManager:
    """
    Runs an HTTP operation with retry and exponential backoff.

    Retry-After on a 429 response is interpreted in seconds; every other
    delay is ``base_delay_ms * 2**retries``, optionally capped.
    """

    COMPONENT = "retry_manager"

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry configuration
            sleep: Coroutine used to wait between attempts (seconds)
            clock: Monotonic clock used to evaluate deadlines
            logger: Optional logger for retries and final failures
        """
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._clock = clock
        self._logger = logger

    @property
    def config(self) -> RetryConfig:
        return self._config

    def is_retryable_status(self, status_code: int) -> bool:
        if status_code in self._config.retry_statuses:
            return True
        return self._config.retry_server_errors and status_code >= 500

    def should_retry(
        self,
        retries: int,
        response: Optional[httpx.Response] = None,
        exception: Optional[BaseException] = None,
    ) -> bool:
        """
        Decide whether another attempt is allowed.

        Args:
            retries: Retries already performed (0 for the first attempt)
            response: Response of the attempt, if one arrived
            exception: Exception raised by the attempt, if any
        """
        if retries >= self._config.max_retries:
            return False
        if exception is not None:
            return isinstance(exception, httpx.TransportError)
        if response is not None:
            return self.is_retryable_status(response.status_code)
        return False

    def calculate_delay_ms(self, retries: int, response: Optional[httpx.Response] = None) -> int:
        """
        Delay before the next attempt, in milliseconds.

        A numeric Retry-After header on a 429 wins verbatim; otherwise
        ``base_delay_ms * 2**retries`` capped at ``max_delay_ms`` when set.
        """
        if response is not None and response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                return retry_after

        delay = self._config.base_delay_ms * (2 ** retries)
        if self._config.max_delay_ms is not None:
            delay = min(delay, self._config.max_delay_ms)
        return delay

    async def execute(
        self,
        operation: Callable[[], Awaitable[httpx.Response]],
        method: str = "",
        path: str = "",
        deadline: Optional[float] = None,
    ) -> httpx.Response:
        """
        Run ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument coroutine function issuing one HTTP call
            method: HTTP method, for error context
            path: API path, for error context
            deadline: Absolute ``time.monotonic()`` value past which no retry starts

        Returns:
            The last response received (successful or not)

        Raises:
            RequestError: If the final attempt failed at the transport level
        """
        retries = 0
        while True:
            response: Optional[httpx.Response] = None
            error: Optional[httpx.TransportError] = None
            try:
                response = await operation()
            except httpx.TransportError as e:
                error = e

            if not self.should_retry(retries, response=response, exception=error):
                break

            delay_ms = self.calculate_delay_ms(retries, response=response)
            if deadline is not None and self._clock() + delay_ms / 1000.0 > deadline:
                self._log_warning("Retry skipped: deadline reached", method, path, retries, delay_ms, response, error)
                break

            self._log_warning("Retrying request", method, path, retries, delay_ms, response, error)
            await self._sleep(delay_ms / 1000.0)
            retries += 1

        if error is not None:
            if self._logger:
                self._logger.log_error(
                    self.COMPONENT,
                    "Request failed after retries",
                    error=error,
                    method=method,
                    path=path,
                    additional_data={"retries": retries},
                )
            raise RequestError(
                message=f"Cloudflare API request failed: {error}",
                method=method,
                path=path,
                cause=error,
            ) from error

        assert response is not None
        return response

    def _log_warning(
        self,
        message: str,
        method: str,
        path: str,
        retries: int,
        delay_ms: int,
        response: Optional[httpx.Response],
        error: Optional[BaseException],
    ) -> None:
        if not self._logger:
            return
        data: dict = {"method": method, "path": path, "retry": retries + 1, "delay_ms": delay_ms}
        if response is not None:
            data["status_code"] = response.status_code
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = str(error)
        self._logger.warning(self.COMPONENT, message, data)


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Numeric Retry-After seconds as milliseconds; HTTP dates are ignored."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return int(seconds * 1000)
