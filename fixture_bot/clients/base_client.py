from typing import Any, Dict, Optional

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fixture_bot.config.settings import settings

# HTTP status codes that warrant a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class ClientError(Exception):
    """Raised when an upstream API call fails."""

    pass


class AuthenticationError(ClientError):
    """Raised for authentication failures (401, 403)."""

    pass


class RateLimitError(ClientError):
    """Raised for rate limit responses (429)."""

    pass


class BaseClient:
    """Shared async HTTP plumbing for the upstream APIs."""

    service_name: str = "upstream"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or settings.request_timeout_seconds),
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    @retry(
        stop=stop_after_attempt(4),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(
            (httpx.RequestError, httpx.HTTPStatusError, RateLimitError)
        ),
        reraise=True,
    )
    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        logger.debug(f"{self.service_name}: {method} {url}")
        try:
            response = await self.client.request(
                method, url, headers=headers, params=params, json=json_data
            )

            if response.status_code in {401, 403}:
                logger.warning(
                    f"Authentication error ({response.status_code}) for {self.service_name} at {url}. Check the API key."
                )
                raise AuthenticationError(
                    f"Authentication failed ({response.status_code}) for {self.service_name}"
                )

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                logger.warning(
                    f"Rate limit hit (429) for {self.service_name}. Retry-After: {retry_after}"
                )
                raise RateLimitError(f"Rate limited by {self.service_name}")

            response.raise_for_status()
            logger.debug(f"Request successful: {response.status_code} for {url}")
            return response

        except httpx.HTTPStatusError as e:
            if e.response.status_code in RETRYABLE_STATUS_CODES:
                logger.warning(
                    f"Retrying {self.service_name} request due to status {e.response.status_code}"
                )
                raise
            logger.error(
                f"HTTP error during {self.service_name} request: {e.response.status_code} - {e}"
            )
            raise ClientError(f"HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning(f"Request error for {self.service_name}, retrying: {e}")
            raise

    async def _make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Makes an HTTP request with retries, wrapping final failures in ClientError."""
        try:
            return await self._send(method, url, **kwargs)
        except ClientError:
            raise
        except httpx.HTTPError as e:
            logger.error(
                f"Max retries exceeded for {self.service_name} request to {url}. Last error: {e}"
            )
            raise ClientError(
                f"Failed request to {self.service_name} after multiple retries"
            ) from e

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._make_request("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(f"{self.service_name} returned a non-JSON body") from e

    async def close(self):
        """Closes the underlying HTTP client."""
        await self.client.aclose()
        logger.info(f"Closed HTTP client for {self.service_name}")
