"""Page fetcher - outbound HTTP through the Tor SOCKS proxy."""

import logging

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

ACCEPTED_CONTENT_TYPES = ("text/html", "text/plain", "application/xhtml", "application/xml")


class FetchError(Exception):
    """A page could not be fetched or is not usable content."""


class PageFetcher:
    """
    Fetches scrape targets.

    Connection errors and timeouts are retried; HTTP status and content-type
    problems fail immediately since retrying will not change them.
    """

    def __init__(
        self,
        proxy_url: str | None = None,
        timeout_seconds: float = 90.0,
        max_attempts: int = 3,
        retry_wait_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.max_attempts = max_attempts
        self.retry_wait_seconds = retry_wait_seconds
        self.http = httpx.AsyncClient(
            proxy=proxy_url,
            transport=transport,
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )

    async def fetch(self, url: str) -> str:
        """
        Fetch a page body.

        Args:
            url: Absolute http(s) URL

        Returns:
            Decoded response body

        Raises:
            FetchError: Malformed URL, transport failure after retries,
                non-200 status or unsupported content type
        """
        url = url.strip()
        if not url:
            raise FetchError("source URL is empty")
        if not url.startswith(("http://", "https://")):
            raise FetchError("invalid URL format: must start with http:// or https://")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self.retry_wait_seconds),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(
                            "Retrying %s (attempt %d/%d)",
                            url, attempt.retry_state.attempt_number, self.max_attempts,
                        )
                    response = await self.http.get(url)
        except httpx.TransportError as e:
            raise FetchError(f"failed to fetch URL after {self.max_attempts} attempts: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"failed to fetch URL: {e}") from e

        if response.status_code != 200:
            raise FetchError(f"unexpected status code: {response.status_code}")

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not any(kind in content_type for kind in ACCEPTED_CONTENT_TYPES):
            raise FetchError(f"unsupported content type: {content_type}")

        return response.text

    async def close(self) -> None:
        await self.http.aclose()
