"""
HTTP session for Goodreads using aiohttp

Holds the optional cookie credential, paces outbound requests and backs off
on rate limits and transient server errors.
"""

import logging

import aiohttp
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from .common import RateLimiter
from .config import EngineConfig
from .constants import RETRYABLE_STATUSES
from .exceptions import AuthError, CredentialsMissingError, RequestFailedError, TransientHTTPError

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/user/sign_in"


class GoodreadsSession:
    """Sequential, paced HTTP access to Goodreads."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.cookie = config.cookie
        self.rate_limiter = RateLimiter(config.request_delay)

        # Session will be created lazily when first needed
        self.session: aiohttp.ClientSession | None = None
        self.request_count = 0

    @property
    def authenticated(self) -> bool:
        return bool(self.cookie)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if necessary."""
        if self.session is None:
            timeout_config = aiohttp.ClientTimeout(total=self.config.timeout, connect=10, sock_read=30)
            headers = {"User-Agent": self.config.user_agent}
            if self.cookie:
                headers["Cookie"] = self.cookie
            self.session = aiohttp.ClientSession(timeout=timeout_config, headers=headers)
        return self.session

    async def close(self):
        """Close the session. Must be called when done."""
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch_text(self, url: str, requires_auth: bool = False) -> str:
        """
        Fetch a page, retrying transient failures with exponential backoff.

        Args:
            url: Absolute URL
            requires_auth: Whether the page is only available with the cookie

        Returns:
            str: Response body

        Raises:
            CredentialsMissingError: If the page needs the cookie and none is set
            AuthError: If Goodreads redirects to its sign-in page
            RequestFailedError: On non-retryable errors or when retries are exhausted
        """
        if requires_auth and not self.authenticated:
            raise CredentialsMissingError(f"{url} requires a cookie; configure the engine with a credential")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(
                multiplier=self.config.backoff_min, min=self.config.backoff_min, max=self.config.backoff_max
            ),
            retry=retry_if_exception_type(TransientHTTPError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        text = ""
        try:
            async for attempt in retrying:
                with attempt:
                    text = await self._request(url)
        except TransientHTTPError as e:
            logger.error(f"Giving up on {url} after {self.config.max_attempts} attempts: {e.reason}")
            raise RequestFailedError(url, e.reason, attempts=self.config.max_attempts) from e

        return text

    async def _request(self, url: str) -> str:
        """Issue one paced request and classify the response."""
        await self.rate_limiter.acquire()
        self.request_count += 1
        logger.debug(f"Request {self.request_count}: GET {url}")

        try:
            status, text, final_url = await self._send(url)
        except (
            aiohttp.ClientConnectionError,
            aiohttp.ClientPayloadError,
            aiohttp.ServerTimeoutError,
            TimeoutError,
        ) as e:
            raise TransientHTTPError(url, f"{type(e).__name__}: {e}") from e

        if status in RETRYABLE_STATUSES:
            reason = "rate limited (429)" if status == 429 else f"server error ({status})"
            raise TransientHTTPError(url, reason)

        if SIGN_IN_PATH in final_url or status == 401:
            raise AuthError(
                f"Goodreads asked to sign in for {url}. The cookie is missing or expired; refresh the cookie file."
            )

        if status == 403:
            raise AuthError(f"Goodreads denied access (403) to {url}")

        if status >= 400:
            raise RequestFailedError(url, f"HTTP {status}")

        return text

    async def _send(self, url: str) -> tuple[int, str, str]:
        """Perform the GET. Returns (status, body, final URL after redirects)."""
        session = await self._ensure_session()
        async with session.get(url) as response:
            text = await response.text(errors="replace")
            return response.status, text, str(response.url)
