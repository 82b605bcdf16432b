"""Async Mastodon REST client with retries and failure classification."""

import asyncio
import time
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from feedrank.fetch.config import FetchConfig
from feedrank.fetch.constants import MAX_PAGE_SIZE
from feedrank.fetch.models import FetchError, FetchErrorClass, FetchFailedError
from feedrank.fetch.redact import redact_headers
from feedrank.timeline.models import Account, Notification, Status


logger = structlog.get_logger()

T = TypeVar("T")

_ACCOUNT = TypeAdapter(Account)
_STATUS_LIST = TypeAdapter(list[Status])
_ACCOUNT_LIST = TypeAdapter(list[Account])
_NOTIFICATION_LIST = TypeAdapter(list[Notification])


class MastodonClient:
    """Async client for the subset of the Mastodon API feed ranking uses.

    Provides:
    - Bearer-token authentication against the user's own instance only
    - Configurable retry policy with exponential backoff
    - Typed failures (FetchFailedError) instead of raw httpx exceptions
    - Header redaction for logging
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        config: FetchConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the user's instance, e.g. https://mastodon.social.
            access_token: OAuth bearer token for the user's instance.
            config: Fetch configuration.
            transport: Optional transport (used by tests to mock HTTP).
        """
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._config = config or FetchConfig()
        self._http = httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
            transport=transport,
            headers={"User-Agent": self._config.user_agent, "Accept": "application/json"},
        )
        self._log = logger.bind(component="fetch", instance=self.host)

    @property
    def host(self) -> str:
        """Get the host name of the user's instance."""
        return httpx.URL(self._base_url).host

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> "MastodonClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.aclose()

    # ===== Endpoints =====

    async def verify_credentials(self) -> Account:
        """Get the account owning the access token."""
        data = await self._get_json("/api/v1/accounts/verify_credentials")
        return self._parse(_ACCOUNT, data, "verify_credentials")

    async def home_timeline(
        self, limit: int = MAX_PAGE_SIZE, max_id: str | None = None
    ) -> list[Status]:
        """Get one page of the home timeline, newest first.

        Args:
            limit: Page size (capped at 40 by the server).
            max_id: Only return statuses older than this id.

        Returns:
            Statuses on the page.
        """
        params: dict[str, Any] = {"limit": min(limit, MAX_PAGE_SIZE)}
        if max_id is not None:
            params["max_id"] = max_id
        data = await self._get_json("/api/v1/timelines/home", params=params)
        return self._parse(_STATUS_LIST, data, "home_timeline")

    async def favourites(self, limit: int = MAX_PAGE_SIZE) -> list[Status]:
        """Get statuses the user recently favourited."""
        data = await self._get_json("/api/v1/favourites", params={"limit": limit})
        return self._parse(_STATUS_LIST, data, "favourites")

    async def account_statuses(
        self, account_id: str, limit: int = MAX_PAGE_SIZE
    ) -> list[Status]:
        """Get recent statuses (including boosts) posted by an account."""
        data = await self._get_json(
            f"/api/v1/accounts/{account_id}/statuses", params={"limit": limit}
        )
        return self._parse(_STATUS_LIST, data, "account_statuses")

    async def notifications(self, limit: int = MAX_PAGE_SIZE) -> list[Notification]:
        """Get recent notifications of the user."""
        data = await self._get_json("/api/v1/notifications", params={"limit": limit})
        return self._parse(_NOTIFICATION_LIST, data, "notifications")

    async def following(self, account_id: str, limit: int = MAX_PAGE_SIZE) -> list[Account]:
        """Get accounts followed by an account."""
        data = await self._get_json(
            f"/api/v1/accounts/{account_id}/following", params={"limit": limit}
        )
        return self._parse(_ACCOUNT_LIST, data, "following")

    async def trending_statuses(self, server: str, limit: int = 10) -> list[Status]:
        """Get trending statuses from any server, unauthenticated.

        Args:
            server: Host name of the server to ask.
            limit: Maximum statuses to request.

        Returns:
            Trending statuses as reported by that server.
        """
        data = await self._get_json(
            f"https://{server}/api/v1/trends/statuses",
            params={"limit": limit},
            authenticated=False,
        )
        return self._parse(_STATUS_LIST, data, "trending_statuses")

    # ===== Transport =====

    def _parse(self, adapter: TypeAdapter[T], data: object, endpoint: str) -> T:
        """Validate a decoded JSON body.

        Raises:
            FetchFailedError: If the body does not match the expected shape.
        """
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise FetchFailedError(
                endpoint,
                FetchError(
                    error_class=FetchErrorClass.PARSE,
                    message=f"Unexpected response shape: {e.error_count()} errors",
                ),
            ) from e

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> object:
        """GET a JSON document with retries.

        Args:
            path: Path on the user's instance, or an absolute URL.
            params: Query parameters.
            authenticated: Whether to send the bearer token.

        Returns:
            Decoded JSON body.

        Raises:
            FetchFailedError: If the request fails after all retries.
        """
        url = path if path.startswith(("http://", "https://")) else self._base_url + path
        headers: dict[str, str] = {}
        if authenticated and self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        log = self._log.bind(url=url, headers=redact_headers(headers))
        policy = self._config.retry_policy
        start_time_ns = time.perf_counter_ns()

        attempt = 0
        while True:
            response, error = await self._execute_single(url, params, headers)
            if error is None:
                break

            if not policy.should_retry(error, attempt):
                log.warning(
                    "fetch_failed",
                    error_class=error.error_class.value,
                    status_code=error.status_code,
                    attempts=attempt + 1,
                )
                raise FetchFailedError(url, error)

            delay_s = policy.delay_seconds(error, attempt)
            if error.error_class == FetchErrorClass.RATE_LIMITED:
                log.info("rate_limited", retry_after=error.retry_after, attempt=attempt)
            log.debug("retry_attempt", attempt=attempt + 1, delay_s=delay_s)
            await asyncio.sleep(delay_s)
            attempt += 1

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        log.debug(
            "fetch_complete",
            status_code=response.status_code,
            bytes=len(response.content),
            duration_ms=round(duration_ms, 2),
        )

        try:
            return response.json()
        except ValueError as e:
            raise FetchFailedError(
                url,
                FetchError(
                    error_class=FetchErrorClass.PARSE,
                    message=f"Invalid JSON body: {e}",
                    status_code=response.status_code,
                ),
            ) from e

    async def _execute_single(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> tuple[httpx.Response | None, FetchError | None]:
        """Execute a single GET request and classify its outcome."""
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            return None, FetchError(
                error_class=FetchErrorClass.NETWORK_TIMEOUT,
                message=f"Request timed out: {e!r}",
            )
        except httpx.ConnectError as e:
            return None, FetchError(
                error_class=FetchErrorClass.CONNECTION_ERROR,
                message=f"Connection failed: {e!r}",
            )
        except httpx.HTTPError as e:
            return None, FetchError(
                error_class=FetchErrorClass.UNKNOWN,
                message=f"Unexpected error: {e!r}",
            )

        return response, self._classify_http_error(response.status_code, response.headers)

    def _classify_http_error(
        self,
        status_code: int,
        headers: httpx.Headers,
    ) -> FetchError | None:
        """Classify HTTP status code as error.

        Args:
            status_code: HTTP status code.
            headers: Response headers.

        Returns:
            FetchError if status indicates error, None otherwise.
        """
        if httpx.codes.is_success(status_code):
            return None

        if status_code == httpx.codes.TOO_MANY_REQUESTS:
            return FetchError(
                error_class=FetchErrorClass.RATE_LIMITED,
                message="Rate limited (429 Too Many Requests)",
                status_code=status_code,
                retry_after=self._parse_retry_after(headers.get("retry-after")),
            )

        if httpx.codes.is_client_error(status_code):
            return FetchError(
                error_class=FetchErrorClass.HTTP_4XX,
                message=f"Client error ({status_code})",
                status_code=status_code,
            )

        if httpx.codes.is_server_error(status_code):
            return FetchError(
                error_class=FetchErrorClass.HTTP_5XX,
                message=f"Server error ({status_code})",
                status_code=status_code,
            )

        return FetchError(
            error_class=FetchErrorClass.UNKNOWN,
            message=f"Unexpected status ({status_code})",
            status_code=status_code,
        )

    def _parse_retry_after(self, value: str | None) -> int | None:
        """Parse Retry-After header value (seconds or HTTP date)."""
        if not value:
            return None

        try:
            return int(value)
        except ValueError:
            pass

        try:
            dt = parsedate_to_datetime(value)
            delta = dt - datetime.now(UTC)
            return max(0, int(delta.total_seconds()))
        except (ValueError, TypeError):
            pass

        return None
