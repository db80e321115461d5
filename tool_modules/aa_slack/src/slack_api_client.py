"""Slack API Client - rate limiting, throttling retries and response normalisation.

All outbound traffic to the Slack Web API goes through ``SlackApiClient.request``:

- requests from one client instance start at least ``min_request_interval``
  seconds apart (Tier 2 allows roughly one request per second),
- HTTP 429 responses are absorbed by waiting ``Retry-After`` seconds and
  re-sending the same request,
- non-2xx responses and ``ok: false`` bodies are raised as ``SlackAPIError``
  subclasses so every caller sees the same failure contract.

The per-endpoint methods below only shape payloads and pick fields out of
the response envelope.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, TypedDict

import httpx

logger = logging.getLogger(__name__)

BASE_URL = "https://slack.com/api"
TOKEN_ENV_VAR = "SLACK_BOT_TOKEN"

# Tier 2: 20 requests per minute, ~1 req/s sustained
MIN_REQUEST_INTERVAL = 1.0
DEFAULT_RETRY_AFTER = 60.0
DEFAULT_TIMEOUT = 30.0


# ==================== Errors ====================


class SlackError(Exception):
    """Base class for all Slack client failures."""


class SlackConfigError(SlackError):
    """Raised when the client cannot be constructed (no bot token, invalid config.json)."""


class SlackAPIError(SlackError):
    """Raised when a Slack API call fails."""

    def __init__(self, message: str, method: str = ""):
        self.method = method
        super().__init__(message)


class SlackHTTPError(SlackAPIError):
    """Non-2xx, non-429 HTTP response. Never retried."""

    def __init__(self, status_code: int, reason: str, method: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Slack API error: {status_code} {reason}".rstrip(), method)


class SlackResponseError(SlackAPIError):
    """HTTP 2xx response whose body has ``ok: false``. Never retried."""

    def __init__(self, error: str, method: str = ""):
        self.error = error
        super().__init__(f"Slack API error: {error}", method)


class SlackRateLimitError(SlackAPIError):
    """Raised only when a configured 429 retry/wait ceiling is exceeded."""

    def __init__(self, attempts: int, waited: float, method: str = ""):
        self.attempts = attempts
        self.waited = waited
        super().__init__(
            f"Slack API error: rate limited after {attempts} attempts ({waited:.1f}s waited)",
            method,
        )


# ==================== Remote shapes ====================
# Pass-through only: the client never validates these.


class SlackResponseMetadata(TypedDict, total=False):
    next_cursor: str


class SlackApiResponse(TypedDict, total=False):
    ok: bool
    error: str
    warning: str
    response_metadata: SlackResponseMetadata


class SlackMessage(TypedDict, total=False):
    type: str
    user: str
    text: str
    ts: str
    thread_ts: str
    reply_count: int
    replies: list[dict[str, str]]


class SlackChannel(TypedDict, total=False):
    id: str
    name: str
    is_channel: bool
    is_group: bool
    is_im: bool
    is_mpim: bool
    is_private: bool
    created: int
    is_archived: bool
    is_general: bool
    is_member: bool
    num_members: int
    topic: dict[str, Any]
    purpose: dict[str, Any]


class SlackUser(TypedDict, total=False):
    id: str
    team_id: str
    name: str
    deleted: bool
    real_name: str
    tz: str
    tz_label: str
    tz_offset: int
    profile: dict[str, Any]
    is_admin: bool
    is_owner: bool
    is_bot: bool


class SlackFile(TypedDict, total=False):
    id: str
    created: int
    timestamp: int
    name: str
    title: str
    mimetype: str
    filetype: str
    size: int
    url_private: str
    url_private_download: str
    permalink: str
    permalink_public: str


class SlackSearchResult(TypedDict, total=False):
    total: int
    matches: list[SlackMessage]
    pagination: dict[str, int]


# ==================== Client ====================


@dataclass
class RateLimitState:
    """Per-client spacing and back-off bookkeeping."""

    last_request_time: float | None = None
    retry_count: int = 0
    backoff_until: float = 0.0


def parse_retry_after(value: str | None, default: float = DEFAULT_RETRY_AFTER) -> float:
    """Return the ``Retry-After`` delay in seconds, or ``default`` if unusable."""
    if value is None:
        return default
    try:
        delay = float(value.strip())
    except ValueError:
        return default
    if delay != delay or delay < 0:  # NaN or negative
        return default
    return delay


def _next_cursor(response: dict[str, Any]) -> dict[str, str]:
    cursor = (response.get("response_metadata") or {}).get("next_cursor")
    return {"next_cursor": cursor} if cursor else {}


@dataclass
class SlackApiClient:
    """HTTP transport for the Slack Web API with a per-instance rate limiter.

    Manages:
    - httpx.AsyncClient lifecycle
    - Bot token authentication
    - Minimum spacing between request starts
    - Retry after HTTP 429 (unbounded unless a ceiling is configured)

    Instances do not share rate-limit state. Keep one long-lived instance
    per token if a single process-wide ceiling is needed.
    """

    token: str | None = None
    base_url: str = BASE_URL
    min_request_interval: float = MIN_REQUEST_INTERVAL
    default_retry_after: float = DEFAULT_RETRY_AFTER
    max_rate_limit_retries: int | None = None
    max_rate_limit_wait: float | None = None
    timeout: float = DEFAULT_TIMEOUT
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    _rate_limit: RateLimitState = field(default_factory=RateLimitState, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self):
        """Resolve the token; fail before any network call if there is none."""
        self.token = self.token or os.environ.get(TOKEN_ENV_VAR)
        if not self.token:
            raise SlackConfigError(f"{TOKEN_ENV_VAR} environment variable is required")
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_config(cls, token: str | None = None, **overrides: Any) -> "SlackApiClient":
        """Build a client from the ``slack`` section of config.json.

        Raises:
            SlackConfigError: If config.json fails schema validation or no
                token is available
        """
        from server.config_manager import CONFIG_SCHEMA, ConfigValidationError, config

        try:
            config.validate_or_raise()
        except ConfigValidationError as e:
            raise SlackConfigError(
                f"Invalid {config.config_file.name}: {'; '.join(e.errors)}"
            ) from e

        settings = {key: config.get_with_default("slack", key) for key in CONFIG_SCHEMA["slack"]}
        settings.update(overrides)
        return cls(token=token, **settings)

    @property
    def rate_limit(self) -> RateLimitState:
        return self._rate_limit

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json; charset=utf-8",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "SlackApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def _throttle(self) -> None:
        """Wait until ``min_request_interval`` has passed since the last dispatch
        and any 429 back-off recorded by another request has expired.

        Check, wait and stamp all happen under one lock so concurrent callers
        queue behind each other instead of all reading the same stale stamp.
        """
        async with self._lock:
            now = time.monotonic()
            wait = 0.0
            last = self._rate_limit.last_request_time
            if last is not None:
                wait = self.min_request_interval - (now - last)

            # Another request hit a 429 and is still backing off
            if now < self._rate_limit.backoff_until:
                wait = max(wait, self._rate_limit.backoff_until - now)
                logger.warning(f"Rate limited, waiting {wait:.1f}s before dispatch")

            if wait > 0:
                await asyncio.sleep(wait)
            self._rate_limit.last_request_time = time.monotonic()

    async def request(
        self,
        method: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated request to the Slack API.

        Args:
            method: Slack API method name (e.g., "conversations.history")
            data: JSON payload; keys with no value must already be omitted

        Returns:
            Parsed response envelope (``ok`` is always true)

        Raises:
            SlackHTTPError: On non-2xx responses other than 429
            SlackResponseError: When the body has ``ok: false``
            SlackRateLimitError: When a configured 429 ceiling is exceeded
            httpx.HTTPError: On transport failures (timeouts, connection errors)
        """
        url = f"{self.base_url}/{method}"
        payload = dict(data or {})
        client = await self.get_client()

        attempts = 0
        waited = 0.0

        while True:
            await self._throttle()
            logger.debug(f"POST {method} (attempt {attempts + 1})")
            response = await client.post(url, json=payload)

            if response.status_code == 429:
                attempts += 1
                self._rate_limit.retry_count += 1
                delay = parse_retry_after(
                    response.headers.get("Retry-After"), self.default_retry_after
                )

                if self.max_rate_limit_retries is not None and attempts > self.max_rate_limit_retries:
                    raise SlackRateLimitError(attempts, waited, method)
                if self.max_rate_limit_wait is not None and waited + delay > self.max_rate_limit_wait:
                    raise SlackRateLimitError(attempts, waited, method)

                backoff_until = time.monotonic() + delay
                self._rate_limit.backoff_until = max(self._rate_limit.backoff_until, backoff_until)
                logger.warning(
                    f"Rate limited (429) on {method}. Retrying in {delay:.1f}s "
                    f"(retry {self._rate_limit.retry_count} for this client)"
                )
                await asyncio.sleep(delay)
                waited += delay
                if self._rate_limit.backoff_until == backoff_until:
                    self._rate_limit.backoff_until = 0.0
                continue

            if not response.is_success:
                raise SlackHTTPError(response.status_code, response.reason_phrase, method)

            result = response.json()
            if not isinstance(result, dict) or not result.get("ok", False):
                error = result.get("error") if isinstance(result, dict) else None
                raise SlackResponseError(error or "Unknown error", method)

            if result.get("warning"):
                logger.warning(f"Slack warning on {method}: {result['warning']}")

            return result

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def post_message(
        self, channel: str, text: str, blocks: list[Any] | None = None
    ) -> dict[str, Any]:
        """Post a message to a channel."""
        data: dict[str, Any] = {"channel": channel, "text": text}
        if blocks is not None:
            data["blocks"] = blocks

        response = await self.request("chat.postMessage", data)
        return {
            "channel": response.get("channel"),
            "ts": response.get("ts"),
            "message": response.get("message"),
        }

    async def update_message(
        self, channel: str, ts: str, text: str, blocks: list[Any] | None = None
    ) -> dict[str, Any]:
        """Replace the text (and optionally blocks) of an existing message."""
        data: dict[str, Any] = {"channel": channel, "ts": ts, "text": text}
        if blocks is not None:
            data["blocks"] = blocks

        response = await self.request("chat.update", data)
        return {
            "channel": response.get("channel"),
            "ts": response.get("ts"),
            "text": response.get("text"),
        }

    async def delete_message(self, channel: str, ts: str) -> dict[str, Any]:
        response = await self.request("chat.delete", {"channel": channel, "ts": ts})
        return {"channel": response.get("channel"), "ts": response.get("ts")}

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def list_channels(
        self,
        types: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """List channels visible to the bot, one page at a time."""
        data: dict[str, Any] = {}
        if types is not None:
            data["types"] = types
        if limit is not None:
            data["limit"] = limit
        if cursor is not None:
            data["cursor"] = cursor

        response = await self.request("conversations.list", data)
        return {"channels": response.get("channels", []), **_next_cursor(response)}

    async def get_channel_info(self, channel: str) -> SlackChannel:
        response = await self.request("conversations.info", {"channel": channel})
        return response.get("channel", {})

    async def get_channel_history(
        self,
        channel: str,
        limit: int | None = None,
        oldest: str | None = None,
        latest: str | None = None,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """Fetch a page of channel messages, newest first."""
        data: dict[str, Any] = {"channel": channel}
        if limit is not None:
            data["limit"] = limit
        if oldest is not None:
            data["oldest"] = oldest
        if latest is not None:
            data["latest"] = latest
        if cursor is not None:
            data["cursor"] = cursor

        response = await self.request("conversations.history", data)
        return {
            "messages": response.get("messages", []),
            "has_more": response.get("has_more", False),
            **_next_cursor(response),
        }

    async def get_replies(
        self,
        channel: str,
        ts: str,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        """Fetch a page of a thread, parent message included."""
        data: dict[str, Any] = {"channel": channel, "ts": ts}
        if limit is not None:
            data["limit"] = limit
        if cursor is not None:
            data["cursor"] = cursor

        response = await self.request("conversations.replies", data)
        return {
            "messages": response.get("messages", []),
            "has_more": response.get("has_more", False),
            **_next_cursor(response),
        }

    async def join_channel(self, channel: str) -> SlackChannel:
        response = await self.request("conversations.join", {"channel": channel})
        return response.get("channel", {})

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def list_users(
        self, limit: int | None = None, cursor: str | None = None
    ) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if limit is not None:
            data["limit"] = limit
        if cursor is not None:
            data["cursor"] = cursor

        response = await self.request("users.list", data)
        return {"members": response.get("members", []), **_next_cursor(response)}

    async def get_user_info(self, user: str) -> SlackUser:
        response = await self.request("users.info", {"user": user})
        return response.get("user", {})

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        await self.request(
            "reactions.add", {"channel": channel, "timestamp": timestamp, "name": name}
        )

    async def remove_reaction(self, channel: str, timestamp: str, name: str) -> None:
        await self.request(
            "reactions.remove", {"channel": channel, "timestamp": timestamp, "name": name}
        )

    # ------------------------------------------------------------------
    # Search & files
    # ------------------------------------------------------------------

    async def search_messages(
        self,
        query: str,
        sort: str | None = None,
        sort_dir: str | None = None,
        count: int | None = None,
    ) -> SlackSearchResult:
        """Search messages. Requires a token with the search:read scope."""
        data: dict[str, Any] = {"query": query}
        if sort is not None:
            data["sort"] = sort
        if sort_dir is not None:
            data["sort_dir"] = sort_dir
        if count is not None:
            data["count"] = count

        response = await self.request("search.messages", data)
        return response.get("messages", {})

    async def upload_file(
        self,
        channels: str,
        content: str,
        filename: str,
        title: str | None = None,
    ) -> SlackFile:
        """Upload text content as a file and share it in ``channels`` (comma-separated)."""
        data: dict[str, Any] = {
            "channels": channels,
            "content": content,
            "filename": filename,
        }
        if title is not None:
            data["title"] = title

        response = await self.request("files.upload", data)
        return response.get("file", {})
