"""Slack MCP Tools.

Provides MCP tools for Slack interaction:
- slack_post_message: Post a message to a channel
- slack_update_message: Update an existing message
- slack_delete_message: Delete a message
- slack_list_channels: List channels the bot has access to
- slack_get_channel_info: Get detailed channel information
- slack_get_channel_history: Get message history from a channel
- slack_get_replies: Get thread replies
- slack_join_channel: Join a public channel
- slack_list_users: List workspace users
- slack_get_user_info: Get user details
- slack_add_reaction: Add an emoji reaction to a message
- slack_remove_reaction: Remove an emoji reaction from a message
- slack_search_messages: Search messages across the workspace
- slack_upload_file: Upload a text file to channels

Every tool goes through one shared, lazily created ``SlackApiClient`` so the
whole process respects a single request-spacing budget. Failures come back to
the host as MCP errors (``isError: true``) with an ``Error: ...`` message.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import httpx
from fastmcp import FastMCP
from pydantic import Field

from server.errors import ErrorCodes, ToolResult, tool_error, tool_success
from server.tool_registry import ToolRegistry
from tool_modules.aa_slack.src.slack_api_client import (
    SlackApiClient,
    SlackConfigError,
    SlackHTTPError,
    SlackRateLimitError,
    SlackResponseError,
)
from tool_modules.common import PROJECT_ROOT

__project_root__ = PROJECT_ROOT

logger = logging.getLogger(__name__)


# Global client instance (initialized on first use)
_client: SlackApiClient | None = None
_client_lock = asyncio.Lock()


async def get_client() -> SlackApiClient:
    """Get or create the shared SlackApiClient."""
    global _client
    async with _client_lock:
        if _client is None:
            _client = SlackApiClient.from_config()
            logger.info(
                f"Slack client ready ({_client.base_url}, "
                f"min interval {_client.min_request_interval}s)"
            )
        return _client


async def close_client() -> None:
    """Close and forget the shared client."""
    global _client
    async with _client_lock:
        if _client is not None:
            await _client.close()
            _client = None


def _failure(
    tool_name: str,
    message: str,
    code: str,
    method: str = "",
    level: int = logging.WARNING,
) -> ToolResult:
    """Build a failure result and log it with its error code."""
    context = {"tool": tool_name}
    if method:
        context["method"] = method
    result = tool_error(message, code=code, context=context)
    where = f" ({method})" if method else ""
    logger.log(level, f"{tool_name}{where} failed [{code}]: {result.message}")
    return result


async def _run(
    tool_name: str,
    call: Callable[[SlackApiClient], Awaitable[Any]],
) -> ToolResult:
    """Run ``call`` against the shared client and wrap the outcome."""
    try:
        client = await get_client()
        return tool_success(await call(client))
    except SlackConfigError as e:
        return _failure(tool_name, str(e), ErrorCodes.CONFIG_MISSING, level=logging.ERROR)
    except SlackRateLimitError as e:
        return _failure(tool_name, str(e), ErrorCodes.RATE_LIMITED, e.method)
    except SlackHTTPError as e:
        return _failure(tool_name, str(e), ErrorCodes.HTTP_ERROR, e.method)
    except SlackResponseError as e:
        return _failure(tool_name, str(e), ErrorCodes.API_ERROR, e.method)
    except httpx.HTTPError as e:
        return _failure(
            tool_name,
            f"Slack request failed: {type(e).__name__}: {e}",
            ErrorCodes.CONNECTION_FAILED,
        )
    except Exception as e:
        logger.exception(f"{tool_name} failed [{ErrorCodes.INTERNAL_ERROR}]")
        return tool_error(str(e), code=ErrorCodes.INTERNAL_ERROR, context={"tool": tool_name})


# ==================== TOOL IMPLEMENTATIONS ====================


async def _slack_post_message_impl(
    channel: str, text: str, blocks: list[Any] | None = None
) -> ToolResult:
    return await _run(
        "slack_post_message", lambda client: client.post_message(channel, text, blocks)
    )


async def _slack_update_message_impl(
    channel: str, ts: str, text: str, blocks: list[Any] | None = None
) -> ToolResult:
    return await _run(
        "slack_update_message",
        lambda client: client.update_message(channel, ts, text, blocks),
    )


async def _slack_delete_message_impl(channel: str, ts: str) -> ToolResult:
    return await _run(
        "slack_delete_message", lambda client: client.delete_message(channel, ts)
    )


async def _slack_list_channels_impl(
    types: str | None = None, limit: int | None = None, cursor: str | None = None
) -> ToolResult:
    return await _run(
        "slack_list_channels", lambda client: client.list_channels(types, limit, cursor)
    )


async def _slack_get_channel_info_impl(channel: str) -> ToolResult:
    return await _run(
        "slack_get_channel_info", lambda client: client.get_channel_info(channel)
    )


async def _slack_get_channel_history_impl(
    channel: str,
    limit: int | None = None,
    oldest: str | None = None,
    latest: str | None = None,
    cursor: str | None = None,
) -> ToolResult:
    return await _run(
        "slack_get_channel_history",
        lambda client: client.get_channel_history(channel, limit, oldest, latest, cursor),
    )


async def _slack_get_replies_impl(
    channel: str, ts: str, limit: int | None = None, cursor: str | None = None
) -> ToolResult:
    return await _run(
        "slack_get_replies", lambda client: client.get_replies(channel, ts, limit, cursor)
    )


async def _slack_join_channel_impl(channel: str) -> ToolResult:
    return await _run("slack_join_channel", lambda client: client.join_channel(channel))


async def _slack_list_users_impl(
    limit: int | None = None, cursor: str | None = None
) -> ToolResult:
    return await _run("slack_list_users", lambda client: client.list_users(limit, cursor))


async def _slack_get_user_info_impl(user: str) -> ToolResult:
    return await _run("slack_get_user_info", lambda client: client.get_user_info(user))


async def _slack_add_reaction_impl(channel: str, timestamp: str, name: str) -> ToolResult:
    async def call(client: SlackApiClient) -> dict[str, bool]:
        await client.add_reaction(channel, timestamp, name)
        return {"success": True}

    return await _run("slack_add_reaction", call)


async def _slack_remove_reaction_impl(channel: str, timestamp: str, name: str) -> ToolResult:
    async def call(client: SlackApiClient) -> dict[str, bool]:
        await client.remove_reaction(channel, timestamp, name)
        return {"success": True}

    return await _run("slack_remove_reaction", call)


async def _slack_search_messages_impl(
    query: str,
    sort: str | None = None,
    sort_dir: str | None = None,
    count: int | None = None,
) -> ToolResult:
    return await _run(
        "slack_search_messages",
        lambda client: client.search_messages(query, sort, sort_dir, count),
    )


async def _slack_upload_file_impl(
    channels: str, content: str, filename: str, title: str | None = None
) -> ToolResult:
    return await _run(
        "slack_upload_file",
        lambda client: client.upload_file(channels, content, filename, title),
    )


# ==================== Argument shapes ====================

Blocks = Annotated[
    list[Any] | None,
    Field(description="Optional Block Kit blocks for rich formatting"),
]
ChannelLimit = Annotated[
    int | None,
    Field(description="Maximum number of channels to return (default: 100, max: 1000)"),
]
MessageLimit = Annotated[
    int | None,
    Field(description="Number of messages to return (default: 100, max: 1000)"),
]
ReplyLimit = Annotated[
    int | None,
    Field(description="Number of replies to return (default: 100, max: 1000)"),
]
UserLimit = Annotated[
    int | None,
    Field(description="Maximum number of users to return (default: 100, max: 1000)"),
]
Cursor = Annotated[str | None, Field(description="Pagination cursor from previous response")]
ReactionName = Annotated[
    str, Field(description="Reaction emoji name (without colons, e.g., thumbsup)")
]


def register_tools(server: FastMCP) -> int:
    """
    Register Slack MCP tools with the server.

    Args:
        server: FastMCP server instance

    Returns:
        Number of tools registered
    """
    registry = ToolRegistry(server)

    # ==================== Message Tools ====================

    @registry.tool()
    async def slack_post_message(
        channel: Annotated[
            str, Field(description="Channel ID or name (e.g., C1234567890 or #general)")
        ],
        text: Annotated[str, Field(description="Message text content")],
        blocks: Blocks = None,
    ) -> str:
        """Post a message to a Slack channel."""
        result = await _slack_post_message_impl(channel, text, blocks)
        return result.unwrap()

    @registry.tool()
    async def slack_update_message(
        channel: Annotated[str, Field(description="Channel ID containing the message")],
        ts: Annotated[str, Field(description="Timestamp of the message to update")],
        text: Annotated[str, Field(description="New message text content")],
        blocks: Blocks = None,
    ) -> str:
        """Update an existing Slack message."""
        result = await _slack_update_message_impl(channel, ts, text, blocks)
        return result.unwrap()

    @registry.tool()
    async def slack_delete_message(
        channel: Annotated[str, Field(description="Channel ID containing the message")],
        ts: Annotated[str, Field(description="Timestamp of the message to delete")],
    ) -> str:
        """Delete a Slack message."""
        result = await _slack_delete_message_impl(channel, ts)
        return result.unwrap()

    # ==================== Channel Tools ====================

    @registry.tool()
    async def slack_list_channels(
        types: Annotated[
            str | None,
            Field(
                description="Comma-separated list of channel types "
                "(public_channel, private_channel, mpim, im)"
            ),
        ] = None,
        limit: ChannelLimit = None,
        cursor: Cursor = None,
    ) -> str:
        """
        List channels the bot has access to.

        Returns:
            JSON with channels and, when more pages exist, next_cursor.
        """
        result = await _slack_list_channels_impl(types, limit, cursor)
        return result.unwrap()

    @registry.tool()
    async def slack_get_channel_info(
        channel: Annotated[str, Field(description="Channel ID to get information about")],
    ) -> str:
        """Get detailed channel information."""
        result = await _slack_get_channel_info_impl(channel)
        return result.unwrap()

    @registry.tool()
    async def slack_get_channel_history(
        channel: Annotated[str, Field(description="Channel ID to get history from")],
        limit: MessageLimit = None,
        oldest: Annotated[
            str | None, Field(description="Start of time range (Unix timestamp)")
        ] = None,
        latest: Annotated[
            str | None, Field(description="End of time range (Unix timestamp)")
        ] = None,
        cursor: Cursor = None,
    ) -> str:
        """
        Get message history from a channel.

        Returns:
            JSON with messages, has_more and, when more pages exist, next_cursor.
        """
        result = await _slack_get_channel_history_impl(channel, limit, oldest, latest, cursor)
        return result.unwrap()

    @registry.tool()
    async def slack_get_replies(
        channel: Annotated[str, Field(description="Channel ID containing the thread")],
        ts: Annotated[str, Field(description="Timestamp of the parent message")],
        limit: ReplyLimit = None,
        cursor: Cursor = None,
    ) -> str:
        """Get thread replies."""
        result = await _slack_get_replies_impl(channel, ts, limit, cursor)
        return result.unwrap()

    @registry.tool()
    async def slack_join_channel(
        channel: Annotated[str, Field(description="Channel ID to join")],
    ) -> str:
        """Join a public channel."""
        result = await _slack_join_channel_impl(channel)
        return result.unwrap()

    # ==================== User Tools ====================

    @registry.tool()
    async def slack_list_users(limit: UserLimit = None, cursor: Cursor = None) -> str:
        """List all workspace users."""
        result = await _slack_list_users_impl(limit, cursor)
        return result.unwrap()

    @registry.tool()
    async def slack_get_user_info(
        user: Annotated[str, Field(description="User ID to get information about")],
    ) -> str:
        """Get user details."""
        result = await _slack_get_user_info_impl(user)
        return result.unwrap()

    # ==================== Reaction Tools ====================

    @registry.tool()
    async def slack_add_reaction(
        channel: Annotated[str, Field(description="Channel ID containing the message")],
        timestamp: Annotated[
            str, Field(description="Timestamp of the message to add reaction to")
        ],
        name: ReactionName,
    ) -> str:
        """Add emoji reaction to a message."""
        result = await _slack_add_reaction_impl(channel, timestamp, name)
        return result.unwrap()

    @registry.tool()
    async def slack_remove_reaction(
        channel: Annotated[str, Field(description="Channel ID containing the message")],
        timestamp: Annotated[
            str, Field(description="Timestamp of the message to remove reaction from")
        ],
        name: ReactionName,
    ) -> str:
        """Remove emoji reaction from a message."""
        result = await _slack_remove_reaction_impl(channel, timestamp, name)
        return result.unwrap()

    # ==================== Search & File Tools ====================

    @registry.tool()
    async def slack_search_messages(
        query: Annotated[str, Field(description="Search query (supports Slack search syntax)")],
        sort: Annotated[
            str | None, Field(description="Sort results by 'score' or 'timestamp'")
        ] = None,
        sortDir: Annotated[  # noqa: N803
            str | None, Field(description="Sort direction: 'asc' or 'desc'")
        ] = None,
        count: Annotated[
            int | None, Field(description="Number of results to return (default: 20, max: 100)")
        ] = None,
    ) -> str:
        """Search messages across workspace."""
        result = await _slack_search_messages_impl(query, sort, sortDir, count)
        return result.unwrap()

    @registry.tool()
    async def slack_upload_file(
        channels: Annotated[
            str, Field(description="Comma-separated list of channel IDs to share the file in")
        ],
        content: Annotated[str, Field(description="File content as string")],
        filename: Annotated[str, Field(description="Filename with extension")],
        title: Annotated[str | None, Field(description="Optional title for the file")] = None,
    ) -> str:
        """Upload a text file to channels."""
        result = await _slack_upload_file_impl(channels, content, filename, title)
        return result.unwrap()

    return registry.count
