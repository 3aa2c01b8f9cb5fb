"""The get_instagram_posts tool: argument validation, collaborator call, response shape."""

from __future__ import annotations

import json
import math
from typing import Any

from instabridge.instagram.types import PostFetcher
from instabridge.protocol.progress import ProgressReporter
from instabridge.utils.exceptions import ValidationError

TOOL_NAME = "get_instagram_posts"


def tool_descriptor(batch_size: int) -> dict[str, Any]:
    return {
        "name": TOOL_NAME,
        "description": "Get recent posts from an Instagram profile using existing Chrome login",
        "inputSchema": {
            "type": "object",
            "properties": {
                "username": {
                    "type": "string",
                    "description": "Instagram username to fetch posts from",
                },
                "limit": {
                    "type": ["number", "string"],
                    "description": f'Number of posts to fetch (1-{batch_size}) or "all" for continuous batches',
                },
                "startFrom": {
                    "type": "number",
                    "description": "Index to start fetching from (for pagination)",
                },
                "saveDir": {
                    "type": "string",
                    "description": "Directory to save media files and metadata (optional)",
                },
                "delayBetweenPosts": {
                    "type": "number",
                    "description": "Milliseconds to wait between processing posts (optional)",
                },
            },
            "required": ["username"],
        },
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def resolve_limit(raw: Any, batch_size: int) -> int:
    """Clamp the requested limit to one batch; "all", 0 and missing mean a full batch."""
    if raw is None or raw == "all":
        return batch_size
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            raise ValidationError('limit must be a number or "all"', field="limit") from None
    if not _is_number(raw):
        raise ValidationError('limit must be a number or "all"', field="limit")
    if raw < 0:
        raise ValidationError("limit must not be negative", field="limit")
    if raw == 0:
        return batch_size
    if raw < 1:
        raise ValidationError("limit must be at least 1", field="limit")
    return min(int(raw), batch_size)


async def run_get_instagram_posts(
    arguments: dict[str, Any],
    *,
    fetcher: PostFetcher,
    reporter: ProgressReporter,
    batch_size: int,
) -> dict[str, Any]:
    username = arguments.get("username")
    if not username or not isinstance(username, str):
        raise ValidationError("Username is required and must be a string", field="username")

    start_from = arguments.get("startFrom")
    start_from = int(start_from) if _is_number(start_from) and start_from >= 0 else 0
    limit = resolve_limit(arguments.get("limit"), batch_size)

    save_dir = arguments.get("saveDir")
    if save_dir is not None and not isinstance(save_dir, str):
        raise ValidationError("saveDir must be a string", field="saveDir")
    delay = arguments.get("delayBetweenPosts")
    if delay is not None and (not _is_number(delay) or delay < 0):
        raise ValidationError("delayBetweenPosts must be a non-negative number", field="delayBetweenPosts")

    posts = await fetcher.fetch_posts(
        username,
        limit,
        start_from,
        reporter.report,
        save_dir=save_dir or None,
        delay_between_posts=int(delay) if delay is not None else None,
    )

    has_more = len(posts) == batch_size
    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps([post.to_dict() for post in posts], indent=2, ensure_ascii=False),
            }
        ],
        "pagination": {
            "currentBatch": {
                "start": start_from,
                "end": start_from + len(posts),
                "size": len(posts),
            },
            "nextStartFrom": start_from + len(posts),
            "hasMore": has_more,
        },
        "keepAlive": has_more,
    }
