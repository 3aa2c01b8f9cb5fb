"""Pytest hooks and fixtures."""

import asyncio
import io
import json
import os

import pytest

from instabridge.config.schema import Config
from instabridge.instagram.types import PostRecord


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_browser: needs a Chromium instance reachable over CDP (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_browser tests when running in CI (no Chromium to attach to)."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a running Chromium (skipped in CI)")
    for item in items:
        if "requires_browser" in item.keywords:
            item.add_marker(skip)


def make_post(index: int, *, video: bool = False) -> PostRecord:
    return PostRecord(
        id=f"post{index}",
        type="video" if video else "image",
        media_url=f"https://cdn.example.com/{index}.jpg",
        local_media_path=f"/tmp/posts/post{index}/media.{'mp4' if video else 'jpg'}",
        alt=f"alt {index}",
        caption=f"Caption {index} #brows",
        seo_description="Cosmetic tattoo brows service.",
        timestamp="2024-03-01T10:00:00.000Z",
        post_url=f"https://www.instagram.com/p/post{index}/",
        hashtags=["brows"],
        video_url=f"https://cdn.example.com/{index}.mp4" if video else None,
        poster_url=f"https://cdn.example.com/{index}_poster.jpg" if video else None,
    )


class FakeFetcher:
    """In-memory stand-in for InstagramService."""

    def __init__(self, posts=None):
        self.posts = list(posts or [])
        self.error: Exception | None = None
        self.progress: list = []
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[dict] = []
        self.closed = 0

    async def fetch_posts(self, username, limit, start_from, on_progress, *, save_dir=None, delay_between_posts=None):
        self.calls.append(
            {
                "username": username,
                "limit": limit,
                "start_from": start_from,
                "save_dir": save_dir,
                "delay_between_posts": delay_between_posts,
            }
        )
        for update in self.progress:
            on_progress(update)
        gate = self.gates.get(username)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return self.posts[start_from:start_from + limit]

    async def close(self):
        self.closed += 1


def read_frames(output: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]


async def settle(transport, rounds: int = 50) -> None:
    """Let dispatched request tasks run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)
        if not transport.pending_requests:
            await asyncio.sleep(0)
            return


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        chrome_user_data_dir=str(tmp_path / "chrome"),
        instagram={"default_save_dir": str(tmp_path / "data")},
    )


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher(posts=[make_post(i) for i in range(5)])


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()
