"""Instagram post fetching through a logged-in Chromium session."""

from __future__ import annotations

import asyncio
import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from instabridge.config.schema import Config
from instabridge.instagram.posts import PostProcessor, PostSaver
from instabridge.instagram.types import PostData, PostRecord
from instabridge.protocol.progress import ProgressCallback, ProgressUpdate
from instabridge.utils.exceptions import BrowserError, NoContentError, sanitize_error_message

PROFILE_URL = "https://www.instagram.com/{username}/"
MAX_PROGRESS_MESSAGE = 50

MOBILE_CONTEXT_OPTIONS: dict[str, Any] = {
    "viewport": {"width": 390, "height": 844},
    "user_agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1_1 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
    ),
    "device_scale_factor": 3,
    "is_mobile": True,
    "has_touch": True,
}

EXTRA_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Site": "same-origin",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Dest": "empty",
    "X-IG-App-ID": "936619743392459",
    "X-Requested-With": "XMLHttpRequest",
    "X-ASBD-ID": "129477",
    "X-IG-WWW-Claim": "0",
}

_COLLECT_LINKS_JS = """() => {
  const links = new Set();
  document.querySelectorAll('a').forEach(anchor => {
    const href = anchor.href;
    if (href && (href.includes('/p/') || href.includes('/reel/')) && anchor.querySelector('img')) {
      links.add(href);
    }
  });
  return Array.from(links);
}"""

_EXTRACT_POST_JS = """(maxLength) => {
  const img = document.querySelector('img:not([src*="150x150"]):not([src*="profile"])');
  const video = document.querySelector('video');
  let caption = '';
  for (const element of Array.from(document.querySelectorAll('*'))) {
    const text = (element.textContent || '').trim();
    if (text.includes('#') || text.length > 30) {
      caption = text.substring(0, maxLength);
      break;
    }
  }
  const mediaUrl = video
    ? (video.getAttribute('src') || video.getAttribute('poster'))
    : (img ? img.getAttribute('src') : null);
  if (!mediaUrl) return null;
  const timeElement = document.querySelector('time');
  return {
    type: video ? 'video' : 'image',
    mediaUrl,
    alt: ((img && img.getAttribute('alt')) || (video && video.getAttribute('alt')) || '').substring(0, 100),
    caption,
    timestamp: (timeElement && timeElement.getAttribute('datetime')) || new Date().toISOString(),
    postUrl: window.location.href,
    videoUrl: video ? (video.getAttribute('src') || '') : null,
    posterUrl: video ? (video.getAttribute('poster') || '') : null,
  };
}"""


class InstagramService:
    """Fetches recent posts of a profile, saving media and metadata as it goes."""

    def __init__(
        self,
        config: Config,
        *,
        processor: PostProcessor | None = None,
        saver: PostSaver | None = None,
    ):
        self.config = config
        self.processor = processor or PostProcessor()
        self.saver = saver or PostSaver(config.instagram.resolved_posts_log_file)
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._owns_context = False
        self._lock = asyncio.Lock()
        self._link_cache: dict[str, tuple[float, list[str]]] = {}

    async def fetch_posts(
        self,
        username: str,
        limit: int,
        start_from: int,
        on_progress: ProgressCallback,
        *,
        save_dir: str | None = None,
        delay_between_posts: int | None = None,
    ) -> list[PostRecord]:
        """
        Fetch up to ``limit`` posts starting at index ``start_from``.

        Raises NoContentError when the profile shows no posts at all. Failures
        on individual posts are logged and skipped.
        """
        ig = self.config.instagram
        count = limit if limit and limit > 0 else ig.max_posts_per_batch
        target_dir = save_dir or ig.default_save_dir
        delay_ms = ig.default_delay if delay_between_posts is None else delay_between_posts
        step = {"progress": 0, "total": 5}

        def emit(message: str, keep_alive: bool = False) -> None:
            step["progress"] += 1
            on_progress(
                ProgressUpdate(
                    message=message[:MAX_PROGRESS_MESSAGE],
                    progress=step["progress"],
                    total=step["total"],
                    keep_alive=keep_alive,
                )
            )

        context = await self._ensure_context()
        page = await context.new_page()
        try:
            emit("Loading...", keep_alive=True)
            await self._human_navigate(page, PROFILE_URL.format(username=username))

            links = await self._get_cached_or_fetch_links(page, username, start_from + count)
            if not links:
                raise NoContentError("No posts found", target=username)

            fetched = self.saver.load_fetched_posts()
            end_index = min(start_from + count, len(links))
            targets = links[start_from:end_index]
            step["total"] = step["progress"] + len(targets) + 1

            posts: list[PostRecord] = []
            for post_url in targets:
                try:
                    await self._human_navigate(page, post_url)
                    data = await self._extract_post_data(page)
                    if data is None:
                        continue
                    post = await self.processor.process_post(data, target_dir, username)
                    self.saver.save_post(post)
                    fetched[post_url] = datetime.now(timezone.utc).isoformat()
                    self.saver.save_fetched_posts(fetched)
                    posts.append(post)
                    emit(f"Fetched {len(posts)}/{len(targets)}", keep_alive=True)
                    await self._random_delay(ig.min_delay, max(ig.min_delay, delay_ms))
                except Exception as e:
                    logger.warning("Post error {}: {}", post_url, sanitize_error_message(str(e)))
                    continue

            has_more = end_index < len(links)
            emit("More available" if has_more else "Complete", keep_alive=has_more)
            return posts
        finally:
            await page.close()

    async def close(self) -> None:
        """Disconnect from (or shut down) the browser and release HTTP resources. Safe to call repeatedly."""
        async with self._lock:
            context, self._context = self._context, None
            if context is not None and self._owns_context:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug(f"Browser context close failed: {e}")
            self._owns_context = False
            if self._browser:
                try:
                    await self._browser.close()
                except Exception as e:
                    logger.debug(f"Browser disconnect failed: {e}")
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
        await self.processor.downloader.aclose()

    async def _ensure_context(self) -> Any:
        if self._context is not None:
            return self._context
        async with self._lock:
            if self._context is not None:
                return self._context
            if self._playwright is None:
                try:
                    self._playwright = await self._start_playwright()
                except Exception as e:
                    raise BrowserError(f"Could not start Playwright: {e}") from e

            attempts = max(1, self.config.browser.connect_retries)
            for attempt in range(1, attempts + 1):
                try:
                    context = await self._open_context()
                    break
                except BrowserError as e:
                    if not e.details.get("is_retryable"):
                        raise
                    error: Exception = e
                except Exception as e:
                    error = e
                if attempt == attempts:
                    raise BrowserError(
                        f"Failed to initialize browser after {attempts} attempts: {error}",
                        is_retryable=True,
                    ) from error
                delay = self.config.browser.retry_backoff * 2 ** (attempt - 1)
                logger.warning(
                    "Browser attempt {}/{} failed: {}; retrying in {:.1f}s",
                    attempt,
                    attempts,
                    sanitize_error_message(str(error)),
                    delay,
                )
                await self._sleep(delay)

            context.set_default_timeout(self.config.browser.default_timeout)
            await context.route("**/*", self._with_extra_headers)
            self._context = context
            return context

    @staticmethod
    async def _start_playwright() -> Any:
        from playwright.async_api import async_playwright

        return await async_playwright().start()

    async def _open_context(self) -> Any:
        """Attach to a running Chromium over CDP, or launch one on the user's profile."""
        endpoint = self.config.browser.endpoint
        try:
            self._browser = await self._playwright.chromium.connect_over_cdp(endpoint)
        except Exception as e:
            logger.info("No Chromium at {} ({}); launching one", endpoint, e)
            return await self._launch_context()
        logger.info("Attached to Chromium at {}", endpoint)
        contexts = self._browser.contexts
        return contexts[0] if contexts else await self._browser.new_context(**MOBILE_CONTEXT_OPTIONS)

    async def _launch_context(self) -> Any:
        user_data_dir = self.config.chrome_user_data_dir
        if not user_data_dir or not Path(user_data_dir).is_dir():
            raise BrowserError(f"Chrome user data directory not found: {user_data_dir}")

        browser = self.config.browser
        launch_opts: dict[str, Any] = {
            "headless": browser.headless,
            "viewport": {"width": browser.window_width, "height": browser.window_height},
            "args": [
                f"--window-size={browser.window_width},{browser.window_height}",
                f"--profile-directory={browser.profile_dir}",
                f"--remote-debugging-port={browser.debug_port}",
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-dev-shm-usage",
            ],
            "ignore_default_args": ["--disable-extensions"],
        }
        if browser.channel.strip():
            launch_opts["channel"] = browser.channel.strip()
        context = await self._playwright.chromium.launch_persistent_context(user_data_dir, **launch_opts)
        self._owns_context = True
        logger.info("Launched Chromium on profile {}", user_data_dir)
        return context

    @staticmethod
    async def _sleep(seconds: float) -> None:
        await asyncio.sleep(seconds)

    @staticmethod
    async def _with_extra_headers(route: Any, request: Any) -> None:
        await route.continue_(headers={**request.headers, **EXTRA_HEADERS})

    async def _get_cached_or_fetch_links(self, page: Any, username: str, target_count: int) -> list[str]:
        cached = self._link_cache.get(username)
        now = time.monotonic()
        if cached and len(cached[1]) >= target_count and now - cached[0] < self.config.instagram.link_cache_ttl:
            return cached[1]
        links = await self._collect_links(page, target_count)
        self._link_cache[username] = (now, links)
        return links

    async def _collect_links(self, page: Any, target_count: int) -> list[str]:
        attempts = 0
        links: list[str] = []
        while attempts < self.config.instagram.scroll_attempts:
            previous_height = await page.evaluate("() => document.body.scrollHeight")
            await self._human_scroll(page, 500)
            links = await page.evaluate(_COLLECT_LINKS_JS)
            if len(links) >= target_count:
                break
            current_height = await page.evaluate("() => document.body.scrollHeight")
            if current_height <= previous_height:
                attempts += 1
                await self._random_delay(1000, 3000)
        return links

    async def _extract_post_data(self, page: Any) -> PostData | None:
        try:
            raw = await page.evaluate(_EXTRACT_POST_JS, self.config.instagram.max_caption_length)
        except Exception as e:
            logger.debug(f"Extract error: {e}")
            return None
        return PostData.from_page(raw) if raw else None

    async def _human_navigate(self, page: Any, url: str) -> None:
        await self._random_delay(1000, 3000)
        await page.goto(url, wait_until="domcontentloaded", timeout=self.config.browser.navigation_timeout)
        await self._human_scroll(page, 300)

    async def _human_scroll(self, page: Any, base_distance: int) -> None:
        variance = 0.3
        for _ in range(random.randint(5, 7)):
            amount = base_distance * (1 + random.uniform(-variance / 2, variance / 2))
            await page.evaluate("(amount) => window.scrollBy(0, amount)", amount)
            await self._random_delay(500, 1500)

    @staticmethod
    async def _random_delay(min_ms: float, max_ms: float) -> None:
        await asyncio.sleep(random.uniform(min_ms, max_ms) / 1000)
