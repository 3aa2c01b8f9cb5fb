"""Configuration schema using Pydantic.

Built once by the host at startup and passed by reference to the server and
the Instagram service; nothing reads configuration from module globals.
"""

from pathlib import Path

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


def _default_save_dir() -> str:
    return str(Path.home() / ".instabridge" / "instagram_data")


class BrowserConfig(BaseModel):
    """Chromium session used for scraping (attached over CDP, launched as a fallback)."""
    headless: bool = True
    window_width: int = 1280
    window_height: int = 800
    default_timeout: int = 10000  # ms
    navigation_timeout: int = 30000  # ms
    debug_port: int = 9222
    cdp_url: str = ""  # Overrides http://localhost:<debug_port> when set
    channel: str = "chrome"  # Empty uses Playwright's bundled Chromium
    profile_dir: str = "Default"
    connect_retries: int = 5
    retry_backoff: float = 1.0  # seconds, doubled after each failed attempt

    @property
    def endpoint(self) -> str:
        return self.cdp_url.strip() or f"http://localhost:{self.debug_port}"


class InstagramConfig(BaseModel):
    """Post fetching behaviour."""
    default_save_dir: str = Field(default_factory=_default_save_dir)
    posts_log_file: str = ""  # Defaults to <default_save_dir>/fetched_posts.json
    default_delay: int = 5000  # ms between posts
    max_posts_per_batch: int = 3
    batch_break_delay: int = 60000  # ms
    min_delay: int = 3000  # ms
    scroll_attempts: int = 3
    max_caption_length: int = 150
    link_cache_ttl: float = 300.0  # seconds

    @property
    def resolved_posts_log_file(self) -> str:
        return self.posts_log_file or str(Path(self.default_save_dir) / "fetched_posts.json")


class ProgressConfig(BaseModel):
    """Progress throttling and heartbeat."""
    interval_seconds: float = 45.0


class Config(BaseSettings):
    """Root configuration for instabridge."""
    name: str = "instagram-server"
    version: str = "0.2.0"
    chrome_user_data_dir: str = ""
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    instagram: InstagramConfig = Field(default_factory=InstagramConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)

    model_config = ConfigDict(
        env_prefix="INSTABRIDGE_",
        env_nested_delimiter="__"
    )
