"""Turn scraped post data into saved PostRecords and keep the fetched-posts log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from instabridge.instagram.media import MediaDownloader, post_id_from_url, sanitize_filename
from instabridge.instagram.seo import SEOGenerator
from instabridge.instagram.types import PostData, PostRecord
from instabridge.utils.exceptions import StorageError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _date_part(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return datetime.now(timezone.utc).date().isoformat()


class PostProcessor:
    """Downloads media for a post and builds its PostRecord."""

    def __init__(self, downloader: MediaDownloader | None = None, seo: SEOGenerator | None = None):
        self.downloader = downloader or MediaDownloader()
        self.seo = seo or SEOGenerator()

    async def process_post(self, data: PostData, save_dir: str | Path, username: str) -> PostRecord:
        post_id = post_id_from_url(data.post_url)
        post_dir = Path(save_dir) / username / _date_part(data.timestamp) / sanitize_filename(post_id or "post")

        is_video = data.type == "video"
        media_path = post_dir / ("media.mp4" if is_video else "media.jpg")
        await self.downloader.download(data.video_url if is_video and data.video_url else data.media_url, media_path)
        if is_video and data.poster_url:
            await self.downloader.download(data.poster_url, post_dir / "poster.jpg")

        hashtags = self.seo.extract_hashtags(data.caption)
        return PostRecord(
            id=post_id,
            type=data.type,
            media_url=data.media_url,
            local_media_path=str(media_path),
            alt=data.alt,
            caption=data.caption,
            seo_description=self.seo.generate_description(data.caption, hashtags),
            timestamp=data.timestamp,
            post_url=data.post_url,
            hashtags=hashtags,
            video_url=data.video_url if is_video else None,
            poster_url=data.poster_url if is_video else None,
        )


class PostSaver:
    """Writes per-post metadata.json and the fetched-posts log."""

    def __init__(self, posts_log_file: str | Path):
        self.posts_log_file = Path(posts_log_file)

    def save_post(self, post: PostRecord) -> Path:
        metadata_path = Path(post.local_media_path).parent / "metadata.json"
        payload = {**post.to_dict(), "fetchDate": _now_iso()}
        try:
            metadata_path.parent.mkdir(parents=True, exist_ok=True)
            metadata_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save post metadata: {e}", path=str(metadata_path)) from e
        return metadata_path

    def load_fetched_posts(self) -> dict[str, str]:
        """Map of post URL -> fetch date; empty when the log is missing or unreadable."""
        try:
            data = json.loads(self.posts_log_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable fetched-posts log {self.posts_log_file}: {e}")
            return {}
        posts = data.get("posts") if isinstance(data, dict) else None
        if not isinstance(posts, dict):
            return {}
        return {str(k): str(v) for k, v in posts.items()}

    def save_fetched_posts(self, posts: dict[str, str]) -> None:
        log = {"lastFetch": _now_iso(), "posts": dict(posts)}
        try:
            self.posts_log_file.parent.mkdir(parents=True, exist_ok=True)
            self.posts_log_file.write_text(json.dumps(log, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save fetched posts log: {e}", path=str(self.posts_log_file)) from e
