"""Instagram post data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from instabridge.protocol.progress import ProgressCallback

MediaType = Literal["image", "video"]


@dataclass(slots=True)
class PostData:
    """Raw fields scraped from a post page."""

    type: MediaType
    media_url: str
    alt: str
    caption: str
    timestamp: str
    post_url: str
    video_url: str | None = None
    poster_url: str | None = None

    @classmethod
    def from_page(cls, raw: dict[str, Any]) -> "PostData":
        return cls(
            type="video" if raw.get("type") == "video" else "image",
            media_url=str(raw.get("mediaUrl") or ""),
            alt=str(raw.get("alt") or ""),
            caption=str(raw.get("caption") or ""),
            timestamp=str(raw.get("timestamp") or ""),
            post_url=str(raw.get("postUrl") or ""),
            video_url=raw.get("videoUrl") or None,
            poster_url=raw.get("posterUrl") or None,
        )


@dataclass(slots=True)
class PostRecord:
    """A processed post: media saved locally, hashtags and SEO description attached."""

    id: str
    type: MediaType
    media_url: str
    local_media_path: str
    alt: str
    caption: str
    seo_description: str
    timestamp: str
    post_url: str
    hashtags: list[str] = field(default_factory=list)
    video_url: str | None = None
    poster_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "mediaUrl": self.media_url,
            "localMediaPath": self.local_media_path,
            "alt": self.alt,
            "caption": self.caption,
            "seoDescription": self.seo_description,
            "timestamp": self.timestamp,
            "postUrl": self.post_url,
            "hashtags": list(self.hashtags),
        }
        if self.type == "video":
            data["videoUrl"] = self.video_url
            data["posterUrl"] = self.poster_url
        return data


class PostFetcher(Protocol):
    """Collaborator contract consumed by the get_instagram_posts tool."""

    async def fetch_posts(
        self,
        username: str,
        limit: int,
        start_from: int,
        on_progress: ProgressCallback,
        *,
        save_dir: str | None = None,
        delay_between_posts: int | None = None,
    ) -> list[PostRecord]: ...

    async def close(self) -> None: ...
