"""Instagram post fetching collaborator."""

from instabridge.instagram.posts import PostProcessor, PostSaver
from instabridge.instagram.service import InstagramService
from instabridge.instagram.types import PostData, PostFetcher, PostRecord

__all__ = ["InstagramService", "PostData", "PostFetcher", "PostProcessor", "PostRecord", "PostSaver"]
