"""Tests for post processing, media downloads and the fetched-posts log."""

import json

import httpx
import pytest

from conftest import make_post
from instabridge.instagram.media import MediaDownloader, post_id_from_url, sanitize_filename
from instabridge.instagram.posts import PostProcessor, PostSaver
from instabridge.instagram.types import PostData
from instabridge.utils.exceptions import StorageError


class FakeDownloader:
    def __init__(self):
        self.downloads = []

    async def download(self, url, save_path):
        self.downloads.append((url, save_path))
        save_path.parent.mkdir(parents=True, exist_ok=True)
        save_path.write_bytes(b"data")
        return save_path

    async def aclose(self):
        pass


def test_media_helpers():
    assert post_id_from_url("https://www.instagram.com/p/C4x_Yz9/?img_index=1") == "C4x_Yz9"
    assert post_id_from_url("https://www.instagram.com/reel/Abc123/") == "Abc123"
    assert post_id_from_url("https://www.instagram.com/pinkink/") == ""
    assert sanitize_filename("C4x-Yz9") == "c4x_yz9"


def test_post_data_from_page():
    data = PostData.from_page(
        {"type": "video", "mediaUrl": "m", "caption": None, "postUrl": "u", "videoUrl": "", "posterUrl": "p"}
    )
    assert data.type == "video"
    assert data.caption == ""
    assert data.video_url is None
    assert data.poster_url == "p"


@pytest.mark.asyncio
async def test_process_image_post(tmp_path):
    downloader = FakeDownloader()
    processor = PostProcessor(downloader=downloader)
    data = PostData(
        type="image",
        media_url="https://cdn.example.com/img.jpg",
        alt="brows",
        caption="Fresh #powderbrows",
        timestamp="2024-01-02T10:00:00.000Z",
        post_url="https://www.instagram.com/p/ABC-1/",
    )
    record = await processor.process_post(data, tmp_path, "pinkink")

    expected = tmp_path / "pinkink" / "2024-01-02" / "abc_1" / "media.jpg"
    assert downloader.downloads == [("https://cdn.example.com/img.jpg", expected)]
    assert record.id == "ABC-1"
    assert record.local_media_path == str(expected)
    assert record.hashtags == ["powderbrows"]
    assert "brows" in record.seo_description
    assert record.video_url is None


@pytest.mark.asyncio
async def test_process_video_post_downloads_poster(tmp_path):
    downloader = FakeDownloader()
    processor = PostProcessor(downloader=downloader)
    data = PostData(
        type="video",
        media_url="https://cdn.example.com/poster.jpg",
        alt="",
        caption="",
        timestamp="not a date",
        post_url="https://www.instagram.com/reel/XYZ/",
        video_url="https://cdn.example.com/clip.mp4",
        poster_url="https://cdn.example.com/poster.jpg",
    )
    record = await processor.process_post(data, tmp_path, "pinkink")

    urls = [url for url, _ in downloader.downloads]
    names = [path.name for _, path in downloader.downloads]
    assert urls == ["https://cdn.example.com/clip.mp4", "https://cdn.example.com/poster.jpg"]
    assert names == ["media.mp4", "poster.jpg"]
    assert record.to_dict()["videoUrl"] == "https://cdn.example.com/clip.mp4"


def test_save_post_writes_metadata(tmp_path):
    post = make_post(1)
    post.local_media_path = str(tmp_path / "post1" / "media.jpg")
    path = PostSaver(tmp_path / "log.json").save_post(post)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "metadata.json"
    assert data["id"] == "post1"
    assert data["seoDescription"] == post.seo_description
    assert "fetchDate" in data


def test_fetched_posts_log_round_trip(tmp_path):
    saver = PostSaver(tmp_path / "nested" / "fetched_posts.json")
    assert saver.load_fetched_posts() == {}
    saver.save_fetched_posts({"https://www.instagram.com/p/a/": "2024-01-01T00:00:00+00:00"})
    assert saver.load_fetched_posts() == {"https://www.instagram.com/p/a/": "2024-01-01T00:00:00+00:00"}
    raw = json.loads(saver.posts_log_file.read_text(encoding="utf-8"))
    assert "lastFetch" in raw


def test_corrupt_log_is_ignored(tmp_path):
    log = tmp_path / "fetched_posts.json"
    log.write_text("{oops", encoding="utf-8")
    assert PostSaver(log).load_fetched_posts() == {}


@pytest.mark.asyncio
async def test_media_downloader_writes_file(tmp_path):
    def handler(request):
        assert "Mozilla" in request.headers["User-Agent"]
        return httpx.Response(200, content=b"jpegbytes")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    downloader = MediaDownloader(client=client)
    target = tmp_path / "a" / "media.jpg"
    assert await downloader.download("https://cdn.example.com/x.jpg", target) == target
    assert target.read_bytes() == b"jpegbytes"
    await downloader.aclose()
    await client.aclose()


@pytest.mark.asyncio
async def test_media_downloader_http_error(tmp_path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    downloader = MediaDownloader(client=client)
    with pytest.raises(StorageError) as info:
        await downloader.download("https://cdn.example.com/missing.jpg", tmp_path / "m.jpg")
    assert info.value.code == "STORAGE_ERROR"
    await client.aclose()
