import asyncio
import unittest
from datetime import datetime, timezone

from kiosk_media.crawler.classify import classify
from kiosk_media.crawler.crawler import RemoteMediaCrawler
from kiosk_media.webdav.errors import ConnectionFailedError, ServerError
from kiosk_media.webdav.models import RemoteResource
from kiosk_media.webdav.paths import href_to_path

HOST = "https://nas.local"


class FakeLister:
    """In-memory folder tree: path -> resources, or an exception to raise for that path."""

    def __init__(self, tree: dict, *, delay: float = 0.0) -> None:
        self.tree = tree
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_directory_checked(self, path: str, depth: int = 1) -> list[RemoteResource]:
        self.calls.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            entry = self.tree.get(path)
            if entry is None:
                raise ServerError("server returned error: 404", status=404)
            if isinstance(entry, Exception):
                raise entry
            return list(entry)
        finally:
            self.in_flight -= 1

    def url_for(self, path: str) -> str:
        return HOST + path

    def resolve_href(self, href: str, base_path: str) -> str:
        return href_to_path(href, base_path)


def folder(href: str) -> RemoteResource:
    return RemoteResource(href=href, is_collection=True)


def media(href: str, content_type: str = "") -> RemoteResource:
    return RemoteResource(href=href, content_type=content_type)


class ClassifyTests(unittest.TestCase):
    def test_content_type_wins(self) -> None:
        self.assertEqual(classify("image/jpeg", "/a.bin"), "image")
        self.assertEqual(classify("VIDEO/MP4", "/a.jpg"), "video")

    def test_extension_fallback(self) -> None:
        self.assertEqual(classify("", "/a/B.HEIC"), "image")
        self.assertEqual(classify("application/octet-stream", "/a/clip.mkv"), "video")
        self.assertEqual(classify("", "/a/My%20Clip.MOV"), "video")

    def test_unknown_is_dropped(self) -> None:
        self.assertIsNone(classify("text/plain", "/a/readme.txt"))
        self.assertIsNone(classify("", "/a/noextension"))
        self.assertIsNone(classify("", "/a/archive.gif"))

    def test_same_input_same_answer(self) -> None:
        answers = {classify("", "/x/photo.png") for _ in range(5)}
        self.assertEqual(answers, {"image"})


class CrawlTests(unittest.IsolatedAsyncioTestCase):
    async def test_recurses_and_keeps_current_level_first(self) -> None:
        lister = FakeLister(
            {
                "/Photos": [
                    folder("/Photos/2023/"),
                    media("/Photos/top.jpg", "image/jpeg"),
                    media("/Photos/notes.txt", "text/plain"),
                ],
                "/Photos/2023": [media("/Photos/2023/clip.mp4"), folder("/Photos/2023/Deep/")],
                "/Photos/2023/Deep": [media("deep.png")],
            }
        )

        items = await RemoteMediaCrawler(lister=lister).crawl("/Photos/")

        self.assertEqual(
            [item.id for item in items],
            [
                f"{HOST}/Photos/top.jpg",
                f"{HOST}/Photos/2023/clip.mp4",
                f"{HOST}/Photos/2023/Deep/deep.png",
            ],
        )
        self.assertEqual([item.kind for item in items], ["image", "video", "image"])
        self.assertTrue(all(item.is_remote for item in items))

    async def test_last_modified_becomes_creation_date(self) -> None:
        stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
        lister = FakeLister({"/": [RemoteResource(href="/a.jpg", last_modified=stamp)]})

        items = await RemoteMediaCrawler(lister=lister).crawl("")

        self.assertEqual(items[0].creation_date, stamp)

    async def test_failed_subtree_is_isolated(self) -> None:
        lister = FakeLister(
            {
                "/": [media("/root.jpg"), folder("/a/"), folder("/b/")],
                "/a": ConnectionFailedError("cannot connect: timed out"),
                "/b": [media("/b/one.jpg"), folder("/b/c/")],
                "/b/c": [media("/b/c/two.mov")],
            }
        )

        report = await RemoteMediaCrawler(lister=lister).crawl_report("/")

        self.assertEqual(
            sorted(item.id for item in report.items),
            sorted(f"{HOST}{p}" for p in ("/root.jpg", "/b/one.jpg", "/b/c/two.mov")),
        )
        self.assertEqual(report.failed_paths, ["/a"])
        self.assertFalse(report.succeeded)

    async def test_root_failure_yields_nothing(self) -> None:
        lister = FakeLister({"/": RuntimeError("boom")})

        report = await RemoteMediaCrawler(lister=lister).crawl_report("/")

        self.assertEqual(report.items, [])
        self.assertEqual(report.failed_paths, ["/"])

    async def test_cycle_is_listed_once(self) -> None:
        lister = FakeLister(
            {
                "/a": [media("/a/x.jpg"), folder("/a/b/")],
                "/a/b": [folder("/a/")],
            }
        )

        report = await RemoteMediaCrawler(lister=lister).crawl_report("/a")

        self.assertEqual([item.id for item in report.items], [f"{HOST}/a/x.jpg"])
        self.assertEqual(lister.calls, ["/a", "/a/b"])
        self.assertEqual(report.skipped_paths, ["/a"])
        self.assertTrue(report.succeeded)

    async def test_depth_limit(self) -> None:
        lister = FakeLister(
            {
                "/": [media("/0.jpg"), folder("/l1/")],
                "/l1": [media("/l1/1.jpg"), folder("/l1/l2/")],
                "/l1/l2": [media("/l1/l2/2.jpg")],
            }
        )

        report = await RemoteMediaCrawler(lister=lister, max_depth=1).crawl_report("/")

        self.assertEqual([item.id for item in report.items], [f"{HOST}/0.jpg", f"{HOST}/l1/1.jpg"])
        self.assertEqual(report.skipped_paths, ["/l1/l2"])
        self.assertNotIn("/l1/l2", lister.calls)

    async def test_concurrent_listings_are_capped(self) -> None:
        tree = {"/": [folder(f"/d{i}/") for i in range(10)]}
        for i in range(10):
            tree[f"/d{i}"] = [media(f"/d{i}/{i}.jpg")]
        lister = FakeLister(tree, delay=0.01)

        items = await RemoteMediaCrawler(lister=lister, max_concurrent_listings=3).crawl("/")

        self.assertEqual(len(items), 10)
        self.assertLessEqual(lister.max_in_flight, 3)
        self.assertGreater(lister.max_in_flight, 1)


if __name__ == "__main__":
    unittest.main()
