import json
import tempfile
import unittest
from pathlib import Path

from kiosk_media.cache.budget import CacheBudget
from kiosk_media.cache.utils import cache_key_for_url, format_bytes


class CacheBudgetTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "state" / "budget.json"

    def test_default_when_file_missing(self) -> None:
        self.assertEqual(CacheBudget(self.path, default_bytes=2048).value, 2048)

    def test_set_persists(self) -> None:
        CacheBudget(self.path, default_bytes=2048).set(4096)

        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"max_bytes": 4096})
        self.assertEqual(CacheBudget(self.path, default_bytes=2048).value, 4096)

    def test_non_positive_budget_is_rejected(self) -> None:
        budget = CacheBudget(self.path, default_bytes=2048)

        with self.assertRaises(ValueError):
            budget.set(0)
        self.assertEqual(budget.value, 2048)
        self.assertFalse(self.path.exists())

    def test_corrupt_file_falls_back_to_default(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")

        with self.assertLogs("kiosk_media.cache.budget", level="ERROR"):
            budget = CacheBudget(self.path, default_bytes=2048)

        self.assertEqual(budget.value, 2048)


class CacheKeyTests(unittest.TestCase):
    def test_unsafe_characters_become_underscores(self) -> None:
        self.assertEqual(
            cache_key_for_url("https://nas.local:5006/dav/a b/c.jpg?x=1&y=(2)"),
            "https___nas.local_5006_dav_a b_c.jpg_x_1_y__2_",
        )

    def test_key_is_deterministic_and_keeps_extension(self) -> None:
        url = "https://nas.local/Photos/IMG_0001.HEIC"

        self.assertEqual(cache_key_for_url(url), cache_key_for_url(url))
        self.assertTrue(cache_key_for_url(url).endswith(".HEIC"))


class FormatBytesTests(unittest.TestCase):
    def test_units(self) -> None:
        self.assertEqual(format_bytes(512_000), "512 KB")
        self.assertEqual(format_bytes(1_500_000), "1.5 MB")
        self.assertEqual(format_bytes(2_000_000_000), "2 GB")
        self.assertEqual(format_bytes(1_234), "1.2 KB")
        self.assertEqual(format_bytes(123_456_789), "123 MB")
        self.assertEqual(format_bytes(0), "0 KB")


if __name__ == "__main__":
    unittest.main()
