import errno
import os
import tempfile
import time
import unittest
from pathlib import Path
from unittest import mock

from kiosk_media.cache.byte_store import TEMP_DIR_NAME, ByteStore


class ByteStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = ByteStore(Path(self._tmp.name) / "cache")

    def test_move_in_round_trip(self) -> None:
        temp_path = self.store.new_temp_path(".mp4")
        temp_path.write_bytes(b"video-bytes")
        before = time.time()

        destination = self.store.move_in(temp_path, "clip.mp4")

        self.assertEqual(destination, self.store.path_for("clip.mp4"))
        self.assertFalse(temp_path.exists())
        self.assertTrue(self.store.exists("clip.mp4"))
        self.assertEqual(self.store.read("clip.mp4"), b"video-bytes")
        self.assertGreaterEqual(destination.stat().st_mtime, before - 1)

    def test_move_in_from_outside_the_store(self) -> None:
        outside = Path(self._tmp.name) / "download.bin"
        outside.write_bytes(b"abc")

        self.store.move_in(outside, "a.jpg")

        self.assertEqual(self.store.read("a.jpg"), b"abc")
        self.assertFalse(outside.exists())

    def test_move_in_missing_source_raises(self) -> None:
        missing = self.store.temp_directory / "gone.mp4"

        with self.assertRaises(FileNotFoundError):
            self.store.move_in(missing, "clip.mp4")

        self.assertFalse(self.store.exists("clip.mp4"))
        self.assertEqual(list(self.store.temp_directory.iterdir()), [])

    def test_move_in_copies_across_filesystems(self) -> None:
        temp_path = self.store.new_temp_path(".mp4")
        temp_path.write_bytes(b"video-bytes")
        real_replace = os.replace
        calls = []

        def replace(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise OSError(errno.EXDEV, "Invalid cross-device link")
            return real_replace(src, dst)

        with mock.patch("kiosk_media.cache.byte_store.os.replace", side_effect=replace):
            self.store.move_in(temp_path, "clip.mp4")

        self.assertEqual(len(calls), 2)
        self.assertEqual(self.store.read("clip.mp4"), b"video-bytes")
        self.assertFalse(temp_path.exists())
        self.assertEqual(list(self.store.temp_directory.iterdir()), [])

    def test_move_in_does_not_copy_on_other_errors(self) -> None:
        temp_path = self.store.new_temp_path(".mp4")
        temp_path.write_bytes(b"video-bytes")

        with mock.patch(
            "kiosk_media.cache.byte_store.os.replace",
            side_effect=PermissionError(errno.EACCES, "Permission denied"),
        ):
            with self.assertRaises(PermissionError):
                self.store.move_in(temp_path, "clip.mp4")

        self.assertFalse(self.store.exists("clip.mp4"))
        self.assertTrue(temp_path.exists())

    def test_purge_incoming_removes_leftovers(self) -> None:
        self.store.write(b"keep", "a.jpg")
        (self.store.temp_directory / "orphan.mp4").write_bytes(b"x" * 5000)
        (self.store.temp_directory / "stray").mkdir()

        self.assertEqual(self.store.purge_incoming(), 2)

        self.assertEqual(list(self.store.temp_directory.iterdir()), [])
        self.assertEqual(self.store.read("a.jpg"), b"keep")
        self.assertEqual(self.store.purge_incoming(), 0)

    def test_relative_directory_is_made_absolute(self) -> None:
        previous = os.getcwd()
        os.chdir(self._tmp.name)
        self.addCleanup(os.chdir, previous)

        store = ByteStore(Path("data") / "cache" / "webdav")
        path = store.write(b"x", "a.jpg")

        self.assertTrue(store.directory.is_absolute())
        self.assertEqual(store.directory, (Path(self._tmp.name) / "data" / "cache" / "webdav").resolve())
        self.assertTrue(path.as_uri().startswith("file:///"))

    def test_write_replaces_and_leaves_no_temp_files(self) -> None:
        self.store.write(b"one", "a.jpg")
        self.store.write(b"two", "a.jpg")

        self.assertEqual(self.store.read("a.jpg"), b"two")
        self.assertEqual(list((self.store.directory / TEMP_DIR_NAME).iterdir()), [])

    def test_read_missing_is_none(self) -> None:
        self.assertIsNone(self.store.read("missing.jpg"))
        self.assertFalse(self.store.exists("missing.jpg"))

    def test_touch_updates_mtime(self) -> None:
        path = self.store.write(b"x", "a.jpg")
        os.utime(path, (1000, 1000))

        self.assertTrue(self.store.touch("a.jpg"))
        self.assertGreater(path.stat().st_mtime, 1000)
        self.assertFalse(self.store.touch("missing.jpg"))

    def test_enumerate_skips_temp_directory_and_subdirectories(self) -> None:
        self.store.write(b"12345", "a.jpg")
        self.store.new_temp_path().write_bytes(b"partial")
        (self.store.directory / "nested").mkdir()

        entries = self.store.enumerate()

        self.assertEqual([(e.key, e.size) for e in entries], [("a.jpg", 5)])
        self.assertEqual(self.store.total_size(), 5)

    def test_delete_counts_removed_files(self) -> None:
        self.store.write(b"a", "a.jpg")
        self.store.write(b"b", "b.jpg")

        removed = self.store.delete(["a.jpg", "missing.jpg", "b.jpg"])

        self.assertEqual(removed, 2)
        self.assertEqual(self.store.enumerate(), [])

    def test_delete_all(self) -> None:
        self.store.write(b"a", "a.jpg")

        self.store.delete_all()

        self.assertEqual(self.store.total_size(), 0)
        self.assertTrue(self.store.temp_directory.is_dir())

    def test_invalid_keys(self) -> None:
        for key in ("", "a/b", "..", TEMP_DIR_NAME, "a\\b"):
            with self.subTest(key=key):
                with self.assertRaises(ValueError):
                    self.store.path_for(key)


if __name__ == "__main__":
    unittest.main()
