import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from kiosk_media.cache.byte_store import ByteStore, StoredEntry
from kiosk_media.cache.eviction import EvictionPolicy


class EvictionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = ByteStore(Path(self._tmp.name))
        self.policy = EvictionPolicy()

    def put(self, key: str, size: int, mtime: float) -> None:
        path = self.store.write(b"x" * size, key)
        os.utime(path, (mtime, mtime))

    def keys(self) -> set[str]:
        return {entry.key for entry in self.store.enumerate()}


class PlanTests(unittest.TestCase):
    def test_within_budget_is_noop(self) -> None:
        entries = [StoredEntry("a", 500, 1), StoredEntry("b", 500, 2)]

        self.assertEqual(EvictionPolicy().plan(entries, 1000, 1000), [])

    def test_oldest_first_until_target(self) -> None:
        entries = [StoredEntry(str(i), 300, float(i)) for i in (5, 3, 1, 4, 2)]

        planned = EvictionPolicy().plan(entries, 1500, 1000)

        self.assertEqual([e.key for e in planned], ["1", "2"])

    def test_custom_target(self) -> None:
        policy = EvictionPolicy(target_numerator=1, target_denominator=2)

        self.assertEqual(policy.target_for(1000), 500)
        with self.assertRaises(ValueError):
            EvictionPolicy(target_numerator=3, target_denominator=2)


class EnforceTests(EvictionTestCase):
    def test_five_files_over_budget_keep_newest_three(self) -> None:
        for i in range(1, 6):
            self.put(str(i), 300, 1000 + i)

        result = self.policy.enforce(self.store, 1000)

        self.assertEqual(self.keys(), {"3", "4", "5"})
        self.assertEqual(result.deleted_keys, ["1", "2"])
        self.assertEqual(result.size_before, 1500)
        self.assertEqual(result.size_after, 900)
        self.assertEqual(self.store.total_size(), 900)

    def test_total_ends_at_or_below_target(self) -> None:
        sizes = [120, 340, 50, 700, 90, 410, 230, 60, 500, 150]
        for i, size in enumerate(sizes):
            self.put(f"f{i}", size, 1000 + i)

        self.policy.enforce(self.store, 1200)

        self.assertLessEqual(self.store.total_size(), 1080)

    def test_touched_entry_survives(self) -> None:
        for i in range(1, 6):
            self.put(str(i), 300, 1000 + i)

        self.store.touch("1")
        self.policy.enforce(self.store, 1000)

        self.assertEqual(self.keys(), {"1", "4", "5"})

    def test_within_budget_deletes_nothing(self) -> None:
        self.put("a", 400, 1000)
        self.put("b", 400, 1001)

        result = self.policy.enforce(self.store, 1000)

        self.assertEqual(result.deleted_keys, [])
        self.assertEqual(self.keys(), {"a", "b"})

    def test_failed_delete_is_skipped(self) -> None:
        for i in range(1, 6):
            self.put(str(i), 300, 1000 + i)
        original_unlink = Path.unlink

        def unlink(path: Path, missing_ok: bool = False) -> None:
            if path.name == "1":
                raise PermissionError("read-only")
            original_unlink(path, missing_ok=missing_ok)

        with mock.patch.object(Path, "unlink", unlink):
            result = self.policy.enforce(self.store, 1000)

        self.assertEqual(result.failed_keys, ["1"])
        self.assertEqual(result.deleted_keys, ["2", "3"])
        self.assertEqual(self.keys(), {"1", "4", "5"})


if __name__ == "__main__":
    unittest.main()
