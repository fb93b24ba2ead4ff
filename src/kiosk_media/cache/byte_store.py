from __future__ import annotations

import errno
import logging
import os
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

TEMP_DIR_NAME = ".incoming"


@dataclass(frozen=True, slots=True)
class StoredEntry:
    key: str
    size: int
    mtime: float


class ByteStore:
    """
    Flat directory mapping a cache key to one file.

    The directory itself is the index: no manifest is kept. A file's mtime is
    its last access time. Partial content only ever lives in the `.incoming`
    subdirectory and reaches its final name through an atomic rename.

    Methods are synchronous and not locked; `MediaCache` serializes every call
    on its single writer thread.
    """

    def __init__(self, directory: str | Path) -> None:
        # Absolute, so cached paths can always be handed out as file URIs.
        self.directory = Path(directory).resolve()
        self.temp_directory = self.directory / TEMP_DIR_NAME
        self.directory.mkdir(parents=True, exist_ok=True)
        self.temp_directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", "..") or key == TEMP_DIR_NAME:
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.directory / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def new_temp_path(self, suffix: str = "") -> Path:
        """A fresh path on the same filesystem as the store, so `move_in` is a rename."""
        self.temp_directory.mkdir(parents=True, exist_ok=True)
        return self.temp_directory / f"{uuid.uuid4().hex}{suffix}"

    def move_in(self, temp_path: Path, key: str) -> Path:
        destination = self.path_for(key)
        try:
            os.replace(temp_path, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            # Different filesystem: copy next to the destination, then rename.
            staging = self.new_temp_path()
            shutil.copyfile(temp_path, staging)
            os.replace(staging, destination)
            Path(temp_path).unlink(missing_ok=True)
        self._stamp(destination)
        return destination

    def write(self, data: bytes, key: str) -> Path:
        staging = self.new_temp_path()
        try:
            staging.write_bytes(data)
            return self.move_in(staging, key)
        finally:
            staging.unlink(missing_ok=True)

    def read(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None

    def touch(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            self._stamp(path)
        except FileNotFoundError:
            return False
        return True

    def enumerate(self) -> list[StoredEntry]:
        entries: list[StoredEntry] = []
        try:
            children = list(os.scandir(self.directory))
        except FileNotFoundError:
            return entries
        for child in children:
            if child.name == TEMP_DIR_NAME:
                continue
            try:
                if not child.is_file(follow_symlinks=False):
                    continue
                stat = child.stat(follow_symlinks=False)
            except FileNotFoundError:
                # Deleted between scandir and stat
                continue
            entries.append(StoredEntry(key=child.name, size=stat.st_size, mtime=stat.st_mtime))
        return entries

    def purge_incoming(self) -> int:
        """Delete leftover partial downloads; returns how many files were removed."""
        removed = 0
        try:
            children = list(os.scandir(self.temp_directory))
        except FileNotFoundError:
            self.temp_directory.mkdir(parents=True, exist_ok=True)
            return removed
        for child in children:
            path = Path(child.path)
            try:
                if child.is_dir(follow_symlinks=False):
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except FileNotFoundError:
                continue
            removed += 1
        return removed

    def total_size(self) -> int:
        return sum(entry.size for entry in self.enumerate())

    def delete(self, keys: Iterable[str]) -> int:
        """Delete the given keys; returns how many files were actually removed."""
        removed = 0
        for key in keys:
            try:
                self.path_for(key).unlink()
                removed += 1
            except FileNotFoundError:
                continue
        return removed

    def delete_all(self) -> None:
        shutil.rmtree(self.directory, ignore_errors=True)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.temp_directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _stamp(path: Path) -> None:
        now = time.time()
        os.utime(path, (now, now))
