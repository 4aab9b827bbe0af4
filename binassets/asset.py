from __future__ import annotations

import io
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from .constants import MODE_DIR, MODE_FILE
from .errors import EndOfFile, EndOfListing
from .pathutil import base_name, is_under, leading_path, path_components

if TYPE_CHECKING:  # pragma: no cover
    from .collection import AssetCollection


@dataclass
class AssetInfo:
    path: str
    size: int
    is_dir: bool
    mode: int
    mtime: float = field(default_factory=time.time)

    @property
    def name(self) -> str:
        return base_name(self.path)


class Asset:
    """A read-only handle on one entry of an :class:`AssetCollection`.

    A leaf handle carries the stored bytes and a cursor; a synthetic
    directory carries no bytes and lists the entries nested beneath its
    path. Handles are created per ``open`` call and are never shared, so the
    cursor and the listing offset belong to this handle alone.
    """

    def __init__(self, path: str, data: Optional[bytes], collection: "AssetCollection"):
        self.path = path
        self.data = data
        self.collection = collection
        self.position = 0
        self.readdir_offset = 0
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"<Asset {kind} {self.path!r}>"

    @property
    def is_dir(self) -> bool:
        return self.data is None

    @property
    def name(self) -> str:
        return base_name(self.path)

    def close(self) -> None:
        self.closed = True

    def stat(self) -> AssetInfo:
        if self.data is None:
            return AssetInfo(path=self.path, size=0, is_dir=True, mode=MODE_DIR)
        return AssetInfo(path=self.path, size=len(self.data), is_dir=False, mode=MODE_FILE)

    # leaf operations
    def readinto(self, buffer) -> int:
        """Copy bytes at the cursor into ``buffer`` and advance the cursor.

        Raises EndOfFile when nothing is left and ``buffer`` is non-empty.
        """
        self._check_open()
        view = memoryview(buffer)
        if len(view) == 0:
            return 0
        data = self.data or b""
        n = min(len(view), len(data) - self.position)
        if n <= 0:
            raise EndOfFile(f"End of file: {self.path}")
        view[:n] = data[self.position : self.position + n]
        self.position += n
        return n

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        data = self.data or b""
        if size is None or size < 0:
            end = len(data)
        else:
            end = min(len(data), self.position + size)
        out = data[self.position : end]
        self.position = max(self.position, end)
        return out

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        size = len(self.data or b"")
        if whence == io.SEEK_CUR:
            pos = self.position + offset
        elif whence == io.SEEK_END:
            pos = size + offset
        else:
            pos = offset
        # Out-of-range seeks saturate instead of raising
        self.position = max(0, min(pos, size))
        return self.position

    def tell(self) -> int:
        self._check_open()
        return self.position

    # directory operations
    def readdir(self, count: int = 0) -> List[AssetInfo]:
        """Return up to ``count`` child entries (all remaining when ``count <= 0``).

        Successive calls continue where the previous one stopped. Once the
        listing is exhausted EndOfListing is raised and the offset resets,
        so the following call starts over from the first entry.
        """
        self._check_open()
        if not self.is_dir:
            self.readdir_offset = 0
            raise EndOfListing(f"Not a directory: {self.path}")
        entries = self._children()[self.readdir_offset :]
        if count > 0:
            entries = entries[:count]
        if not entries:
            self.readdir_offset = 0
            raise EndOfListing(f"End of listing: {self.path}")
        self.readdir_offset += len(entries)
        return entries

    def _children(self) -> List[AssetInfo]:
        # Recomputed from the live collection on each call
        base = path_components(self.path)
        depth = len(base)
        files: List[AssetInfo] = []
        dirs = set()
        for key, value in self.collection.items():
            if key == self.path or not key.startswith(self.path):
                continue
            components = path_components(key)
            if not is_under(components, base):
                continue
            if len(components) > depth + 1:
                dirs.add(leading_path(key, depth + 1))
                continue
            files.append(AssetInfo(path=key, size=len(value), is_dir=False, mode=MODE_FILE))
        files.extend(AssetInfo(path=d, size=0, is_dir=True, mode=MODE_DIR) for d in dirs)
        files.sort(key=lambda info: info.path)
        return files

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed asset")
