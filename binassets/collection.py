from __future__ import annotations

from typing import Dict, Iterator

from .asset import Asset, AssetInfo
from .crypt import decrypt
from .errors import EndOfListing, NotFound
from .pathutil import is_under, path_components


class AssetCollection(dict):
    """Mapping of full asset path to stored bytes, browsable as a read-only tree.

    Directories are not stored; a path is a directory when some key is
    nested beneath it. ``"/a/b"`` and ``"a/b"`` are distinct keys.
    """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(<{len(self)} assets>)"

    def decrypt(self, key: bytes) -> None:
        """Decrypt and validate every asset with ``key``.

        All assets are decrypted into a staging mapping first; the contents
        are replaced only once every asset has verified, so a failure leaves
        the collection exactly as it was.
        """
        staged: Dict[str, bytes] = {}
        for path, data in self.items():
            staged[path] = decrypt(key, data)
        self.clear()
        self.update(staged)

    def open(self, path: str) -> Asset:
        data = self.get(path)
        if data is not None:
            return Asset(path, data, self)
        base = path_components(path)
        for key in self:
            if is_under(path_components(key), base):
                return Asset(path, None, self)
        raise NotFound(f"No such asset: {path!r}")

    def stat(self, path: str) -> AssetInfo:
        with self.open(path) as asset:
            return asset.stat()

    def walk(self, top: str = "") -> Iterator[AssetInfo]:
        """Yield every entry beneath ``top`` depth-first, directories before their contents."""
        with self.open(top) as asset:
            if not asset.is_dir:
                yield asset.stat()
                return
            try:
                children = asset.readdir()
            except EndOfListing:
                children = []
        for info in children:
            yield info
            if info.is_dir:
                yield from self.walk(info.path)
