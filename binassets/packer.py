from __future__ import annotations

import importlib.util
import keyword
import posixpath
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Callable, List, Optional, Tuple

from .collection import AssetCollection
from .constants import DEFAULT_VARIABLE
from .crypt import derive_key, encrypt, new_salt
from .errors import InvalidOutputPath

# Names the generated module binds besides the collection itself
RESERVED_NAMES = frozenset({"AssetCollection", "ENCRYPTED", "KDF_SALT", "main"})


@dataclass
class Config:
    """Parameters for :class:`Packer`.

    Attributes:
        source_path: File or directory to read assets from.
        output_path: Python module to write; must end in ``.py``.
        variable: Name of the module-level AssetCollection in the output.
        encryption_key: 16, 24 or 32 bytes selecting AES-128/192/256. When
            set, every asset is encrypted and the collection must be
            decrypted with the same key before use.
        password: Alternative to ``encryption_key``; a key is derived with
            Argon2id and the salt is recorded in the generated module.
        server: Append a ``__main__`` block that serves the assets over HTTP.
        binassets_module: Import path of this package as seen by the
            generated module, for vendored copies.
    """

    source_path: str = ""
    output_path: str = ""
    variable: str = ""
    encryption_key: Optional[bytes] = None
    password: Optional[str] = None
    server: bool = False
    binassets_module: str = ""


class Packer:
    def __init__(self, config: Config, progress: Optional[Callable[[str, int], None]] = None):
        if not config.variable:
            config.variable = DEFAULT_VARIABLE
        if not config.binassets_module:
            config.binassets_module = "binassets"
        if (
            not config.variable.isidentifier()
            or keyword.iskeyword(config.variable)
            or config.variable in RESERVED_NAMES
        ):
            raise ValueError(f"Invalid variable name: {config.variable!r}")
        self.config = config
        self.progress = progress
        self.data = AssetCollection()
        self.files: List[Tuple[str, int]] = []
        self.kdf_salt: Optional[bytes] = None
        self.key: Optional[bytes] = config.encryption_key
        if self.key is None and config.password:
            self.kdf_salt = new_salt()
            self.key = derive_key(config.password, self.kdf_salt)

    @property
    def encrypted(self) -> bool:
        return self.key is not None

    def transform(self, data: bytes) -> bytes:
        if self.key is not None:
            return encrypt(self.key, data)
        return data

    def pack(self) -> AssetCollection:
        """Read the source tree into the collection.

        A directory source is stored under both its absolute (``/dir/...``)
        and relative (``dir/...``) spellings; a single file is stored under
        its base name.
        """
        source = Path(self.config.source_path)
        if not source.exists():
            raise FileNotFoundError(f"Source not found: {self.config.source_path}")
        if source.is_dir():
            self._pack_path(source, "/")
        self._pack_path(source, "")
        return self.data

    def _pack_path(self, fs_path: Path, prefix: str) -> None:
        name = fs_path.resolve().name if fs_path.name in ("", ".", "..") else fs_path.name
        arc = posixpath.join(prefix, name)
        if fs_path.is_dir():
            for child in sorted(fs_path.iterdir()):
                # do not walk into symlinked directories
                if child.is_symlink() and child.is_dir():
                    continue
                self._pack_path(child, arc)
            return
        if not fs_path.is_file():
            return
        raw = fs_path.read_bytes()
        self.data[arc] = self.transform(raw)
        self.files.append((arc, len(raw)))
        if self.progress is not None:
            self.progress(arc, len(raw))

    def render(self) -> str:
        cfg = self.config
        lines = [
            "# Code generated by binassets. DO NOT EDIT.",
            f"from {cfg.binassets_module}.collection import AssetCollection",
            "",
            f"ENCRYPTED = {self.encrypted!r}",
        ]
        if self.kdf_salt is not None:
            lines.append(f"KDF_SALT = bytes.fromhex({self.kdf_salt.hex()!r})")
        else:
            lines.append("KDF_SALT = None")
        lines.append("")
        lines.append(f"{cfg.variable} = AssetCollection({{")
        for path in sorted(self.data):
            lines.append(f"    {path!r}: {self.data[path]!r},")
        lines.append("})")
        if cfg.server:
            lines += [
                "",
                "",
                'if __name__ == "__main__":',
                f"    from {cfg.binassets_module}.server import main",
                "",
                f"    main({cfg.variable}, encrypted=ENCRYPTED, kdf_salt=KDF_SALT)",
            ]
        return "\n".join(lines) + "\n"

    def write(self) -> None:
        out = Path(self.config.output_path)
        if out.suffix != ".py":
            raise InvalidOutputPath(f"Invalid output path: {self.config.output_path}")
        out.parent.mkdir(parents=True, exist_ok=True)
        tmp = out.with_suffix(".tmp")
        try:
            tmp.write_text(self.render(), encoding="utf-8")
            tmp.replace(out)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise


@dataclass
class PackedModule:
    collection: AssetCollection
    encrypted: bool
    kdf_salt: Optional[bytes]


def load_module(path: str, variable: str = DEFAULT_VARIABLE) -> PackedModule:
    """Import a module produced by :meth:`Packer.write` from its file path."""
    module_path = Path(path)
    if not module_path.is_file():
        raise FileNotFoundError(f"No such module: {path}")
    name = f"_binassets_packed_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(name, str(module_path))
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot load module: {path}")
    module: ModuleType = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    collection = getattr(module, variable, None)
    if not isinstance(collection, AssetCollection):
        raise ValueError(f"Module {path} has no AssetCollection named {variable!r}")
    return PackedModule(
        collection=collection,
        encrypted=bool(getattr(module, "ENCRYPTED", False)),
        kdf_salt=getattr(module, "KDF_SALT", None),
    )
