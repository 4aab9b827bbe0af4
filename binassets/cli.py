from __future__ import annotations

import argparse
import shutil
import sys
import time
from pathlib import Path
from typing import List, Optional

from binassets.collection import AssetCollection
from binassets.constants import DEFAULT_PORT, DEFAULT_VARIABLE
from binassets.crypt import generate_key, parse_hex_key, resolve_key
from binassets.errors import AuthenticationFailed, BinAssetsError, NotFound
from binassets.packer import Config, Packer, load_module
from binassets.pathutil import norm_path


def _open_collection(
    module: str,
    *,
    variable: str = DEFAULT_VARIABLE,
    key: Optional[str] = None,
    password: Optional[str] = None,
) -> AssetCollection:
    """Load a packed module and decrypt its collection when needed."""
    packed = load_module(module, variable)
    if packed.encrypted:
        packed.collection.decrypt(resolve_key(key, password, packed.kdf_salt))
    return packed.collection


def cmd_pack(
    source: str,
    output: str,
    *,
    variable: str = DEFAULT_VARIABLE,
    encryption_key: Optional[str] = None,
    password: Optional[str] = None,
    server: bool = False,
    binassets_module: str = "binassets",
    quiet: bool = False,
) -> bool:
    """Pack a file or directory into a generated Python module.

    Args:
        source: File or directory to read.
        output: Destination ``.py`` path.
        variable: Name of the AssetCollection in the generated module.
        encryption_key: Optional hex key (16/24/32 bytes); every asset is
            encrypted and the collection must be decrypted before use.
        password: Optional password; a key is derived with Argon2id.
        server: Make the generated module runnable as an HTTP file server.
        binassets_module: Import path for binassets in the generated module.
    """
    config = Config(
        source_path=source,
        output_path=output,
        variable=variable,
        encryption_key=parse_hex_key(encryption_key) if encryption_key else None,
        password=password,
        server=server,
        binassets_module=binassets_module,
    )

    def _progress(arc: str, size: int) -> None:
        if not quiet:
            print(f" packing: {arc} ({size} bytes)")

    t0 = time.time()
    packer = Packer(config, progress=_progress)
    packer.pack()
    packer.write()
    dt = max(0.000001, time.time() - t0)
    total = sum(size for _, size in packer.files)
    mode = "encrypted" if packer.encrypted else "plain"
    print(
        f"Packed files from {source} to {output}: {len(packer.data)} assets, "
        f"{total / (1024.0 * 1024.0):.2f} MiB stored in {dt:.1f}s ({mode})"
    )
    return True


def cmd_list(
    module: str,
    *,
    path: str = "",
    variable: str = DEFAULT_VARIABLE,
    key: Optional[str] = None,
    password: Optional[str] = None,
) -> bool:
    """List the virtual tree of a packed module beneath ``path``."""
    collection = _open_collection(module, variable=variable, key=key, password=password)
    for info in collection.walk(path):
        if info.is_dir:
            print(f"dir\t{info.path}")
        else:
            print(f"file\t{info.size}\t{info.path}")
    return True


def cmd_cat(
    module: str,
    path: str,
    *,
    variable: str = DEFAULT_VARIABLE,
    key: Optional[str] = None,
    password: Optional[str] = None,
) -> bool:
    """Write one asset to stdout."""
    collection = _open_collection(module, variable=variable, key=key, password=password)
    with collection.open(path) as asset:
        if asset.is_dir:
            raise IsADirectoryError(f"Is a directory: {path}")
        shutil.copyfileobj(asset, sys.stdout.buffer)
    sys.stdout.buffer.flush()
    return True


def cmd_unpack(
    module: str,
    *,
    outdir: str = ".",
    paths: Optional[List[str]] = None,
    variable: str = DEFAULT_VARIABLE,
    key: Optional[str] = None,
    password: Optional[str] = None,
    quiet: bool = False,
) -> bool:
    """Extract the assets of a packed module into ``outdir``.

    Absolute and relative spellings of the same asset are written once.
    """
    collection = _open_collection(module, variable=variable, key=key, password=password)
    wanted = [norm_path(p) for p in (paths or [])]
    written = set()
    t0 = time.time()
    for info in collection.walk(""):
        if info.is_dir:
            continue
        try:
            rel = norm_path(info.path)
        except ValueError as exc:
            print(f"Warning: skipping {info.path!r}: {exc}", file=sys.stderr)
            continue
        if not rel or rel in written:
            continue
        if wanted and not any(rel == rp or rel.startswith(rp + "/") for rp in wanted):
            continue
        dest = Path(outdir) / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        with collection.open(info.path) as asset, open(dest, "wb") as wf:
            shutil.copyfileobj(asset, wf)
        written.add(rel)
        if not quiet:
            print(f" unpacking: {rel}")
    if wanted and not written:
        raise NotFound(f"No assets matched: {', '.join(wanted)}")
    dt = max(0.000001, time.time() - t0)
    print(f"Done: {len(written)} files in {dt:.1f}s")
    return True


def cmd_serve(
    module: str,
    *,
    port: int = DEFAULT_PORT,
    host: str = "",
    variable: str = DEFAULT_VARIABLE,
    key: Optional[str] = None,
    password: Optional[str] = None,
) -> bool:
    """Serve a packed module over HTTP until interrupted."""
    from binassets.server import serve

    collection = _open_collection(module, variable=variable, key=key, password=password)
    print(f"Serving {len(collection)} assets on http://{host or '0.0.0.0'}:{port}/", flush=True)
    serve(collection, port=port, host=host)
    return True


def cmd_keygen(*, bits: int = 256) -> bool:
    """Print a random hex encryption key."""
    print(generate_key(bits).hex())
    return True


def _add_key_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--variable", default=DEFAULT_VARIABLE, help=f"AssetCollection variable name (default {DEFAULT_VARIABLE})")
    keys = ap.add_mutually_exclusive_group()
    keys.add_argument("--key", help="Hex encryption key (falls back to $BINASSETS_KEY)")
    keys.add_argument("--password", help="Password the assets were packed with")


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="binassets",
        description="Pack files into a Python module as an in-memory virtual filesystem",
        epilog=(
            "When encrypted, every asset is sealed with AES-CBC and HMAC-SHA256 "
            "and the collection must be decrypted before it is opened."
        ),
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack a file or directory into a .py module")
    ap_pack.add_argument("--source", required=True, help="The path to read from. Either a directory or file.")
    ap_pack.add_argument("--output", required=True, help="The path to write to. Must be a .py file.")
    ap_pack.add_argument("--variable", default=DEFAULT_VARIABLE, help="Overrides the name of the AssetCollection variable in the output file.")
    pack_keys = ap_pack.add_mutually_exclusive_group()
    pack_keys.add_argument(
        "--encryption-key",
        help=(
            "Optional hex-encoded key (16, 24 or 32 bytes) used to encrypt all stored data. "
            "The collection's decrypt(key) method must be called with the same key before use."
        ),
    )
    pack_keys.add_argument("--password", help="Derive the encryption key from a password (Argon2id)")
    ap_pack.add_argument("--server", action="store_true", help="Make the output runnable as an HTTP file server")
    ap_pack.add_argument("--binassets-module", default="binassets", help="Overrides the import path of binassets in the output, for vendoring.")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List the contents of a packed module")
    ap_list.add_argument("module", help="Generated .py module")
    ap_list.add_argument("path", nargs="?", default="", help="Directory to list (default: everything)")
    _add_key_args(ap_list)

    ap_cat = sub.add_parser("cat", help="Write one asset to stdout")
    ap_cat.add_argument("module", help="Generated .py module")
    ap_cat.add_argument("path", help="Asset path")
    _add_key_args(ap_cat)

    ap_unpack = sub.add_parser("unpack", help="Extract assets to a directory")
    ap_unpack.add_argument("module", help="Generated .py module")
    ap_unpack.add_argument("paths", nargs="*", help="Specific asset paths to extract (files or directories)")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    _add_key_args(ap_unpack)

    ap_serve = sub.add_parser("serve", help="Serve a packed module over HTTP")
    ap_serve.add_argument("module", help="Generated .py module")
    ap_serve.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"The port to bind to (default {DEFAULT_PORT})")
    ap_serve.add_argument("--host", default="", help="Address to bind to (default: all interfaces)")
    _add_key_args(ap_serve)

    ap_keygen = sub.add_parser("keygen", help="Print a random hex encryption key")
    ap_keygen.add_argument("--bits", type=int, choices=[128, 192, 256], default=256, help="Key strength (default 256)")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "pack":
            cmd_pack(
                args.source,
                args.output,
                variable=args.variable,
                encryption_key=args.encryption_key,
                password=args.password,
                server=args.server,
                binassets_module=args.binassets_module,
                quiet=args.quiet,
            )
        elif args.cmd == "list":
            cmd_list(args.module, path=args.path, variable=args.variable, key=args.key, password=args.password)
        elif args.cmd == "cat":
            cmd_cat(args.module, args.path, variable=args.variable, key=args.key, password=args.password)
        elif args.cmd == "unpack":
            cmd_unpack(
                args.module,
                outdir=args.outdir,
                paths=args.paths,
                variable=args.variable,
                key=args.key,
                password=args.password,
                quiet=args.quiet,
            )
        elif args.cmd == "serve":
            cmd_serve(args.module, port=args.port, host=args.host, variable=args.variable, key=args.key, password=args.password)
        elif args.cmd == "keygen":
            cmd_keygen(bits=args.bits)
        else:
            raise RuntimeError("Unknown command")
    except AuthenticationFailed:
        print("Error: Assets failed authentication (wrong key or corrupted module).", file=sys.stderr)
        sys.exit(2)
    except (BinAssetsError, ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
