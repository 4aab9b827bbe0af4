"""Static file serving for an AssetCollection over ``http.server``."""

from __future__ import annotations

import argparse
import html
import mimetypes
import sys
import urllib.parse
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Optional, Type

from . import __version__
from .asset import Asset, AssetInfo
from .collection import AssetCollection
from .constants import DEFAULT_PORT
from .crypt import resolve_key
from .errors import BinAssetsError, EndOfListing, NotFound

LISTING_PAGE_SIZE = 100


def _list_all(asset: Asset) -> List[AssetInfo]:
    entries: List[AssetInfo] = []
    while True:
        try:
            entries.extend(asset.readdir(LISTING_PAGE_SIZE))
        except EndOfListing:
            return entries


def render_listing(path: str, entries: List[AssetInfo]) -> bytes:
    title = html.escape(f"Index of {path}")
    rows = []
    for info in entries:
        name = info.name + ("/" if info.is_dir else "")
        href = urllib.parse.quote(name)
        rows.append(f'<li><a href="{href}">{html.escape(name)}</a></li>')
    body = (
        "<!DOCTYPE html>\n"
        f"<html><head><meta charset=\"utf-8\"><title>{title}</title></head>\n"
        f"<body><h1>{title}</h1>\n<ul>\n" + "\n".join(rows) + "\n</ul>\n</body></html>\n"
    )
    return body.encode("utf-8")


def make_handler(collection: AssetCollection) -> Type[BaseHTTPRequestHandler]:
    """Build a request handler class bound to ``collection``."""

    class AssetRequestHandler(BaseHTTPRequestHandler):
        server_version = f"binassets/{__version__}"

        def do_GET(self):
            self._serve(send_body=True)

        def do_HEAD(self):
            self._serve(send_body=False)

        def _serve(self, send_body: bool) -> None:
            path = urllib.parse.unquote(urllib.parse.urlsplit(self.path).path)
            try:
                asset = collection.open(path)
            except NotFound:
                self.send_error(HTTPStatus.NOT_FOUND, "File not found")
                return
            with asset:
                if not asset.is_dir:
                    self._send(HTTPStatus.OK, asset.read(), self._content_type(asset.name), send_body)
                    return
                if not path.endswith("/"):
                    self.send_response(HTTPStatus.MOVED_PERMANENTLY)
                    self.send_header("Location", urllib.parse.quote(path) + "/")
                    self.send_header("Content-Length", "0")
                    self.end_headers()
                    return
                index = path + "index.html"
                if index in collection:
                    with collection.open(index) as page:
                        self._send(HTTPStatus.OK, page.read(), "text/html; charset=utf-8", send_body)
                    return
                listing = render_listing(path, _list_all(asset))
                self._send(HTTPStatus.OK, listing, "text/html; charset=utf-8", send_body)

        def _send(self, status: HTTPStatus, body: bytes, content_type: str, send_body: bool) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if send_body:
                self.wfile.write(body)

        @staticmethod
        def _content_type(name: str) -> str:
            ctype, _enc = mimetypes.guess_type(name)
            return ctype or "application/octet-stream"

    return AssetRequestHandler


def serve(collection: AssetCollection, port: int = DEFAULT_PORT, host: str = "") -> None:
    """Serve ``collection`` until interrupted."""
    httpd = ThreadingHTTPServer((host, port), make_handler(collection))
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()


def main(
    collection: AssetCollection,
    argv: Optional[List[str]] = None,
    *,
    encrypted: bool = False,
    kdf_salt: Optional[bytes] = None,
) -> None:
    """Entry point used by generated modules packed with ``--server``."""
    ap = argparse.ArgumentParser(description="Serve packed assets over HTTP")
    ap.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"The port to bind to (default {DEFAULT_PORT})")
    ap.add_argument("--host", default="", help="Address to bind to (default: all interfaces)")
    keys = ap.add_mutually_exclusive_group()
    keys.add_argument("--key", help="Hex encryption key for encrypted assets")
    keys.add_argument("--password", help="Password for assets packed with --password")
    args = ap.parse_args(argv)
    try:
        if encrypted:
            collection.decrypt(resolve_key(args.key, args.password, kdf_salt))
    except (BinAssetsError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    print(f"Serving {len(collection)} assets on http://{args.host or '0.0.0.0'}:{args.port}/", flush=True)
    serve(collection, port=args.port, host=args.host)
