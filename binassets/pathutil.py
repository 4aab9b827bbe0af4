from __future__ import annotations

from typing import List


def path_components(p: str) -> List[str]:
    """Split a store path into its non-empty segments.

    Leading, trailing and doubled slashes do not produce segments, so
    ``"/a//b/"`` and ``"a/b"`` both yield ``["a", "b"]``.
    """
    return [seg for seg in p.split("/") if seg]


def is_under(components: List[str], base: List[str]) -> bool:
    """Return whether ``components`` strictly extends ``base`` positionally."""
    if len(components) <= len(base):
        return False
    return components[: len(base)] == base


def leading_path(p: str, n: int) -> str:
    """Return the prefix of ``p`` that ends with its ``n``-th non-empty segment.

    The original spelling is kept, so ``leading_path("/a/c/d.txt", 2)`` is
    ``"/a/c"`` while ``leading_path("a/c/d.txt", 2)`` is ``"a/c"``.
    """
    parts = p.split("/")
    seen = 0
    for i, seg in enumerate(parts):
        if seg:
            seen += 1
            if seen == n:
                return "/".join(parts[: i + 1])
    return p


def base_name(p: str) -> str:
    parts = path_components(p)
    if not parts:
        return "/"
    return parts[-1]


def norm_path(p: str) -> str:
    """Normalize a store path to a relative forward-slash form for extraction.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    return "/".join(parts)
