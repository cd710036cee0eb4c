from __future__ import annotations

from typing import Iterator, List, Optional

MIN_SUFFIX = 6
SUFFIX_STEP = 2


def normalize_slug(slug: Optional[str]) -> str:
    """Canonical slug form: trimmed and lowercased. Idempotent."""
    return (slug or "").strip().lower()


def id_suffix(block_id: Optional[str], length: int = MIN_SUFFIX) -> str:
    return str(block_id or "")[-length:].lower()


def dedup_candidates(key: str, block_id: str) -> Iterator[str]:
    """
    Suffixed slugs a duplicate may move to, shortest first:
    ``key-<last6>``, ``key-<last8>``, ... ``key-<full id>``.
    """
    full = str(block_id or "").lower()
    length = MIN_SUFFIX
    while length < len(full):
        yield f"{key}-{id_suffix(full, length)}"
        length += SUFFIX_STEP
    yield f"{key}-{full}"


def parse_slug_list(raw: Optional[str]) -> List[str]:
    """Split ``a, B ,a,,c`` into ``["a", "b", "c"]``."""
    out: List[str] = []
    for chunk in (raw or "").split(","):
        s = normalize_slug(chunk)
        if s and s not in out:
            out.append(s)
    return out
