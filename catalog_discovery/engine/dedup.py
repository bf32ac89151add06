"""Within-run deduplication of source candidates by canonical URL."""

from __future__ import annotations

from typing import Callable, Iterable

from ..errors import CanonicalizationError
from .canonical import canonicalize as default_canonicalize
from .items import Candidate

RejectHandler = Callable[[Candidate, CanonicalizationError], None]


def dedupe(
    candidates: Iterable[Candidate],
    canonicalize: Callable[[str], str] = default_canonicalize,
    on_reject: RejectHandler | None = None,
) -> dict[str, str]:
    """Collapse candidates into an insertion-ordered ``canonical_url -> name`` mapping.

    The first-seen name wins; later candidates sharing a canonical URL are
    discarded. Candidates whose URL cannot be canonicalised are dropped and
    reported through ``on_reject``.
    """

    unique: dict[str, str] = {}
    for candidate in candidates:
        try:
            key = canonicalize(candidate.url)
        except CanonicalizationError as exc:
            if on_reject is not None:
                on_reject(candidate, exc)
            continue
        if key not in unique:
            unique[key] = candidate.name
    return unique


__all__ = ["dedupe"]
