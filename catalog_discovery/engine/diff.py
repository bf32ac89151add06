"""Subtract the known catalog from a source's deduplicated candidates."""

from __future__ import annotations

from typing import AbstractSet, Mapping


def diff(candidate_map: Mapping[str, str], known: AbstractSet[str]) -> dict[str, str]:
    """Return the candidates whose canonical URL is not in ``known``, order preserved.

    ``known`` is the snapshot taken at run start. It is never refreshed, so a
    URL registered by someone else after the snapshot still shows up as new.
    """

    return {url: name for url, name in candidate_map.items() if url not in known}


__all__ = ["diff"]
