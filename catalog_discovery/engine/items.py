"""Value objects passed between discovery stages."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Candidate:
    """Raw (url, name) pair yielded by a source, before normalisation."""

    url: str
    name: str


@dataclass(frozen=True, slots=True)
class AcceptedItem:
    """An item that survived dedup, diff and filtering; eligible for registration."""

    canonical_url: str
    name: str
    source_id: str


__all__ = ["AcceptedItem", "Candidate"]
