"""URL canonicalisation: one identity string per product URL."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..errors import CanonicalizationError


def canonicalize(
    raw_url: str,
    host_aliases: Mapping[str, str] | None = None,
    id_param: str | None = None,
) -> str:
    """Map any raw URL form to its canonical identity.

    Trims whitespace, lower-cases scheme and host, applies ``host_aliases``
    (``host -> preferred host``), drops userinfo and fragment and strips
    trailing path separators. With ``id_param`` the query is reduced to that
    single parameter, for sites whose identity is ``?id=123`` rather than a path.
    """

    if not isinstance(raw_url, str):
        raise CanonicalizationError(repr(raw_url), "not a string")
    text = raw_url.strip()
    if not text:
        raise CanonicalizationError(raw_url, "empty URL")
    try:
        parts = urlsplit(text)
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise CanonicalizationError(raw_url, str(exc)) from exc
    if not parts.scheme or not host:
        raise CanonicalizationError(raw_url, "missing scheme or host")

    if host_aliases:
        host = host_aliases.get(host, host)
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port is not None else host
    path = parts.path.rstrip("/")

    if id_param:
        values = [value for key, value in parse_qsl(parts.query) if key == id_param]
        if not values or not values[0]:
            raise CanonicalizationError(raw_url, f"missing '{id_param}' query parameter")
        query = urlencode({id_param: values[0]})
    else:
        query = parts.query

    return urlunsplit((parts.scheme.lower(), netloc, path, query, ""))


@dataclass(frozen=True, slots=True)
class Canonicalizer:
    """Callable canonicalisation policy for one source."""

    host_aliases: Mapping[str, str] = field(default_factory=dict)
    id_param: str | None = None

    def __call__(self, raw_url: str) -> str:
        return canonicalize(raw_url, self.host_aliases, self.id_param)


__all__ = ["Canonicalizer", "canonicalize"]
