"""Client identity derivation for rate limiting.

The identity is taken from proxy/CDN address headers, in order:
``x-real-ip``, the first hop of ``x-forwarded-for``, ``cf-connecting-ip``.

Trust boundary: these headers are client-controlled unless the edge proxy
strips or overwrites them. Deployments exposed directly to clients can be
bypassed by rotating header values.
"""

from __future__ import annotations

from typing import Iterable, Mapping

LOOPBACK_IDENTITY = "127.0.0.1"

DEFAULT_IDENTITY_HEADERS: tuple[str, ...] = (
    "x-real-ip",
    "x-forwarded-for",
    "cf-connecting-ip",
)


def resolve_client_identity(
    headers: Mapping[str, str],
    header_names: Iterable[str] = DEFAULT_IDENTITY_HEADERS,
) -> str:
    """Return the identity used to bucket rate limit counters.

    Header lookups are case-insensitive when ``headers`` is a Starlette
    ``Headers`` object. For list-valued headers only the first entry (the
    original client in a forwarded-for chain) is used.

    Args:
        headers: Request headers.
        header_names: Headers to consult, highest priority first.

    Returns:
        The first non-empty address found, or the loopback sentinel.

    Examples:
        >>> resolve_client_identity({"x-forwarded-for": "1.2.3.4, 5.6.7.8"})
        '1.2.3.4'
        >>> resolve_client_identity({})
        '127.0.0.1'
    """
    for name in header_names:
        value = headers.get(name)
        if not value:
            continue
        first = value.split(",")[0].strip()
        if first:
            return first
    return LOOPBACK_IDENTITY
