"""Canonical request representation fed to the request signer.

The server recomputes the same string to verify ``X-Digipost-Signature``,
so the format has to be reproduced exactly::

    METHOD\\n
    /lower/case/path\\n
    content-md5: ...\\n          (signed headers that are present,
    date: ...\\n                  sorted by lower-case name)
    x-content-sha256: ...\\n
    x-digipost-userid: ...\\n
    lower=case&query\\n
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Mapping


__all__ = [
    "SIGNED_HEADERS",
    "canonical_request",
]

SIGNED_HEADERS = frozenset(
    {
        "content-md5",
        "date",
        "x-digipost-userid",
        "x-content-sha256",
    }
)


def canonical_request(
    method: str,
    path: str,
    headers: Mapping[str, str],
    query: str = "",
) -> str:
    """Build the canonical string for a request.

    Args:
        method: HTTP method.
        path: Request path without query string.
        headers: Request headers. Only the signed headers are used.
        query: Raw query string without the leading ``?``.

    Returns:
        The canonical representation.
    """
    signed = sorted(
        (name.lower(), value)
        for name, value in headers.items()
        if name.lower() in SIGNED_HEADERS
    )
    header_lines = "".join(f"{name}: {value}\n" for name, value in signed)
    return f"{method.upper()}\n{path.lower()}\n{header_lines}{query.lower()}\n"
