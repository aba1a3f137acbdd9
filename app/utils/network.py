"""Client address helpers."""
from __future__ import annotations

from typing import Mapping, Optional


def resolve_client_ip(headers: Mapping[str, str], remote_host: Optional[str]) -> str:
    """Return the identifier used to key per-client state.

    Preference order is the first ``X-Forwarded-For`` entry, then
    ``X-Real-IP``, then the connection address. Header values are trusted as
    given.
    """

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return remote_host or "unknown"
