"""Log-safe views of stream payloads and request URLs.

Stream frames can carry a whole ``Users`` subtree, and request URLs carry
the database secret in ``?auth=``.  Debug logging goes through these
helpers so neither ends up verbatim in a log file.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "auth",
        "token",
        "access_token",
        "id_token",
        "idtoken",
        "refresh_token",
        "authorization",
        "cookie",
        "secret",
    }
)

_MAX_DEPTH = 20


def _is_sensitive(key: Any) -> bool:
    return str(key).lower() in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, max_items: int = 50) -> Any:
    """Summarise a decoded JSON payload for a debug log line.

    Parameters
    ----------
    value : Any
        Decoded frame data (``dict``/``list``/scalars).
    max_string : int
        Strings longer than this are cut and marked ``<truncated>``.
    max_items : int
        Mappings keep their first *max_items* entries; the remainder is
        collapsed into a single ``"…"`` entry with a count.

    Returns
    -------
    Any
        A new structure; *value* itself is never modified.
    """
    return _summarise(value, max_string, max_items, 0)


def _summarise(value: Any, max_string: int, max_items: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summary: dict[str, Any] = {}
        for key, item in list(value.items())[:max_items]:
            summary[str(key)] = REDACTED if _is_sensitive(key) else _summarise(item, max_string, max_items, depth + 1)
        if len(value) > max_items:
            summary["…"] = f"<{len(value) - max_items} more>"
        return summary

    if isinstance(value, Sequence):
        return [_summarise(item, max_string, max_items, depth + 1) for item in value]

    return repr(value)


def redact_url(url: str) -> str:
    """Mask sensitive query parameters (``auth=...``) in *url*."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, REDACTED if _is_sensitive(key) else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="<>")))
