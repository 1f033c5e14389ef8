"""
Resource URI construction
"""

from typing import Any, Iterable, Mapping, Optional, Union
from urllib.parse import quote

import httpx


def is_absolute_uri(value: Union[str, httpx.URL, None]) -> bool:
    if isinstance(value, httpx.URL):
        return True
    return isinstance(value, str) and (value.startswith("http://") or value.startswith("https://"))


def encode_path(segments: Iterable[Optional[str]]) -> str:
    """
    Percent-encode each segment on its own and join them with ``/``.

    Backslashes count as separators. ``/`` inside a segment stays a separator
    so blob names such as ``dir/sub/name.txt`` keep their virtual hierarchy.
    """
    encoded = []
    for segment in segments:
        if segment is None or segment == "":
            continue
        segment = segment.replace("\\", "/")
        encoded.append("/".join(quote(part, safe="") for part in segment.split("/")))
    return "/".join(encoded)


def build_uri(
    host: str,
    segments: Iterable[Optional[str]] = (),
    query: Optional[Mapping[str, Any]] = None,
    account_path: Optional[str] = None,
) -> httpx.URL:
    """
    Compose ``<host>/<account_path>/<segments>?<query>``.

    Query entries keep the caller's order; ``None`` values are omitted and
    ``bool`` values render as ``true``/``false``.
    """
    segments = list(segments)
    if len(segments) == 1 and is_absolute_uri(segments[0]):
        return httpx.URL(str(segments[0]))

    path = encode_path([account_path, *segments])
    url = f"{host.rstrip('/')}/{path}"

    params = []
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif hasattr(value, "value"):
            value = value.value
        params.append((key, str(value)))

    if params:
        url += "?" + "&".join(f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in params)
    return httpx.URL(url)
