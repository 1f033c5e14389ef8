"""
Request header composition
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .models import (
    AccessConditions,
    AppendPositionConditions,
    ContentSettings,
    SequenceNumberConditions,
    SourceAccessConditions,
)


METADATA_PREFIX = "x-ms-meta-"


def format_header_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.strftime("%a, %d %b %Y %H:%M:%S GMT")
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def with_header(headers: Dict[str, str], name: str, value: Any) -> None:
    """Set ``name`` only when ``value`` is not None. An empty string is still written."""
    if value is not None:
        headers[name] = format_header_value(value)


def range_header(start_range: Optional[int], end_range: Optional[int]) -> Optional[str]:
    """Render ``bytes=<start>-<end>``; a missing start means 0, a missing end means to the end."""
    if start_range is None and end_range is None:
        return None
    start = start_range or 0
    return f"bytes={start}-{'' if end_range is None else end_range}"


def add_metadata_headers(headers: Dict[str, str], metadata: Optional[Mapping[str, Any]]) -> None:
    for key, value in (metadata or {}).items():
        headers[f"{METADATA_PREFIX}{key.lower()}"] = format_header_value(value)


def compose_headers(
    defaults: Optional[Mapping[str, Any]] = None,
    optional_fields: Optional[Mapping[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Dict[str, str]:
    """
    Build an outgoing header map.

    ``defaults`` are always written, ``optional_fields`` maps header names to
    values written only when not None, and ``metadata`` entries become
    ``x-ms-meta-<key>`` headers.
    """
    headers = {name: format_header_value(value) for name, value in (defaults or {}).items()}
    for name, value in (optional_fields or {}).items():
        with_header(headers, name, value)
    add_metadata_headers(headers, metadata)
    return headers


def add_access_conditions(headers: Dict[str, str], conditions: Optional[AccessConditions]) -> None:
    if conditions is None:
        return
    with_header(headers, "If-Modified-Since", conditions.if_modified_since)
    with_header(headers, "If-Unmodified-Since", conditions.if_unmodified_since)
    with_header(headers, "If-Match", conditions.if_match)
    with_header(headers, "If-None-Match", conditions.if_none_match)


def add_source_access_conditions(headers: Dict[str, str], conditions: Optional[SourceAccessConditions]) -> None:
    if conditions is None:
        return
    with_header(headers, "x-ms-source-if-modified-since", conditions.if_modified_since)
    with_header(headers, "x-ms-source-if-unmodified-since", conditions.if_unmodified_since)
    with_header(headers, "x-ms-source-if-match", conditions.if_match)
    with_header(headers, "x-ms-source-if-none-match", conditions.if_none_match)


def add_sequence_number_conditions(headers: Dict[str, str], conditions: Optional[SequenceNumberConditions]) -> None:
    if conditions is None:
        return
    with_header(headers, "x-ms-if-sequence-number-le", conditions.if_sequence_number_le)
    with_header(headers, "x-ms-if-sequence-number-lt", conditions.if_sequence_number_lt)
    with_header(headers, "x-ms-if-sequence-number-eq", conditions.if_sequence_number_eq)


def add_append_position_conditions(headers: Dict[str, str], conditions: Optional[AppendPositionConditions]) -> None:
    if conditions is None:
        return
    with_header(headers, "x-ms-blob-condition-maxsize", conditions.max_size)
    with_header(headers, "x-ms-blob-condition-appendpos", conditions.append_position)


def add_content_settings(
    headers: Dict[str, str],
    settings: Optional[ContentSettings],
    prefix: str,
) -> None:
    """
    Write content settings as stored properties.

    Blob properties use the ``x-ms-blob-`` prefix, file properties ``x-ms-``.
    """
    if settings is None:
        return
    with_header(headers, f"{prefix}content-type", settings.content_type)
    with_header(headers, f"{prefix}content-encoding", settings.content_encoding)
    with_header(headers, f"{prefix}content-language", settings.content_language)
    with_header(headers, f"{prefix}content-md5", settings.content_md5)
    with_header(headers, f"{prefix}content-disposition", settings.content_disposition)
    with_header(headers, f"{prefix}cache-control", settings.cache_control)


def common_headers(api_version: str, user_agent: str, request_id: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "x-ms-version": api_version,
        "User-Agent": user_agent,
    }
    with_header(headers, "x-ms-client-request-id", request_id)
    return headers
