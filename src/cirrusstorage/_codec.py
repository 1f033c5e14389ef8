"""
Charset-aware request and response body handling
"""

import codecs
from typing import Any, Dict, Iterable, Optional, Union

import httpx

from .error import StorageEncodingError


DEFAULT_CHARSET = "utf-8"


def parse_charset(content_type: Optional[str]) -> Optional[str]:
    """Return the ``charset`` parameter of a Content-Type value, if any."""
    if not content_type:
        return None
    for attribute in content_type.split(";")[1:]:
        name, _, value = attribute.strip().partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return None


def _lookup(charset: str) -> str:
    try:
        return codecs.lookup(charset).name
    except LookupError as ex:
        raise StorageEncodingError(f"Unknown charset '{charset}'.", charset=charset) from ex


def encode_text(text: str, charset: str) -> bytes:
    try:
        return text.encode(_lookup(charset), errors="strict")
    except UnicodeEncodeError as ex:
        raise StorageEncodingError(
            f"Body cannot be represented in charset '{charset}': {ex.reason} at position {ex.start}.",
            charset=charset,
        ) from ex


def decode_text(content: bytes, charset: str) -> str:
    try:
        return content.decode(_lookup(charset), errors="strict")
    except UnicodeDecodeError as ex:
        raise StorageEncodingError(
            f"Response body is not valid '{charset}': {ex.reason} at position {ex.start}.",
            charset=charset,
        ) from ex


_BYTES_TYPES = (bytes, bytearray, memoryview)


def read_body(body: Any) -> Any:
    """Read file-like bodies into memory; other values are returned unchanged."""
    if hasattr(body, "read"):
        return body.read()
    return body


def body_length(content: Any) -> Optional[int]:
    """Byte length of an encoded body, or None when it is absent or streamed."""
    if isinstance(content, _BYTES_TYPES):
        return len(content)
    return None


def encode_request_body(
    body: Any,
    headers: Dict[str, str],
    content_type_header: str,
    default_content_type: Optional[str] = None,
) -> Union[bytes, Iterable[bytes], None]:
    """
    Prepare ``body`` for the wire and tag ``headers`` with its content type.

    ``content_type_header`` is the header that stores the resource's content
    type (``x-ms-blob-content-type`` for blobs, ``x-ms-content-type`` for
    files). Text is encoded strictly in the declared charset, or tagged as
    ``text/plain; charset=utf-8`` when no content type is declared. Binary
    bodies get ``default_content_type`` when none is declared. Empty bodies
    are passed through untouched. File-like bodies are read; any other
    iterable of byte chunks is streamed as is.
    """
    if body is None:
        return None
    body = read_body(body)
    if isinstance(body, (str,) + _BYTES_TYPES) and len(body) == 0:
        return b""

    values = httpx.Headers(headers)
    declared = values.get(content_type_header)

    if isinstance(body, str):
        if declared is None:
            headers[content_type_header] = f"text/plain; charset={DEFAULT_CHARSET}"
            return encode_text(body, DEFAULT_CHARSET)
        return encode_text(body, parse_charset(declared) or DEFAULT_CHARSET)

    if declared is None and default_content_type is not None:
        headers[content_type_header] = default_content_type
    if isinstance(body, _BYTES_TYPES):
        return bytes(body)
    return body


def decode_response_body(content: bytes, content_type: Optional[str]) -> Union[str, bytes]:
    """Decode ``content`` as text when ``content_type`` declares a charset."""
    charset = parse_charset(content_type)
    if not content or charset is None:
        return content
    return decode_text(content, charset)
