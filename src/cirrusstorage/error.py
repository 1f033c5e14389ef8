"""
Exception classes for Cirrus Storage SDK
"""

import xml.etree.ElementTree as ET
from typing import Optional


class StorageException(Exception):
    """
    Base exception for all Cirrus Storage SDK errors.
    """

    def __init__(self, message: str, status_code: int = None, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


class InvalidOptionsError(StorageException, ValueError):
    """Thrown when client configuration or operation options are invalid."""

    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidOptions")


class StorageEncodingError(StorageException, UnicodeError):
    """Thrown when a body cannot be represented in the declared charset."""

    def __init__(self, message: str, charset: Optional[str] = None):
        super().__init__(message, error_code="EncodingError")
        self.charset = charset


class StorageParseError(StorageException):
    """Thrown when a response body or header does not match the expected shape."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, status_code=status_code, error_code="ParseError")


class StorageServiceError(StorageException):
    """
    Thrown when the service answers with a non-success status.

    Carries the HTTP status, the service error type (the ``<Code>`` element)
    and its description (the ``<Message>`` element), so callers can branch on
    either the class, ``status_code`` or ``error_type``.
    """

    def __init__(
        self,
        status_code: int,
        error_type: str = "Unknown",
        description: str = "",
        detail: Optional[str] = None,
        uri: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        message = f"{error_type} ({status_code}): {description}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message, status_code=status_code, error_code=error_type)
        self.error_type = error_type
        self.description = description
        self.detail = detail
        self.uri = uri
        self.request_id = request_id

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: bytes,
        uri: Optional[str] = None,
        request_id: Optional[str] = None,
        error_code_header: Optional[str] = None,
    ) -> "StorageServiceError":
        """
        Build the error subclass matching ``status_code`` from an error payload.

        HEAD responses carry no body, so ``error_code_header`` (the
        ``x-ms-error-code`` response header) supplies the error type instead.
        """
        error_type, description, detail = _parse_error_body(body)
        if error_type == "Unknown" and error_code_header:
            error_type = error_code_header
        error_class = _ERRORS_BY_STATUS.get(status_code, cls)
        return error_class(
            status_code,
            error_type=error_type,
            description=description,
            detail=detail,
            uri=uri,
            request_id=request_id,
        )


class AuthenticationException(StorageServiceError):
    """Thrown when the service rejects the request signature (401)."""


class AccessDeniedException(StorageServiceError):
    """Thrown when access is denied (403)."""


class ResourceNotFoundException(StorageServiceError):
    """Thrown when a container, blob, share, directory or file is not found (404)."""


class ResourceConflictException(StorageServiceError):
    """Thrown on conflicts such as already-existing resources or held leases (409)."""


class PreconditionFailedException(StorageServiceError):
    """Thrown when a conditional header is not satisfied (412)."""


_ERRORS_BY_STATUS = {
    401: AuthenticationException,
    403: AccessDeniedException,
    404: ResourceNotFoundException,
    409: ResourceConflictException,
    412: PreconditionFailedException,
}


def _parse_error_body(body: bytes):
    """Return ``(type, description, detail)`` from an error payload."""
    if not body:
        return "Unknown", "", None

    try:
        doc = ET.fromstring(body)
    except ET.ParseError:
        return "Unknown", body.decode("utf-8", errors="replace").strip(), None

    values = {}
    for node in doc.iter():
        tag = node.tag.split("}")[-1]
        if tag in ("Code", "Message") and node.text:
            values[tag] = node.text.strip()
        elif tag not in ("Error", "Code", "Message") and node.text and node.text.strip():
            values.setdefault("Detail", f"{tag}: {node.text.strip()}")

    if "Code" not in values:
        return "Unknown", body.decode("utf-8", errors="replace").strip(), None
    return values["Code"], values.get("Message", ""), values.get("Detail")
