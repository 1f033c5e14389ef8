"""
Request dispatch shared by the blob and file services
"""

import logging
import platform
import uuid
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, Mapping, Optional

import httpx

from . import __version__
from ._codec import body_length, decode_response_body, encode_request_body, read_body
from ._headers import common_headers, format_header_value
from ._http import HttpClient
from ._serialization import service_properties_from_xml, service_properties_to_xml, service_stats_from_xml
from ._uri import build_uri
from .config import StorageConfig
from .error import InvalidOptionsError, StorageServiceError
from .models import LocationMode, StorageResponse, StorageServiceProperties, StorageServiceStats


USER_AGENT = (
    f"Cirrus-Storage/{__version__} "
    f"(Python {platform.python_version()}; {platform.system()} {platform.release()})"
)


class StorageService:
    """
    Base class for storage services.

    Builds resource URIs, adds the common headers, applies the body codec,
    signs each request and turns non-success responses into
    :class:`StorageServiceError` subclasses.
    """

    service_type: str = ""
    api_version: str = ""
    content_type_header: Optional[str] = None
    default_content_type: Optional[str] = None

    def __init__(
        self,
        config: StorageConfig,
        http: Optional[HttpClient] = None,
        signer=None,
        location_mode: LocationMode = LocationMode.PRIMARY_ONLY,
    ):
        """
        Initialize the service.

        Args:
            config: Account settings and credentials
            http: Shared transport; one is created (and owned) when omitted
            signer: Overrides the signer derived from ``config``
            location_mode: Region read operations are sent to
        """
        self.config = config
        self.signer = signer or config.create_signer()
        self.location_mode = location_mode
        self._owns_http = http is None
        self._http = http or HttpClient(timeout=config.request_timeout, max_retries=config.max_retries)
        self.user_agent = (
            f"{config.user_agent_prefix}; {USER_AGENT}" if config.user_agent_prefix else USER_AGENT
        )
        self._logger = logging.getLogger(__name__)

    @property
    def host(self) -> str:
        return self.config.primary_host(self.service_type)

    def _uri(
        self,
        segments: Iterable[Optional[str]] = (),
        query: Optional[Mapping[str, Any]] = None,
        readable: bool = False,
        secondary_only: bool = False,
    ) -> httpx.URL:
        """
        Build the URI for a resource.

        ``readable`` operations honour ``location_mode``; any other operation
        must go to the primary region. ``secondary_only`` operations always go
        to the secondary region.
        """
        secondary = secondary_only or self.location_mode == LocationMode.SECONDARY_ONLY
        if secondary and not readable:
            raise InvalidOptionsError("This operation can only be sent to the primary location.")
        host = (
            self.config.secondary_host(self.service_type)
            if secondary
            else self.config.primary_host(self.service_type)
        )
        return build_uri(host, segments, query, account_path=self.config.account_path(secondary))

    def _call(
        self,
        method: str,
        uri: httpx.URL,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        *,
        request_id: Optional[str] = None,
        raise_on_error: bool = True,
        apply_codec: bool = True,
    ) -> StorageResponse:
        """
        Sign and send one request.

        Raises the status-specific :class:`StorageServiceError` on a
        non-success response unless ``raise_on_error`` is False, in which case
        the error is attached to ``StorageResponse.exception``.
        Iterable bodies are sent chunked without a Content-Length and cannot
        be replayed by a retry.
        """
        request_headers = dict(headers or {})

        if apply_codec and self.content_type_header:
            content = encode_request_body(
                body,
                request_headers,
                self.content_type_header,
                self.default_content_type,
            )
        else:
            content = read_body(body)
            if isinstance(content, str):
                content = content.encode("utf-8")
            elif isinstance(content, (bytearray, memoryview)):
                content = bytes(content)

        request_id = request_id or str(uuid.uuid4())
        request_headers.update(common_headers(self.api_version, self.user_agent, request_id))
        request_headers["x-ms-date"] = format_header_value(datetime.now(UTC))
        content_length = body_length(content)
        if content_length is not None or (content is None and method == "PUT"):
            request_headers.setdefault("Content-Length", str(content_length or 0))

        url = self.signer.sign_request(method, uri, request_headers)

        self._logger.debug(
            "[CirrusStorage][Request] method=%s uri=%s requestId=%s",
            method,
            uri,
            request_id,
        )
        raw = self._http.request(method, url, headers=request_headers, content=content)
        self._logger.debug(
            "[CirrusStorage][Response] method=%s uri=%s requestId=%s status=%s",
            method,
            uri,
            request_id,
            raw.status_code,
        )

        response = StorageResponse(
            status_code=raw.status_code,
            headers=raw.headers,
            content=raw.content,
            uri=str(uri),
        )

        if not response.success:
            response.exception = StorageServiceError.from_response(
                raw.status_code,
                raw.content,
                uri=str(uri),
                request_id=raw.headers.get("x-ms-request-id"),
                error_code_header=raw.headers.get("x-ms-error-code"),
            )
            if raise_on_error:
                raise response.exception
            return response

        if apply_codec:
            response.body = decode_response_body(raw.content, raw.headers.get("Content-Type"))
        else:
            response.body = raw.content
        return response

    # Service properties

    def get_service_properties(
        self,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> StorageServiceProperties:
        """Get logging, metrics and CORS settings of the service."""
        uri = self._uri(query={"restype": "service", "comp": "properties", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id, apply_codec=False)
        return service_properties_from_xml(response.content)

    def set_service_properties(
        self,
        properties: StorageServiceProperties,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Replace logging, metrics and CORS settings of the service."""
        uri = self._uri(query={"restype": "service", "comp": "properties", "timeout": timeout})
        self._call(
            "PUT",
            uri,
            service_properties_to_xml(properties),
            request_id=request_id,
            apply_codec=False,
        )

    def get_service_stats(
        self,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> StorageServiceStats:
        """
        Get geo-replication status of the secondary location.

        Only available for read-access geo-redundant accounts. The request is
        always sent to the secondary endpoint whatever ``location_mode`` is.
        """
        uri = self._uri(
            query={"restype": "service", "comp": "stats", "timeout": timeout},
            readable=True,
            secondary_only=True,
        )
        response = self._call("GET", uri, request_id=request_id, apply_codec=False)
        return service_stats_from_xml(response.content)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
