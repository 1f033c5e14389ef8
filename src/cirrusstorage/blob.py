"""
Blob service: containers, leases and block, page and append blobs
"""

from typing import Dict, Iterable, List, Optional, Tuple, Union

import httpx

from ._headers import (
    add_access_conditions,
    add_append_position_conditions,
    add_content_settings,
    add_sequence_number_conditions,
    add_source_access_conditions,
    compose_headers,
    range_header,
    with_header,
)
from ._serialization import (
    blob_enumeration_results_from_xml,
    blob_from_headers,
    block_list_from_xml,
    block_list_to_xml,
    container_enumeration_results_from_xml,
    container_from_headers,
    encode_block_id,
    metadata_as_stored,
    page_list_from_xml,
    signed_identifiers_from_xml,
    signed_identifiers_to_xml,
)
from ._service import StorageService
from ._signer import SharedAccessSignature
from ._uri import build_uri
from .config import BLOB_SERVICE
from .error import InvalidOptionsError, StorageParseError
from .models import (
    AccessConditions,
    AppendPositionConditions,
    Blob,
    BlockList,
    BlockListType,
    BlockState,
    Container,
    ContentSettings,
    CopyResult,
    DeleteSnapshots,
    EnumerationResults,
    PageRanges,
    PublicAccess,
    SequenceNumberAction,
    SequenceNumberConditions,
    SignedIdentifier,
    SourceAccessConditions,
    StorageResponse,
)


BLOB_API_VERSION = "2018-11-09"
DEFAULT_BLOB_CONTENT_TYPE = "application/octet-stream"

BlockListEntry = Union[str, Tuple[str, BlockState]]


class BlobService(StorageService):
    """
    Client for the blob service.

    Example:
        config = StorageConfig.from_env()
        with BlobService(config) as blobs:
            blobs.create_container("photos")
            blobs.create_block_blob("photos", "cat.jpg", data)
            page = blobs.list_blobs("photos", prefix="2024/")
    """

    service_type = BLOB_SERVICE
    api_version = BLOB_API_VERSION
    content_type_header = "x-ms-blob-content-type"
    default_content_type = DEFAULT_BLOB_CONTENT_TYPE

    def _container_uri(self, container: str, query: Optional[Dict] = None, readable: bool = False) -> httpx.URL:
        return self._uri([container], {"restype": "container", **(query or {})}, readable=readable)

    def _blob_uri(self, container: str, blob: str, query: Optional[Dict] = None, readable: bool = False) -> httpx.URL:
        return self._uri([container, blob], query, readable=readable)

    @staticmethod
    def _content_headers(
        headers: Dict[str, str],
        content_settings: Optional[ContentSettings],
        default_content_type: Optional[str] = None,
    ) -> None:
        add_content_settings(headers, content_settings, prefix="x-ms-blob-")
        if default_content_type is not None:
            headers.setdefault("x-ms-blob-content-type", default_content_type)

    # Containers

    def list_containers(
        self,
        *,
        prefix: Optional[str] = None,
        marker: Optional[str] = None,
        max_results: Optional[int] = None,
        include_metadata: bool = False,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> EnumerationResults[Container]:
        """
        List one page of containers in the account.

        Pass the returned ``continuation_token`` back as ``marker`` until
        ``has_more`` is False.
        """
        uri = self._uri(query={
            "comp": "list",
            "prefix": prefix,
            "marker": marker,
            "maxresults": max_results,
            "include": "metadata" if include_metadata else None,
            "timeout": timeout,
        }, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return container_enumeration_results_from_xml(response.content)

    def create_container(
        self,
        name: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        public_access_level: Union[PublicAccess, str, None] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Container:
        """Create a container; raises ResourceConflictException if it already exists."""
        headers = compose_headers(
            optional_fields={"x-ms-blob-public-access": public_access_level},
            metadata=metadata,
        )
        uri = self._container_uri(name, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        container = container_from_headers(name, response.headers)
        container.metadata = metadata_as_stored(metadata)
        if public_access_level is not None:
            container.public_access_level = PublicAccess(public_access_level).value
        return container

    def get_container_properties(
        self,
        name: str,
        *,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Container:
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        uri = self._container_uri(name, {"timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return container_from_headers(name, response.headers)

    def get_container_metadata(
        self,
        name: str,
        *,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Container:
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        uri = self._container_uri(name, {"comp": "metadata", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return container_from_headers(name, response.headers)

    def set_container_metadata(
        self,
        name: str,
        metadata: Dict[str, str],
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Replace all metadata of a container."""
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id}, metadata=metadata)
        add_access_conditions(headers, access_conditions)
        uri = self._container_uri(name, {"comp": "metadata", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def get_container_acl(
        self,
        name: str,
        *,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Tuple[Container, List[SignedIdentifier]]:
        """Return the container (with its public access level) and its stored access policies."""
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        uri = self._container_uri(name, {"comp": "acl", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id, apply_codec=False)
        return container_from_headers(name, response.headers), signed_identifiers_from_xml(response.content)

    def set_container_acl(
        self,
        name: str,
        public_access_level: Union[PublicAccess, str, None] = None,
        *,
        signed_identifiers: Optional[Iterable[SignedIdentifier]] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Tuple[Container, List[SignedIdentifier]]:
        """
        Set the public access level and stored access policies of a container.

        Omitting ``public_access_level`` makes the container private; an empty
        ``signed_identifiers`` list removes every stored policy.
        """
        signed_identifiers = list(signed_identifiers or [])

        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        if public_access_level:
            with_header(headers, "x-ms-blob-public-access", public_access_level)
        add_access_conditions(headers, access_conditions)

        body = signed_identifiers_to_xml(signed_identifiers) if signed_identifiers else None
        uri = self._container_uri(name, {"comp": "acl", "timeout": timeout})
        response = self._call("PUT", uri, body, headers, request_id=request_id, apply_codec=False)

        container = container_from_headers(name, response.headers)
        if public_access_level:
            container.public_access_level = PublicAccess(public_access_level).value
        return container, signed_identifiers

    def delete_container(
        self,
        name: str,
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        add_access_conditions(headers, access_conditions)
        uri = self._container_uri(name, {"timeout": timeout})
        self._call("DELETE", uri, headers=headers, request_id=request_id)

    def list_blobs(
        self,
        container: str,
        *,
        prefix: Optional[str] = None,
        delimiter: Optional[str] = None,
        marker: Optional[str] = None,
        max_results: Optional[int] = None,
        include_metadata: bool = False,
        include_snapshots: bool = False,
        include_uncommitted_blobs: bool = False,
        include_copy: bool = False,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> EnumerationResults[Blob]:
        """
        List one page of blobs in a container.

        With a ``delimiter``, blobs nested below ``prefix`` are grouped into
        ``common_prefixes`` instead of being returned individually.
        """
        include = [
            name
            for name, wanted in (
                ("metadata", include_metadata),
                ("snapshots", include_snapshots),
                ("uncommittedblobs", include_uncommitted_blobs),
                ("copy", include_copy),
            )
            if wanted
        ]
        uri = self._container_uri(container, {
            "comp": "list",
            "prefix": prefix.replace("\\", "/") if prefix is not None else None,
            "delimiter": delimiter,
            "marker": marker,
            "maxresults": max_results,
            "include": ",".join(include) if include else None,
            "timeout": timeout,
        }, readable=True)

        response = self._call("GET", uri, request_id=request_id, raise_on_error=False)
        if not response.success:
            raise response.exception
        return blob_enumeration_results_from_xml(response.content)

    # Leases

    def _lease(
        self,
        uri: httpx.URL,
        action: str,
        *,
        lease_id: Optional[str] = None,
        proposed_lease_id: Optional[str] = None,
        duration: Optional[int] = None,
        break_period: Optional[int] = None,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> StorageResponse:
        headers = compose_headers(
            defaults={"x-ms-lease-action": action},
            optional_fields={
                "x-ms-lease-id": lease_id,
                "x-ms-proposed-lease-id": proposed_lease_id,
                "x-ms-lease-duration": duration,
                "x-ms-lease-break-period": break_period,
                "Origin": origin,
            },
        )
        add_access_conditions(headers, access_conditions)
        return self._call("PUT", uri, headers=headers, request_id=request_id)

    def acquire_container_lease(
        self,
        container: str,
        *,
        duration: int = -1,
        proposed_lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Acquire a lease on a container and return its lease id.
        ``duration`` is 15 to 60 seconds, or -1 for a lease that never expires.
        """
        uri = self._container_uri(container, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "acquire",
            duration=duration,
            proposed_lease_id=proposed_lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def renew_container_lease(
        self,
        container: str,
        lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        uri = self._container_uri(container, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "renew",
            lease_id=lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def change_container_lease(
        self,
        container: str,
        lease_id: str,
        proposed_lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        uri = self._container_uri(container, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "change",
            lease_id=lease_id,
            proposed_lease_id=proposed_lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def release_container_lease(
        self,
        container: str,
        lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        uri = self._container_uri(container, {"comp": "lease", "timeout": timeout})
        self._lease(
            uri, "release",
            lease_id=lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )

    def break_container_lease(
        self,
        container: str,
        *,
        break_period: Optional[int] = None,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Optional[int]:
        """Break the lease and return the seconds remaining until it can be re-acquired."""
        uri = self._container_uri(container, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "break",
            break_period=break_period,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        lease_time = response.headers.get("x-ms-lease-time")
        return int(lease_time) if lease_time is not None else None

    def acquire_blob_lease(
        self,
        container: str,
        blob: str,
        *,
        duration: int = -1,
        proposed_lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Acquire a write lease on a blob and return its lease id.
        ``duration`` is 15 to 60 seconds, or -1 for a lease that never expires.
        """
        uri = self._blob_uri(container, blob, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "acquire",
            duration=duration,
            proposed_lease_id=proposed_lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def renew_blob_lease(
        self,
        container: str,
        blob: str,
        lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        uri = self._blob_uri(container, blob, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "renew",
            lease_id=lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def change_blob_lease(
        self,
        container: str,
        blob: str,
        lease_id: str,
        proposed_lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        uri = self._blob_uri(container, blob, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "change",
            lease_id=lease_id,
            proposed_lease_id=proposed_lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        return response.headers.get("x-ms-lease-id")

    def release_blob_lease(
        self,
        container: str,
        blob: str,
        lease_id: str,
        *,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        uri = self._blob_uri(container, blob, {"comp": "lease", "timeout": timeout})
        self._lease(
            uri, "release",
            lease_id=lease_id,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )

    def break_blob_lease(
        self,
        container: str,
        blob: str,
        *,
        break_period: Optional[int] = None,
        access_conditions: Optional[AccessConditions] = None,
        origin: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Optional[int]:
        """Break the lease and return the seconds remaining until it can be re-acquired."""
        uri = self._blob_uri(container, blob, {"comp": "lease", "timeout": timeout})
        response = self._lease(
            uri, "break",
            break_period=break_period,
            access_conditions=access_conditions,
            origin=origin,
            request_id=request_id,
        )
        lease_time = response.headers.get("x-ms-lease-time")
        return int(lease_time) if lease_time is not None else None

    # Blobs

    def get_blob(
        self,
        container: str,
        blob: str,
        *,
        snapshot: Optional[str] = None,
        start_range: Optional[int] = None,
        end_range: Optional[int] = None,
        get_content_md5: bool = False,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Download a blob, or a byte range of it.

        ``Blob.content`` is ``str`` when the stored content type declares a
        charset and ``bytes`` otherwise. Ranged downloads are always ``bytes``
        since a range may end inside a multibyte character.
        """
        byte_range = range_header(start_range, end_range)
        headers = compose_headers(optional_fields={
            "x-ms-range": byte_range,
            "x-ms-range-get-content-md5": True if byte_range and get_content_md5 else None,
            "x-ms-lease-id": lease_id,
        })
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"snapshot": snapshot, "timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id, apply_codec=byte_range is None)

        result = blob_from_headers(blob, response.headers, snapshot)
        result.content = response.body
        return result

    def get_blob_properties(
        self,
        container: str,
        blob: str,
        *,
        snapshot: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """Return a blob's properties and metadata without its content."""
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"snapshot": snapshot, "timeout": timeout}, readable=True)
        response = self._call("HEAD", uri, headers=headers, request_id=request_id)
        return blob_from_headers(blob, response.headers, snapshot)

    def set_blob_properties(
        self,
        container: str,
        blob: str,
        *,
        content_settings: Optional[ContentSettings] = None,
        content_length: Optional[int] = None,
        sequence_number_action: Union[SequenceNumberAction, str, None] = None,
        sequence_number: Optional[int] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Set system properties of a blob.

        The service clears any content setting that is not sent, so pass
        every content setting you want to keep. ``content_length`` resizes a
        page blob; ``sequence_number`` is ignored for the increment action.
        """
        headers = compose_headers(optional_fields={
            "x-ms-blob-content-length": content_length,
            "x-ms-sequence-number-action": sequence_number_action,
            "x-ms-lease-id": lease_id,
        })
        self._content_headers(headers, content_settings)
        if sequence_number_action is not None and SequenceNumberAction(sequence_number_action) != SequenceNumberAction.INCREMENT:
            with_header(headers, "x-ms-blob-sequence-number", sequence_number)
        add_access_conditions(headers, access_conditions)

        uri = self._blob_uri(container, blob, {"comp": "properties", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return blob_from_headers(blob, response.headers)

    def get_blob_metadata(
        self,
        container: str,
        blob: str,
        *,
        snapshot: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(
            container, blob,
            {"comp": "metadata", "snapshot": snapshot, "timeout": timeout},
            readable=True,
        )
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return blob_from_headers(blob, response.headers, snapshot)

    def set_blob_metadata(
        self,
        container: str,
        blob: str,
        metadata: Dict[str, str],
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Replace all metadata of a blob."""
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id}, metadata=metadata)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"comp": "metadata", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def create_blob_snapshot(
        self,
        container: str,
        blob: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """Create a read-only snapshot of a blob and return its snapshot id."""
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id}, metadata=metadata)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"comp": "snapshot", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        snapshot = response.headers.get("x-ms-snapshot")
        if snapshot is None:
            raise StorageParseError(
                "Snapshot response is missing the x-ms-snapshot header.",
                status_code=response.status_code,
            )
        return snapshot

    def copy_blob_from_uri(
        self,
        container: str,
        blob: str,
        source_uri: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        lease_id: Optional[str] = None,
        source_lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        source_access_conditions: Optional[SourceAccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> CopyResult:
        """
        Start a server-side copy from any readable blob or file URI.

        The copy may still be pending when this returns; poll
        :meth:`get_blob_properties` until ``copy_status`` is no longer ``"pending"``.
        """
        headers = compose_headers(
            defaults={"x-ms-copy-source": source_uri},
            optional_fields={
                "x-ms-lease-id": lease_id,
                "x-ms-source-lease-id": source_lease_id,
            },
            metadata=metadata,
        )
        add_access_conditions(headers, access_conditions)
        add_source_access_conditions(headers, source_access_conditions)
        uri = self._blob_uri(container, blob, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return CopyResult(
            copy_id=response.headers.get("x-ms-copy-id"),
            copy_status=response.headers.get("x-ms-copy-status"),
        )

    def copy_blob(
        self,
        container: str,
        blob: str,
        source_container: str,
        source_blob: str,
        *,
        source_snapshot: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        lease_id: Optional[str] = None,
        source_lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        source_access_conditions: Optional[SourceAccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> CopyResult:
        """Start a server-side copy of a blob in the same account."""
        source_uri = build_uri(
            self.host,
            [source_container, source_blob],
            {"snapshot": source_snapshot},
            account_path=self.config.account_path(),
        )
        return self.copy_blob_from_uri(
            container,
            blob,
            str(source_uri),
            metadata=metadata,
            lease_id=lease_id,
            source_lease_id=source_lease_id,
            access_conditions=access_conditions,
            source_access_conditions=source_access_conditions,
            timeout=timeout,
            request_id=request_id,
        )

    def abort_copy_blob(
        self,
        container: str,
        blob: str,
        copy_id: str,
        *,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Abort a pending copy, leaving a zero-length destination blob."""
        headers = compose_headers(
            defaults={"x-ms-copy-action": "abort"},
            optional_fields={"x-ms-lease-id": lease_id},
        )
        uri = self._blob_uri(container, blob, {"comp": "copy", "copyid": copy_id, "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def delete_blob(
        self,
        container: str,
        blob: str,
        *,
        snapshot: Optional[str] = None,
        delete_snapshots: Union[DeleteSnapshots, str, None] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """
        Delete a blob, or one of its snapshots when ``snapshot`` is given.
        Deleting a base blob deletes its snapshots too unless told otherwise.
        """
        if snapshot is None and delete_snapshots is None:
            delete_snapshots = DeleteSnapshots.INCLUDE
        headers = compose_headers(optional_fields={
            "x-ms-delete-snapshots": delete_snapshots if snapshot is None else None,
            "x-ms-lease-id": lease_id,
        })
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"snapshot": snapshot, "timeout": timeout})
        self._call("DELETE", uri, headers=headers, request_id=request_id)

    def generate_blob_sas_url(
        self,
        container: str,
        blob: Optional[str] = None,
        *,
        permissions: str = "r",
        start=None,
        expiry=None,
        identifier: Optional[str] = None,
        ip_range: Optional[str] = None,
        protocol: Optional[str] = None,
        snapshot: Optional[str] = None,
        content_settings: Optional[ContentSettings] = None,
    ) -> str:
        """
        Return a URL for a blob (or a whole container when ``blob`` is omitted)
        carrying a service SAS. Requires account key credentials.
        """
        if not self.config.access_key:
            raise InvalidOptionsError("Generating a SAS requires account key credentials.")
        settings = content_settings or ContentSettings()
        sas = SharedAccessSignature(self.config.account_name, self.config.access_key)
        path = f"{container}/{blob}" if blob else container
        token = sas.generate_service_sas_token(
            path,
            service="b",
            resource="b" if blob else "c",
            permissions=permissions,
            start=start,
            expiry=expiry,
            identifier=identifier,
            ip_range=ip_range,
            protocol=protocol,
            snapshot=snapshot,
            cache_control=settings.cache_control,
            content_disposition=settings.content_disposition,
            content_encoding=settings.content_encoding,
            content_language=settings.content_language,
            content_type=settings.content_type,
        )
        uri = build_uri(
            self.host,
            [container, blob],
            {"snapshot": snapshot} if blob else {"restype": "container"},
            account_path=self.config.account_path(),
        )
        return sas.signed_uri(uri, token)

    # Block blobs

    def create_block_blob(
        self,
        container: str,
        blob: str,
        content,
        *,
        content_settings: Optional[ContentSettings] = None,
        metadata: Optional[Dict[str, str]] = None,
        transactional_md5: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Upload ``content`` as a block blob in a single request.

        Text content is sent as ``text/plain; charset=utf-8`` unless a content
        type is given, in which case it is encoded in that content type's charset.
        Larger uploads should use :meth:`put_blob_block` and :meth:`commit_blob_blocks`.
        """
        headers = compose_headers(
            defaults={"x-ms-blob-type": "BlockBlob"},
            optional_fields={"Content-MD5": transactional_md5, "x-ms-lease-id": lease_id},
            metadata=metadata,
        )
        self._content_headers(headers, content_settings)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"timeout": timeout})
        response = self._call("PUT", uri, content, headers, request_id=request_id)

        result = blob_from_headers(blob, response.headers)
        result.metadata = metadata_as_stored(metadata)
        return result

    def put_blob_block(
        self,
        container: str,
        blob: str,
        block_id: str,
        content,
        *,
        transactional_md5: Optional[str] = None,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Stage one block. Every block id of a blob must have the same length.
        Returns the Content-MD5 computed by the service.
        """
        headers = compose_headers(optional_fields={
            "Content-MD5": transactional_md5,
            "x-ms-lease-id": lease_id,
        })
        uri = self._blob_uri(container, blob, {
            "comp": "block",
            "blockid": encode_block_id(block_id),
            "timeout": timeout,
        })
        response = self._call("PUT", uri, content, headers, request_id=request_id, apply_codec=False)
        return response.headers.get("Content-MD5")

    def commit_blob_blocks(
        self,
        container: str,
        blob: str,
        block_list: Iterable[BlockListEntry],
        *,
        content_settings: Optional[ContentSettings] = None,
        metadata: Optional[Dict[str, str]] = None,
        transactional_md5: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Commit staged blocks as the blob's content, in the given order.

        Plain block ids are looked up in the latest block list; pass
        ``(block_id, BlockState.COMMITTED)`` or ``BlockState.UNCOMMITTED`` to
        pick a specific list.
        """
        entries = [
            (entry, BlockState.LATEST) if isinstance(entry, str) else entry
            for entry in block_list
        ]
        headers = compose_headers(
            optional_fields={"Content-MD5": transactional_md5, "x-ms-lease-id": lease_id},
            metadata=metadata,
        )
        self._content_headers(headers, content_settings, DEFAULT_BLOB_CONTENT_TYPE)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"comp": "blocklist", "timeout": timeout})
        response = self._call(
            "PUT",
            uri,
            block_list_to_xml(entries),
            headers,
            request_id=request_id,
            apply_codec=False,
        )
        return blob_from_headers(blob, response.headers)

    def list_blob_blocks(
        self,
        container: str,
        blob: str,
        *,
        block_list_type: Union[BlockListType, str] = BlockListType.ALL,
        snapshot: Optional[str] = None,
        lease_id: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> BlockList:
        headers = compose_headers(optional_fields={"x-ms-lease-id": lease_id})
        uri = self._blob_uri(container, blob, {
            "comp": "blocklist",
            "blocklisttype": BlockListType(block_list_type),
            "snapshot": snapshot,
            "timeout": timeout,
        }, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return block_list_from_xml(response.content)

    # Page blobs

    def create_page_blob(
        self,
        container: str,
        blob: str,
        length: int,
        *,
        sequence_number: int = 0,
        content_settings: Optional[ContentSettings] = None,
        metadata: Optional[Dict[str, str]] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """Create an empty page blob of ``length`` bytes (a multiple of 512)."""
        headers = compose_headers(
            defaults={
                "x-ms-blob-type": "PageBlob",
                "x-ms-blob-content-length": length,
                "x-ms-blob-sequence-number": sequence_number,
            },
            optional_fields={"x-ms-lease-id": lease_id},
            metadata=metadata,
        )
        self._content_headers(headers, content_settings, DEFAULT_BLOB_CONTENT_TYPE)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        result = blob_from_headers(blob, response.headers)
        result.metadata = metadata_as_stored(metadata)
        return result

    def put_blob_pages(
        self,
        container: str,
        blob: str,
        start_range: int,
        end_range: int,
        content,
        *,
        transactional_md5: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        sequence_number_conditions: Optional[SequenceNumberConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """Write ``content`` to the 512-byte aligned range ``[start_range, end_range]``."""
        headers = compose_headers(
            defaults={
                "x-ms-page-write": "update",
                "x-ms-range": range_header(start_range, end_range),
            },
            optional_fields={"Content-MD5": transactional_md5, "x-ms-lease-id": lease_id},
        )
        add_access_conditions(headers, access_conditions)
        add_sequence_number_conditions(headers, sequence_number_conditions)
        uri = self._blob_uri(container, blob, {"comp": "page", "timeout": timeout})
        response = self._call("PUT", uri, content, headers, request_id=request_id, apply_codec=False)
        return blob_from_headers(blob, response.headers)

    def clear_blob_pages(
        self,
        container: str,
        blob: str,
        start_range: int,
        end_range: int,
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        sequence_number_conditions: Optional[SequenceNumberConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        headers = compose_headers(
            defaults={
                "x-ms-page-write": "clear",
                "x-ms-range": range_header(start_range, end_range),
            },
            optional_fields={"x-ms-lease-id": lease_id},
        )
        add_access_conditions(headers, access_conditions)
        add_sequence_number_conditions(headers, sequence_number_conditions)
        uri = self._blob_uri(container, blob, {"comp": "page", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return blob_from_headers(blob, response.headers)

    def list_page_blob_ranges(
        self,
        container: str,
        blob: str,
        *,
        start_range: Optional[int] = None,
        end_range: Optional[int] = None,
        snapshot: Optional[str] = None,
        previous_snapshot: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> PageRanges:
        """
        Return the populated ranges of a page blob, sorted by start offset.

        With ``previous_snapshot``, only ranges changed since that snapshot are
        returned, and ranges cleared since then appear in ``clear_ranges``.
        """
        headers = compose_headers(optional_fields={
            "x-ms-range": range_header(start_range, end_range),
            "x-ms-lease-id": lease_id,
        })
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {
            "comp": "pagelist",
            "snapshot": snapshot,
            "prevsnapshot": previous_snapshot,
            "timeout": timeout,
        }, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return page_list_from_xml(response.content)

    def resize_page_blob(
        self,
        container: str,
        blob: str,
        size: int,
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        return self.set_blob_properties(
            container,
            blob,
            content_length=size,
            lease_id=lease_id,
            access_conditions=access_conditions,
            timeout=timeout,
            request_id=request_id,
        )

    def set_sequence_number(
        self,
        container: str,
        blob: str,
        action: Union[SequenceNumberAction, str],
        number: Optional[int] = None,
        *,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Update a page blob's sequence number: ``max`` keeps the larger value,
        ``update`` sets ``number``, ``increment`` adds one.
        """
        return self.set_blob_properties(
            container,
            blob,
            sequence_number_action=action,
            sequence_number=number,
            lease_id=lease_id,
            access_conditions=access_conditions,
            timeout=timeout,
            request_id=request_id,
        )

    def incremental_copy_blob(
        self,
        container: str,
        blob: str,
        source_uri: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> CopyResult:
        """
        Start an incremental copy from a page blob snapshot URI.
        The source URI must include a ``snapshot`` query parameter.
        """
        headers = compose_headers(defaults={"x-ms-copy-source": source_uri}, metadata=metadata)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"comp": "incrementalcopy", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return CopyResult(
            copy_id=response.headers.get("x-ms-copy-id"),
            copy_status=response.headers.get("x-ms-copy-status"),
        )

    # Append blobs

    def create_append_blob(
        self,
        container: str,
        blob: str,
        *,
        content_settings: Optional[ContentSettings] = None,
        metadata: Optional[Dict[str, str]] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """Create an empty append blob, replacing any existing blob."""
        headers = compose_headers(
            defaults={"x-ms-blob-type": "AppendBlob"},
            optional_fields={"x-ms-lease-id": lease_id},
            metadata=metadata,
        )
        self._content_headers(headers, content_settings, DEFAULT_BLOB_CONTENT_TYPE)
        add_access_conditions(headers, access_conditions)
        uri = self._blob_uri(container, blob, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        result = blob_from_headers(blob, response.headers)
        result.metadata = metadata_as_stored(metadata)
        return result

    def append_blob_block(
        self,
        container: str,
        blob: str,
        content,
        *,
        transactional_md5: Optional[str] = None,
        lease_id: Optional[str] = None,
        access_conditions: Optional[AccessConditions] = None,
        append_conditions: Optional[AppendPositionConditions] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Blob:
        """
        Append ``content`` to the end of an append blob.

        ``append_conditions.append_position`` makes the call fail with
        PreconditionFailedException unless the blob is exactly that long.
        The returned properties carry ``append_offset``, the offset the block
        was written at.
        """
        headers = compose_headers(optional_fields={
            "Content-MD5": transactional_md5,
            "x-ms-lease-id": lease_id,
        })
        add_access_conditions(headers, access_conditions)
        add_append_position_conditions(headers, append_conditions)
        uri = self._blob_uri(container, blob, {"comp": "appendblock", "timeout": timeout})
        response = self._call("PUT", uri, content, headers, request_id=request_id, apply_codec=False)
        return blob_from_headers(blob, response.headers)
