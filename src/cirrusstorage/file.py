"""
File service: shares, directories and files
"""

from typing import Dict, Iterable, List, Optional, Tuple

import httpx

from ._headers import add_content_settings, compose_headers, range_header
from ._serialization import (
    directories_and_files_enumeration_results_from_xml,
    directory_from_headers,
    file_from_headers,
    metadata_as_stored,
    range_list_from_xml,
    share_enumeration_results_from_xml,
    share_from_headers,
    share_stats_from_xml,
    signed_identifiers_from_xml,
    signed_identifiers_to_xml,
)
from ._service import StorageService
from ._signer import SharedAccessSignature
from ._uri import build_uri
from .config import FILE_SERVICE
from .error import InvalidOptionsError
from .models import (
    ByteRange,
    ContentSettings,
    CopyResult,
    Directory,
    EnumerationResults,
    File,
    Share,
    SignedIdentifier,
)


FILE_API_VERSION = "2016-05-31"


class FileService(StorageService):
    """
    Client for the file service.

    ``directory`` arguments are paths below the share root such as
    ``"reports/2024"``; pass ``""`` or None for the root directory.

    Example:
        with FileService(StorageConfig.from_env()) as files:
            files.create_share("team", quota=10)
            files.create_directory("team", "reports")
            files.create_file("team", "reports", "q1.csv", 1024)
    """

    service_type = FILE_SERVICE
    api_version = FILE_API_VERSION
    content_type_header = "x-ms-content-type"

    def _share_uri(self, share: str, query: Optional[Dict] = None, readable: bool = False) -> httpx.URL:
        return self._uri([share], {"restype": "share", **(query or {})}, readable=readable)

    def _directory_uri(
        self,
        share: str,
        directory: Optional[str],
        query: Optional[Dict] = None,
        readable: bool = False,
    ) -> httpx.URL:
        return self._uri([share, directory], {"restype": "directory", **(query or {})}, readable=readable)

    def _file_uri(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        query: Optional[Dict] = None,
        readable: bool = False,
    ) -> httpx.URL:
        return self._uri([share, directory, file], query, readable=readable)

    # Shares

    def list_shares(
        self,
        *,
        prefix: Optional[str] = None,
        marker: Optional[str] = None,
        max_results: Optional[int] = None,
        include_metadata: bool = False,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> EnumerationResults[Share]:
        uri = self._uri(query={
            "comp": "list",
            "prefix": prefix,
            "marker": marker,
            "maxresults": max_results,
            "include": "metadata" if include_metadata else None,
            "timeout": timeout,
        }, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return share_enumeration_results_from_xml(response.content)

    def create_share(
        self,
        name: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        quota: Optional[int] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Share:
        """Create a share; ``quota`` is its maximum size in GB."""
        headers = compose_headers(optional_fields={"x-ms-share-quota": quota}, metadata=metadata)
        uri = self._share_uri(name, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        share = share_from_headers(name, response.headers)
        share.metadata = metadata_as_stored(metadata)
        share.properties.quota = quota
        return share

    def get_share_properties(
        self,
        name: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Share:
        uri = self._share_uri(name, {"timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return share_from_headers(name, response.headers)

    def set_share_properties(
        self,
        name: str,
        *,
        quota: Optional[int] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(optional_fields={"x-ms-share-quota": quota})
        uri = self._share_uri(name, {"comp": "properties", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def get_share_metadata(
        self,
        name: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Share:
        uri = self._share_uri(name, {"comp": "metadata", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return share_from_headers(name, response.headers)

    def set_share_metadata(
        self,
        name: str,
        metadata: Dict[str, str],
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(metadata=metadata)
        uri = self._share_uri(name, {"comp": "metadata", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def delete_share(
        self,
        name: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Mark a share and everything in it for deletion."""
        uri = self._share_uri(name, {"timeout": timeout})
        self._call("DELETE", uri, request_id=request_id)

    def get_share_acl(
        self,
        name: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Tuple[Share, List[SignedIdentifier]]:
        uri = self._share_uri(name, {"comp": "acl", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id, apply_codec=False)
        return share_from_headers(name, response.headers), signed_identifiers_from_xml(response.content)

    def set_share_acl(
        self,
        name: str,
        *,
        signed_identifiers: Optional[Iterable[SignedIdentifier]] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Tuple[Share, List[SignedIdentifier]]:
        """Replace the stored access policies of a share; an empty list removes them all."""
        signed_identifiers = list(signed_identifiers or [])
        body = signed_identifiers_to_xml(signed_identifiers) if signed_identifiers else None
        uri = self._share_uri(name, {"comp": "acl", "timeout": timeout})
        response = self._call("PUT", uri, body, request_id=request_id, apply_codec=False)
        return share_from_headers(name, response.headers), signed_identifiers

    def get_share_stats(
        self,
        name: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Share:
        """Return the share with ``usage`` set to its approximate size in GB."""
        uri = self._share_uri(name, {"comp": "stats", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        share = share_from_headers(name, response.headers)
        share.usage = share_stats_from_xml(response.content)
        return share

    # Directories

    def list_directories_and_files(
        self,
        share: str,
        directory: Optional[str] = None,
        *,
        marker: Optional[str] = None,
        max_results: Optional[int] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> EnumerationResults:
        """List one page of the directories and files directly inside ``directory``."""
        uri = self._directory_uri(share, directory, {
            "comp": "list",
            "marker": marker,
            "maxresults": max_results,
            "timeout": timeout,
        }, readable=True)

        response = self._call("GET", uri, request_id=request_id, raise_on_error=False)
        if not response.success:
            raise response.exception
        return directories_and_files_enumeration_results_from_xml(response.content)

    def create_directory(
        self,
        share: str,
        directory: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Directory:
        """Create a directory; its parent must already exist."""
        headers = compose_headers(metadata=metadata)
        uri = self._directory_uri(share, directory, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        result = directory_from_headers(directory, response.headers)
        result.metadata = metadata_as_stored(metadata)
        return result

    def get_directory_properties(
        self,
        share: str,
        directory: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Directory:
        uri = self._directory_uri(share, directory, {"timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return directory_from_headers(directory, response.headers)

    def delete_directory(
        self,
        share: str,
        directory: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        """Delete an empty directory."""
        uri = self._directory_uri(share, directory, {"timeout": timeout})
        self._call("DELETE", uri, request_id=request_id)

    def get_directory_metadata(
        self,
        share: str,
        directory: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Directory:
        uri = self._directory_uri(share, directory, {"comp": "metadata", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return directory_from_headers(directory, response.headers)

    def set_directory_metadata(
        self,
        share: str,
        directory: str,
        metadata: Dict[str, str],
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(metadata=metadata)
        uri = self._directory_uri(share, directory, {"comp": "metadata", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    # Files

    def create_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        length: int,
        *,
        content_settings: Optional[ContentSettings] = None,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        """
        Create a file of ``length`` bytes filled with zeros.
        Write content afterwards with :meth:`put_file_range`.
        """
        headers = compose_headers(
            defaults={"x-ms-type": "file", "x-ms-content-length": length},
            metadata=metadata,
        )
        add_content_settings(headers, content_settings, prefix="x-ms-")
        uri = self._file_uri(share, directory, file, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)

        result = file_from_headers(file, response.headers)
        result.properties.content_length = length
        result.metadata = metadata_as_stored(metadata)
        return result

    def get_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        start_range: Optional[int] = None,
        end_range: Optional[int] = None,
        get_content_md5: bool = False,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        """
        Download a file, or a byte range of it.

        ``File.content`` is ``str`` when the stored content type declares a
        charset and ``bytes`` otherwise. Ranged downloads are always ``bytes``
        since a range may end inside a multibyte character.
        """
        byte_range = range_header(start_range, end_range)
        headers = compose_headers(optional_fields={
            "x-ms-range": byte_range,
            "x-ms-range-get-content-md5": True if byte_range and get_content_md5 else None,
        })
        uri = self._file_uri(share, directory, file, {"timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id, apply_codec=byte_range is None)

        result = file_from_headers(file, response.headers)
        result.content = response.body
        return result

    def get_file_properties(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        uri = self._file_uri(share, directory, file, {"timeout": timeout}, readable=True)
        response = self._call("HEAD", uri, request_id=request_id)
        return file_from_headers(file, response.headers)

    def set_file_properties(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        content_settings: Optional[ContentSettings] = None,
        content_length: Optional[int] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        """
        Set system properties of a file.
        Content settings that are not sent are cleared by the service.
        """
        headers = compose_headers(optional_fields={"x-ms-content-length": content_length})
        add_content_settings(headers, content_settings, prefix="x-ms-")
        uri = self._file_uri(share, directory, file, {"comp": "properties", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return file_from_headers(file, response.headers)

    def resize_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        size: int,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        return self.set_file_properties(
            share,
            directory,
            file,
            content_length=size,
            timeout=timeout,
            request_id=request_id,
        )

    def put_file_range(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        start_range: int,
        end_range: int,
        content,
        *,
        transactional_md5: Optional[str] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        """Write ``content`` to the byte range ``[start_range, end_range]``."""
        headers = compose_headers(
            defaults={
                "x-ms-write": "update",
                "x-ms-range": range_header(start_range, end_range),
            },
            optional_fields={"Content-MD5": transactional_md5},
        )
        uri = self._file_uri(share, directory, file, {"comp": "range", "timeout": timeout})
        response = self._call("PUT", uri, content, headers, request_id=request_id, apply_codec=False)
        return file_from_headers(file, response.headers)

    def clear_file_range(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        start_range: int,
        end_range: int,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        headers = compose_headers(defaults={
            "x-ms-write": "clear",
            "x-ms-range": range_header(start_range, end_range),
        })
        uri = self._file_uri(share, directory, file, {"comp": "range", "timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return file_from_headers(file, response.headers)

    def list_file_ranges(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        start_range: Optional[int] = None,
        end_range: Optional[int] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> Tuple[File, List[ByteRange]]:
        """Return the file and its written ranges, sorted by start offset."""
        headers = compose_headers(optional_fields={"x-ms-range": range_header(start_range, end_range)})
        uri = self._file_uri(share, directory, file, {"comp": "rangelist", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, headers=headers, request_id=request_id)
        return file_from_headers(file, response.headers), range_list_from_xml(response.content)

    def get_file_metadata(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> File:
        uri = self._file_uri(share, directory, file, {"comp": "metadata", "timeout": timeout}, readable=True)
        response = self._call("GET", uri, request_id=request_id)
        return file_from_headers(file, response.headers)

    def set_file_metadata(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        metadata: Dict[str, str],
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(metadata=metadata)
        uri = self._file_uri(share, directory, file, {"comp": "metadata", "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def delete_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        uri = self._file_uri(share, directory, file, {"timeout": timeout})
        self._call("DELETE", uri, request_id=request_id)

    def copy_file_from_uri(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        source_uri: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> CopyResult:
        """
        Start a server-side copy from any readable file or blob URI.
        Poll :meth:`get_file_properties` until ``copy_status`` is no longer ``"pending"``.
        """
        headers = compose_headers(defaults={"x-ms-copy-source": source_uri}, metadata=metadata)
        uri = self._file_uri(share, directory, file, {"timeout": timeout})
        response = self._call("PUT", uri, headers=headers, request_id=request_id)
        return CopyResult(
            copy_id=response.headers.get("x-ms-copy-id"),
            copy_status=response.headers.get("x-ms-copy-status"),
        )

    def copy_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        source_share: str,
        source_directory: Optional[str],
        source_file: str,
        *,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> CopyResult:
        """Start a server-side copy of a file in the same account."""
        source_uri = build_uri(
            self.host,
            [source_share, source_directory, source_file],
            account_path=self.config.account_path(),
        )
        return self.copy_file_from_uri(
            share,
            directory,
            file,
            str(source_uri),
            metadata=metadata,
            timeout=timeout,
            request_id=request_id,
        )

    def abort_copy_file(
        self,
        share: str,
        directory: Optional[str],
        file: str,
        copy_id: str,
        *,
        timeout: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        headers = compose_headers(defaults={"x-ms-copy-action": "abort"})
        uri = self._file_uri(share, directory, file, {"comp": "copy", "copyid": copy_id, "timeout": timeout})
        self._call("PUT", uri, headers=headers, request_id=request_id)

    def generate_file_sas_url(
        self,
        share: str,
        directory: Optional[str] = None,
        file: Optional[str] = None,
        *,
        permissions: str = "r",
        start=None,
        expiry=None,
        identifier: Optional[str] = None,
        ip_range: Optional[str] = None,
        protocol: Optional[str] = None,
        content_settings: Optional[ContentSettings] = None,
    ) -> str:
        """
        Return a URL for a file (or a whole share when ``file`` is omitted)
        carrying a service SAS. Requires account key credentials.
        """
        if not self.config.access_key:
            raise InvalidOptionsError("Generating a SAS requires account key credentials.")
        settings = content_settings or ContentSettings()
        sas = SharedAccessSignature(self.config.account_name, self.config.access_key)
        path = "/".join(part for part in (share, directory, file) if part) if file else share
        token = sas.generate_service_sas_token(
            path,
            service="f",
            resource="f" if file else "s",
            permissions=permissions,
            start=start,
            expiry=expiry,
            identifier=identifier,
            ip_range=ip_range,
            protocol=protocol,
            cache_control=settings.cache_control,
            content_disposition=settings.content_disposition,
            content_encoding=settings.content_encoding,
            content_language=settings.content_language,
            content_type=settings.content_type,
        )
        segments = [share, directory, file] if file else [share]
        uri = build_uri(
            self.host,
            segments,
            None if file else {"restype": "share"},
            account_path=self.config.account_path(),
        )
        return sas.signed_uri(uri, token)
