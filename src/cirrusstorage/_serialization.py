"""
Response materialization: headers and XML bodies into model records
"""

import base64
import binascii
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from ._headers import METADATA_PREFIX
from .error import StorageParseError
from .models import (
    NO_CONTINUATION,
    AccessPolicy,
    Blob,
    BlobPrefix,
    BlobProperties,
    Block,
    BlockList,
    BlockState,
    ByteRange,
    Container,
    ContainerProperties,
    CorsRule,
    Directory,
    DirectoryProperties,
    EnumerationResults,
    File,
    FileProperties,
    GeoReplication,
    Logging,
    MetadataValue,
    Metrics,
    PageRanges,
    RetentionPolicy,
    Share,
    ShareProperties,
    SignedIdentifier,
    StorageServiceProperties,
    StorageServiceStats,
)


# Header helpers

def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as ex:
        raise StorageParseError(f"Expected an integer, got '{value}'.") from ex


def _to_bool(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.strip().lower() == "true"


def metadata_from_headers(headers: httpx.Headers) -> Dict[str, MetadataValue]:
    """
    Collect ``x-ms-meta-*`` headers into a map keyed by the lower-cased suffix.
    A key sent more than once collapses into a list of its values.
    """
    metadata: Dict[str, MetadataValue] = {}
    for key, value in headers.multi_items():
        key = key.lower()
        if not key.startswith(METADATA_PREFIX):
            continue
        name = key[len(METADATA_PREFIX):]
        if name in metadata:
            existing = metadata[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                metadata[name] = [existing, value]
        else:
            metadata[name] = value
    return metadata


def metadata_as_stored(metadata: Optional[Mapping[str, MetadataValue]]) -> Dict[str, MetadataValue]:
    """Metadata sent on a create, keyed the way the service stores and returns it."""
    return {key.lower(): value for key, value in (metadata or {}).items()}


def container_properties_from_headers(headers: httpx.Headers) -> ContainerProperties:
    return ContainerProperties(
        last_modified=headers.get("Last-Modified"),
        etag=headers.get("ETag"),
        lease_status=headers.get("x-ms-lease-status"),
        lease_state=headers.get("x-ms-lease-state"),
        lease_duration=headers.get("x-ms-lease-duration"),
        public_access_level=headers.get("x-ms-blob-public-access"),
        has_immutability_policy=_to_bool(headers.get("x-ms-has-immutability-policy")),
        has_legal_hold=_to_bool(headers.get("x-ms-has-legal-hold")),
    )


def container_from_headers(name: str, headers: httpx.Headers) -> Container:
    properties = container_properties_from_headers(headers)
    return Container(
        name=name,
        properties=properties,
        metadata=metadata_from_headers(headers),
        public_access_level=properties.public_access_level,
    )


def blob_properties_from_headers(headers: httpx.Headers) -> BlobProperties:
    content_length = _to_int(headers.get("x-ms-blob-content-length"))
    if content_length is None:
        content_length = _to_int(headers.get("Content-Length"))
    return BlobProperties(
        last_modified=headers.get("Last-Modified"),
        etag=headers.get("ETag"),
        content_length=content_length,
        content_type=headers.get("Content-Type"),
        content_encoding=headers.get("Content-Encoding"),
        content_language=headers.get("Content-Language"),
        content_md5=headers.get("x-ms-blob-content-md5") or headers.get("Content-MD5"),
        content_disposition=headers.get("Content-Disposition"),
        cache_control=headers.get("Cache-Control"),
        blob_type=headers.get("x-ms-blob-type"),
        sequence_number=_to_int(headers.get("x-ms-blob-sequence-number")),
        append_offset=_to_int(headers.get("x-ms-blob-append-offset")),
        committed_block_count=_to_int(headers.get("x-ms-blob-committed-block-count")),
        lease_status=headers.get("x-ms-lease-status"),
        lease_state=headers.get("x-ms-lease-state"),
        lease_duration=headers.get("x-ms-lease-duration"),
        copy_id=headers.get("x-ms-copy-id"),
        copy_status=headers.get("x-ms-copy-status"),
        copy_source=headers.get("x-ms-copy-source"),
        copy_progress=headers.get("x-ms-copy-progress"),
        copy_completion_time=headers.get("x-ms-copy-completion-time"),
        copy_status_description=headers.get("x-ms-copy-status-description"),
        incremental_copy=_to_bool(headers.get("x-ms-incremental-copy")),
        copy_destination_snapshot=headers.get("x-ms-copy-destination-snapshot"),
        server_encrypted=_to_bool(
            headers.get("x-ms-server-encrypted") or headers.get("x-ms-request-server-encrypted")
        ),
        accept_ranges=headers.get("Accept-Ranges"),
        access_tier=headers.get("x-ms-access-tier"),
    )


def blob_from_headers(name: str, headers: httpx.Headers, snapshot: Optional[str] = None) -> Blob:
    return Blob(
        name=name,
        snapshot=snapshot,
        properties=blob_properties_from_headers(headers),
        metadata=metadata_from_headers(headers),
    )


def share_from_headers(name: str, headers: httpx.Headers) -> Share:
    return Share(
        name=name,
        properties=ShareProperties(
            last_modified=headers.get("Last-Modified"),
            etag=headers.get("ETag"),
            quota=_to_int(headers.get("x-ms-share-quota")),
        ),
        metadata=metadata_from_headers(headers),
    )


def directory_from_headers(name: str, headers: httpx.Headers) -> Directory:
    return Directory(
        name=name,
        properties=DirectoryProperties(
            last_modified=headers.get("Last-Modified"),
            etag=headers.get("ETag"),
            server_encrypted=_to_bool(
                headers.get("x-ms-server-encrypted") or headers.get("x-ms-request-server-encrypted")
            ),
        ),
        metadata=metadata_from_headers(headers),
    )


def file_properties_from_headers(headers: httpx.Headers) -> FileProperties:
    content_length = _to_int(headers.get("x-ms-content-length"))
    if content_length is None:
        content_length = _to_int(headers.get("Content-Length"))
    return FileProperties(
        last_modified=headers.get("Last-Modified"),
        etag=headers.get("ETag"),
        type=headers.get("x-ms-type"),
        content_length=content_length,
        content_type=headers.get("Content-Type"),
        content_encoding=headers.get("Content-Encoding"),
        content_language=headers.get("Content-Language"),
        content_md5=headers.get("x-ms-content-md5") or headers.get("Content-MD5"),
        content_disposition=headers.get("Content-Disposition"),
        cache_control=headers.get("Cache-Control"),
        range_content_md5=headers.get("Content-MD5") if headers.get("Content-Range") else None,
        copy_id=headers.get("x-ms-copy-id"),
        copy_status=headers.get("x-ms-copy-status"),
        copy_source=headers.get("x-ms-copy-source"),
        copy_progress=headers.get("x-ms-copy-progress"),
        copy_completion_time=headers.get("x-ms-copy-completion-time"),
        copy_status_description=headers.get("x-ms-copy-status-description"),
        server_encrypted=_to_bool(
            headers.get("x-ms-server-encrypted") or headers.get("x-ms-request-server-encrypted")
        ),
        accept_ranges=headers.get("Accept-Ranges"),
    )


def file_from_headers(name: str, headers: httpx.Headers) -> File:
    return File(
        name=name,
        properties=file_properties_from_headers(headers),
        metadata=metadata_from_headers(headers),
    )


# XML helpers

def _tag(node: ET.Element) -> str:
    return node.tag.split("}")[-1]


def _parse_xml(content: bytes, root_tag: str) -> ET.Element:
    if not content or not content.strip():
        raise StorageParseError(f"Expected a '{root_tag}' document but the body was empty.")
    try:
        root = ET.fromstring(content)
    except ET.ParseError as ex:
        raise StorageParseError(f"Malformed XML in response body: {ex}") from ex
    if _tag(root) != root_tag:
        raise StorageParseError(f"Expected root element '{root_tag}', got '{_tag(root)}'.")
    return root


def _child(node: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if node is None:
        return None
    for child in node:
        if _tag(child) == name:
            return child
    return None


def _children(node: Optional[ET.Element], name: str) -> List[ET.Element]:
    if node is None:
        return []
    return [child for child in node if _tag(child) == name]


def _text(node: Optional[ET.Element], name: str) -> Optional[str]:
    child = _child(node, name)
    if child is None:
        return None
    return child.text or ""


def _metadata_from_xml(node: Optional[ET.Element]) -> Dict[str, MetadataValue]:
    metadata: Dict[str, MetadataValue] = {}
    if node is None:
        return metadata
    for child in node:
        metadata[_tag(child).lower()] = child.text or ""
    return metadata


def _enumeration(root: ET.Element, items: list) -> EnumerationResults:
    return EnumerationResults(
        items=items,
        continuation_token=_text(root, "NextMarker") or NO_CONTINUATION,
    )


def _sub(parent: ET.Element, tag: str, text=None) -> ET.Element:
    element = ET.SubElement(parent, tag)
    if text is not None:
        element.text = str(text)
    return element


def _to_xml(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", method="xml")


# Enumerations

def container_enumeration_results_from_xml(content: bytes) -> EnumerationResults:
    root = _parse_xml(content, "EnumerationResults")
    containers = []
    for node in _children(_child(root, "Containers"), "Container"):
        props = _child(node, "Properties")
        properties = ContainerProperties(
            last_modified=_text(props, "Last-Modified"),
            etag=_text(props, "Etag"),
            lease_status=_text(props, "LeaseStatus"),
            lease_state=_text(props, "LeaseState"),
            lease_duration=_text(props, "LeaseDuration"),
            public_access_level=_text(props, "PublicAccess"),
            has_immutability_policy=_to_bool(_text(props, "HasImmutabilityPolicy")),
            has_legal_hold=_to_bool(_text(props, "HasLegalHold")),
        )
        containers.append(Container(
            name=_text(node, "Name") or "",
            properties=properties,
            metadata=_metadata_from_xml(_child(node, "Metadata")),
            public_access_level=properties.public_access_level,
        ))
    return _enumeration(root, containers)


def blob_enumeration_results_from_xml(content: bytes) -> EnumerationResults:
    root = _parse_xml(content, "EnumerationResults")
    blobs_node = _child(root, "Blobs")

    blobs = []
    for node in _children(blobs_node, "Blob"):
        props = _child(node, "Properties")
        blobs.append(Blob(
            name=_text(node, "Name") or "",
            snapshot=_text(node, "Snapshot"),
            properties=BlobProperties(
                last_modified=_text(props, "Last-Modified"),
                etag=_text(props, "Etag"),
                content_length=_to_int(_text(props, "Content-Length")),
                content_type=_text(props, "Content-Type"),
                content_encoding=_text(props, "Content-Encoding"),
                content_language=_text(props, "Content-Language"),
                content_md5=_text(props, "Content-MD5"),
                content_disposition=_text(props, "Content-Disposition"),
                cache_control=_text(props, "Cache-Control"),
                blob_type=_text(props, "BlobType"),
                sequence_number=_to_int(_text(props, "x-ms-blob-sequence-number")),
                lease_status=_text(props, "LeaseStatus"),
                lease_state=_text(props, "LeaseState"),
                lease_duration=_text(props, "LeaseDuration"),
                copy_id=_text(props, "CopyId"),
                copy_status=_text(props, "CopyStatus"),
                copy_source=_text(props, "CopySource"),
                copy_progress=_text(props, "CopyProgress"),
                copy_completion_time=_text(props, "CopyCompletionTime"),
                copy_status_description=_text(props, "CopyStatusDescription"),
                incremental_copy=_to_bool(_text(props, "IncrementalCopy")),
                copy_destination_snapshot=_text(props, "CopyDestinationSnapshot"),
                server_encrypted=_to_bool(_text(props, "ServerEncrypted")),
                access_tier=_text(props, "AccessTier"),
            ),
            metadata=_metadata_from_xml(_child(node, "Metadata")),
        ))

    results = _enumeration(root, blobs)
    results.common_prefixes = [
        BlobPrefix(name=_text(node, "Name") or "")
        for node in _children(blobs_node, "BlobPrefix")
    ]
    return results


def share_enumeration_results_from_xml(content: bytes) -> EnumerationResults:
    root = _parse_xml(content, "EnumerationResults")
    shares = []
    for node in _children(_child(root, "Shares"), "Share"):
        props = _child(node, "Properties")
        shares.append(Share(
            name=_text(node, "Name") or "",
            properties=ShareProperties(
                last_modified=_text(props, "Last-Modified"),
                etag=_text(props, "Etag"),
                quota=_to_int(_text(props, "Quota")),
            ),
            metadata=_metadata_from_xml(_child(node, "Metadata")),
        ))
    return _enumeration(root, shares)


def directories_and_files_enumeration_results_from_xml(content: bytes) -> EnumerationResults:
    """Entries keep the server's order; directories and files are interleaved."""
    root = _parse_xml(content, "EnumerationResults")
    entries = []
    entries_node = _child(root, "Entries")
    for node in (entries_node if entries_node is not None else []):
        tag = _tag(node)
        if tag == "Directory":
            entries.append(Directory(name=_text(node, "Name") or ""))
        elif tag == "File":
            props = _child(node, "Properties")
            entries.append(File(
                name=_text(node, "Name") or "",
                properties=FileProperties(content_length=_to_int(_text(props, "Content-Length"))),
            ))
    return _enumeration(root, entries)


# Access policies

def signed_identifiers_from_xml(content: bytes) -> List[SignedIdentifier]:
    if not content or not content.strip():
        return []
    root = _parse_xml(content, "SignedIdentifiers")
    identifiers = []
    for node in _children(root, "SignedIdentifier"):
        policy = _child(node, "AccessPolicy")
        identifiers.append(SignedIdentifier(
            id=_text(node, "Id") or "",
            access_policy=AccessPolicy(
                start=_text(policy, "Start"),
                expiry=_text(policy, "Expiry"),
                permission=_text(policy, "Permission"),
            ),
        ))
    return identifiers


def signed_identifiers_to_xml(identifiers: Iterable[SignedIdentifier]) -> bytes:
    root = ET.Element("SignedIdentifiers")
    for identifier in identifiers:
        node = _sub(root, "SignedIdentifier")
        _sub(node, "Id", identifier.id)
        policy = _sub(node, "AccessPolicy")
        _sub(policy, "Start", identifier.access_policy.start or "")
        _sub(policy, "Expiry", identifier.access_policy.expiry or "")
        _sub(policy, "Permission", identifier.access_policy.permission or "")
    return _to_xml(root)


# Blocks and ranges

def encode_block_id(block_id: str) -> str:
    return base64.b64encode(block_id.encode("utf-8")).decode("ascii")


def decode_block_id(encoded: str) -> str:
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as ex:
        raise StorageParseError(f"Block id '{encoded}' is not base64 encoded UTF-8.") from ex


def block_list_to_xml(blocks: Iterable[Tuple[str, BlockState]]) -> bytes:
    root = ET.Element("BlockList")
    for block_id, state in blocks:
        _sub(root, BlockState(state).value, encode_block_id(block_id))
    return _to_xml(root)


def block_list_from_xml(content: bytes) -> BlockList:
    root = _parse_xml(content, "BlockList")

    def blocks(container: str, state: BlockState) -> List[Block]:
        return [
            Block(
                name=decode_block_id(_text(node, "Name") or ""),
                size=_to_int(_text(node, "Size")),
                state=state,
            )
            for node in _children(_child(root, container), "Block")
        ]

    return BlockList(
        committed_blocks=blocks("CommittedBlocks", BlockState.COMMITTED),
        uncommitted_blocks=blocks("UncommittedBlocks", BlockState.UNCOMMITTED),
    )


def _sorted_ranges(ranges: List[ByteRange]) -> List[ByteRange]:
    """Sort ascending by start and reject overlapping extents."""
    ordered = sorted(ranges)
    for previous, current in zip(ordered, ordered[1:]):
        if current.start <= previous.end:
            raise StorageParseError(
                f"Overlapping ranges in response: {previous.start}-{previous.end} and {current.start}-{current.end}."
            )
    return ordered


def _ranges(nodes: List[ET.Element]) -> List[ByteRange]:
    ranges = []
    for node in nodes:
        start = _to_int(_text(node, "Start"))
        end = _to_int(_text(node, "End"))
        if start is None or end is None:
            raise StorageParseError("Range element is missing Start or End.")
        ranges.append(ByteRange(start, end))
    return _sorted_ranges(ranges)


def page_list_from_xml(content: bytes) -> PageRanges:
    root = _parse_xml(content, "PageList")
    return PageRanges(
        page_ranges=_ranges(_children(root, "PageRange")),
        clear_ranges=_ranges(_children(root, "ClearRange")),
    )


def range_list_from_xml(content: bytes) -> List[ByteRange]:
    root = _parse_xml(content, "Ranges")
    return _ranges(_children(root, "Range"))


def share_stats_from_xml(content: bytes) -> Optional[int]:
    root = _parse_xml(content, "ShareStats")
    return _to_int(_text(root, "ShareUsage"))


# Service properties

def _retention_policy_from_xml(node: Optional[ET.Element]) -> RetentionPolicy:
    return RetentionPolicy(
        enabled=bool(_to_bool(_text(node, "Enabled"))),
        days=_to_int(_text(node, "Days")),
    )


def _metrics_from_xml(node: Optional[ET.Element]) -> Optional[Metrics]:
    if node is None:
        return None
    return Metrics(
        version=_text(node, "Version") or "1.0",
        enabled=bool(_to_bool(_text(node, "Enabled"))),
        include_apis=_to_bool(_text(node, "IncludeAPIs")),
        retention_policy=_retention_policy_from_xml(_child(node, "RetentionPolicy")),
    )


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def service_properties_from_xml(content: bytes) -> StorageServiceProperties:
    root = _parse_xml(content, "StorageServiceProperties")

    logging_node = _child(root, "Logging")
    logging = None
    if logging_node is not None:
        logging = Logging(
            version=_text(logging_node, "Version") or "1.0",
            delete=bool(_to_bool(_text(logging_node, "Delete"))),
            read=bool(_to_bool(_text(logging_node, "Read"))),
            write=bool(_to_bool(_text(logging_node, "Write"))),
            retention_policy=_retention_policy_from_xml(_child(logging_node, "RetentionPolicy")),
        )

    cors = [
        CorsRule(
            allowed_origins=_split_list(_text(node, "AllowedOrigins")),
            allowed_methods=_split_list(_text(node, "AllowedMethods")),
            max_age_in_seconds=_to_int(_text(node, "MaxAgeInSeconds")) or 0,
            exposed_headers=_split_list(_text(node, "ExposedHeaders")),
            allowed_headers=_split_list(_text(node, "AllowedHeaders")),
        )
        for node in _children(_child(root, "Cors"), "CorsRule")
    ]

    return StorageServiceProperties(
        logging=logging,
        hour_metrics=_metrics_from_xml(_child(root, "HourMetrics")),
        minute_metrics=_metrics_from_xml(_child(root, "MinuteMetrics")),
        cors=cors,
        default_service_version=_text(root, "DefaultServiceVersion"),
    )


def service_stats_from_xml(content: bytes) -> StorageServiceStats:
    root = _parse_xml(content, "StorageServiceStats")
    node = _child(root, "GeoReplication")
    if node is None:
        return StorageServiceStats()
    return StorageServiceStats(
        geo_replication=GeoReplication(
            status=_text(node, "Status"),
            last_sync_time=_text(node, "LastSyncTime") or None,
        )
    )


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _retention_policy_to_xml(parent: ET.Element, policy: RetentionPolicy) -> None:
    node = _sub(parent, "RetentionPolicy")
    _sub(node, "Enabled", _bool_text(policy.enabled))
    if policy.enabled and policy.days is not None:
        _sub(node, "Days", policy.days)


def _metrics_to_xml(parent: ET.Element, tag: str, metrics: Metrics) -> None:
    node = _sub(parent, tag)
    _sub(node, "Version", metrics.version)
    _sub(node, "Enabled", _bool_text(metrics.enabled))
    if metrics.enabled and metrics.include_apis is not None:
        _sub(node, "IncludeAPIs", _bool_text(metrics.include_apis))
    _retention_policy_to_xml(node, metrics.retention_policy)


def service_properties_to_xml(properties: StorageServiceProperties) -> bytes:
    root = ET.Element("StorageServiceProperties")

    if properties.logging is not None:
        node = _sub(root, "Logging")
        _sub(node, "Version", properties.logging.version)
        _sub(node, "Delete", _bool_text(properties.logging.delete))
        _sub(node, "Read", _bool_text(properties.logging.read))
        _sub(node, "Write", _bool_text(properties.logging.write))
        _retention_policy_to_xml(node, properties.logging.retention_policy)

    if properties.hour_metrics is not None:
        _metrics_to_xml(root, "HourMetrics", properties.hour_metrics)
    if properties.minute_metrics is not None:
        _metrics_to_xml(root, "MinuteMetrics", properties.minute_metrics)

    cors = _sub(root, "Cors")
    for rule in properties.cors:
        node = _sub(cors, "CorsRule")
        _sub(node, "AllowedOrigins", ",".join(rule.allowed_origins))
        _sub(node, "AllowedMethods", ",".join(rule.allowed_methods))
        _sub(node, "MaxAgeInSeconds", rule.max_age_in_seconds)
        _sub(node, "ExposedHeaders", ",".join(rule.exposed_headers))
        _sub(node, "AllowedHeaders", ",".join(rule.allowed_headers))

    if properties.default_service_version is not None:
        _sub(root, "DefaultServiceVersion", properties.default_service_version)

    return _to_xml(root)
