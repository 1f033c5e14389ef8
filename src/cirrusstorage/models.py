"""
Data models for Cirrus Storage SDK
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Generic, Iterator, List, NamedTuple, Optional, TypeVar, Union

import httpx


NO_CONTINUATION = ""

MetadataValue = Union[str, List[str]]


class PublicAccess(str, Enum):
    """Anonymous read access level of a container."""
    CONTAINER = "container"
    BLOB = "blob"


class BlockListType(str, Enum):
    ALL = "all"
    COMMITTED = "committed"
    UNCOMMITTED = "uncommitted"


class BlockState(str, Enum):
    """Which block list a block id is committed from."""
    LATEST = "Latest"
    COMMITTED = "Committed"
    UNCOMMITTED = "Uncommitted"


class SequenceNumberAction(str, Enum):
    MAX = "max"
    UPDATE = "update"
    INCREMENT = "increment"


class DeleteSnapshots(str, Enum):
    INCLUDE = "include"
    ONLY = "only"


class LocationMode(str, Enum):
    PRIMARY_ONLY = "primary_only"
    SECONDARY_ONLY = "secondary_only"


class ByteRange(NamedTuple):
    """Inclusive byte extent ``[start, end]``."""
    start: int
    end: int


@dataclass
class StorageResponse:
    """Represents a dispatched request's response."""
    status_code: int
    headers: httpx.Headers
    content: bytes = b""
    body: Union[str, bytes, None] = None
    uri: Optional[str] = None
    exception: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 400


# Conditional header groups

@dataclass
class AccessConditions:
    """Conditions evaluated against the destination resource."""
    if_modified_since: Optional[datetime] = None
    if_unmodified_since: Optional[datetime] = None
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None


@dataclass
class SourceAccessConditions:
    """Conditions evaluated against the copy source."""
    if_modified_since: Optional[datetime] = None
    if_unmodified_since: Optional[datetime] = None
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None


@dataclass
class SequenceNumberConditions:
    """Page blob sequence number comparisons."""
    if_sequence_number_le: Optional[int] = None
    if_sequence_number_lt: Optional[int] = None
    if_sequence_number_eq: Optional[int] = None


@dataclass
class AppendPositionConditions:
    """Append blob size and offset preconditions."""
    max_size: Optional[int] = None
    append_position: Optional[int] = None


@dataclass
class ContentSettings:
    """Content-* properties stored with a blob or file."""
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_md5: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None


# Entity records

@dataclass
class ContainerProperties:
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    lease_status: Optional[str] = None
    lease_state: Optional[str] = None
    lease_duration: Optional[str] = None
    public_access_level: Optional[str] = None
    has_immutability_policy: Optional[bool] = None
    has_legal_hold: Optional[bool] = None


@dataclass
class Container:
    """Represents a blob container."""
    name: str
    properties: ContainerProperties = field(default_factory=ContainerProperties)
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)
    public_access_level: Optional[str] = None


@dataclass
class BlobProperties:
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_md5: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    blob_type: Optional[str] = None
    sequence_number: Optional[int] = None
    append_offset: Optional[int] = None
    committed_block_count: Optional[int] = None
    lease_status: Optional[str] = None
    lease_state: Optional[str] = None
    lease_duration: Optional[str] = None
    copy_id: Optional[str] = None
    copy_status: Optional[str] = None
    copy_source: Optional[str] = None
    copy_progress: Optional[str] = None
    copy_completion_time: Optional[str] = None
    copy_status_description: Optional[str] = None
    incremental_copy: Optional[bool] = None
    copy_destination_snapshot: Optional[str] = None
    server_encrypted: Optional[bool] = None
    accept_ranges: Optional[str] = None
    access_tier: Optional[str] = None


@dataclass
class Blob:
    """Represents a blob, optionally carrying its downloaded content."""
    name: str
    snapshot: Optional[str] = None
    properties: BlobProperties = field(default_factory=BlobProperties)
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)
    content: Union[str, bytes, None] = None


@dataclass
class BlobPrefix:
    """A virtual directory returned by delimiter listings."""
    name: str


@dataclass
class Block:
    name: str
    size: Optional[int] = None
    state: Optional[BlockState] = None


@dataclass
class BlockList:
    committed_blocks: List[Block] = field(default_factory=list)
    uncommitted_blocks: List[Block] = field(default_factory=list)


@dataclass
class PageRanges:
    """Populated and cleared extents of a page blob."""
    page_ranges: List[ByteRange] = field(default_factory=list)
    clear_ranges: List[ByteRange] = field(default_factory=list)


@dataclass
class ShareProperties:
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    quota: Optional[int] = None


@dataclass
class Share:
    """Represents a file share."""
    name: str
    properties: ShareProperties = field(default_factory=ShareProperties)
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)
    usage: Optional[int] = None


@dataclass
class DirectoryProperties:
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    server_encrypted: Optional[bool] = None


@dataclass
class Directory:
    name: str
    properties: DirectoryProperties = field(default_factory=DirectoryProperties)
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)


@dataclass
class FileProperties:
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    type: Optional[str] = None
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_md5: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    range_content_md5: Optional[str] = None
    copy_id: Optional[str] = None
    copy_status: Optional[str] = None
    copy_source: Optional[str] = None
    copy_progress: Optional[str] = None
    copy_completion_time: Optional[str] = None
    copy_status_description: Optional[str] = None
    server_encrypted: Optional[bool] = None
    accept_ranges: Optional[str] = None


@dataclass
class File:
    """Represents a file in a share, optionally carrying its content."""
    name: str
    properties: FileProperties = field(default_factory=FileProperties)
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)
    content: Union[str, bytes, None] = None


@dataclass
class CopyResult:
    """Server-side copy handle; poll the destination's properties until complete."""
    copy_id: Optional[str] = None
    copy_status: Optional[str] = None


# Access policies

@dataclass
class AccessPolicy:
    start: Optional[str] = None
    expiry: Optional[str] = None
    permission: Optional[str] = None


@dataclass
class SignedIdentifier:
    """A stored access policy."""
    id: str
    access_policy: AccessPolicy = field(default_factory=AccessPolicy)


# Service properties

@dataclass
class RetentionPolicy:
    enabled: bool = False
    days: Optional[int] = None


@dataclass
class Logging:
    version: str = "1.0"
    delete: bool = False
    read: bool = False
    write: bool = False
    retention_policy: RetentionPolicy = field(default_factory=RetentionPolicy)


@dataclass
class Metrics:
    version: str = "1.0"
    enabled: bool = False
    include_apis: Optional[bool] = None
    retention_policy: RetentionPolicy = field(default_factory=RetentionPolicy)


@dataclass
class CorsRule:
    allowed_origins: List[str] = field(default_factory=list)
    allowed_methods: List[str] = field(default_factory=list)
    max_age_in_seconds: int = 0
    exposed_headers: List[str] = field(default_factory=list)
    allowed_headers: List[str] = field(default_factory=list)


@dataclass
class StorageServiceProperties:
    """Account-level logging, metrics and CORS settings of a service."""
    logging: Optional[Logging] = None
    hour_metrics: Optional[Metrics] = None
    minute_metrics: Optional[Metrics] = None
    cors: List[CorsRule] = field(default_factory=list)
    default_service_version: Optional[str] = None


@dataclass
class GeoReplication:
    status: Optional[str] = None
    last_sync_time: Optional[str] = None


@dataclass
class StorageServiceStats:
    """
    Replication state of the secondary location.

    ``status`` is ``live``, ``bootstrap`` or ``unavailable``; ``last_sync_time``
    is the RFC 1123 time up to which primary writes are readable from the
    secondary, or None when no sync has completed.
    """
    geo_replication: Optional[GeoReplication] = None


T = TypeVar("T")


@dataclass
class EnumerationResults(Generic[T]):
    """
    One page of a listing.

    ``continuation_token`` is :data:`NO_CONTINUATION` once the listing is
    exhausted; otherwise pass it back as ``marker`` to fetch the next page.
    """
    items: List[T] = field(default_factory=list)
    continuation_token: str = NO_CONTINUATION
    common_prefixes: List[BlobPrefix] = field(default_factory=list)

    @property
    def has_more(self) -> bool:
        return self.continuation_token != NO_CONTINUATION

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]
