"""
Cirrus Storage Python SDK - client for Azure-compatible blob and file storage
"""

__version__ = "1.0.0"

from .client import StorageClient
from .blob import BlobService
from .file import FileService
from .config import StorageConfig
from ._signer import (
    AnonymousSigner,
    SharedKeySigner,
    SharedKeyLiteSigner,
    SasTokenSigner,
    SharedAccessSignature,
)
from .retry import (
    RetryPolicy,
    NoRetryPolicy,
    LinearRetryPolicy,
    ExponentialRetryPolicy,
)
from .models import (
    AccessConditions,
    AccessPolicy,
    AppendPositionConditions,
    Blob,
    BlobPrefix,
    BlobProperties,
    Block,
    BlockList,
    BlockListType,
    BlockState,
    ByteRange,
    Container,
    ContainerProperties,
    ContentSettings,
    CopyResult,
    CorsRule,
    DeleteSnapshots,
    Directory,
    DirectoryProperties,
    EnumerationResults,
    File,
    FileProperties,
    GeoReplication,
    LocationMode,
    Logging,
    Metrics,
    PageRanges,
    PublicAccess,
    RetentionPolicy,
    SequenceNumberAction,
    SequenceNumberConditions,
    Share,
    ShareProperties,
    SignedIdentifier,
    SourceAccessConditions,
    StorageServiceProperties,
    StorageServiceStats,
)
from .error import (
    StorageException,
    InvalidOptionsError,
    StorageEncodingError,
    StorageParseError,
    StorageServiceError,
    AuthenticationException,
    AccessDeniedException,
    ResourceNotFoundException,
    ResourceConflictException,
    PreconditionFailedException,
)

__all__ = [
    "StorageClient",
    "BlobService",
    "FileService",
    "StorageConfig",
    "AnonymousSigner",
    "SharedKeySigner",
    "SharedKeyLiteSigner",
    "SasTokenSigner",
    "SharedAccessSignature",
    "RetryPolicy",
    "NoRetryPolicy",
    "LinearRetryPolicy",
    "ExponentialRetryPolicy",
    "AccessConditions",
    "AccessPolicy",
    "AppendPositionConditions",
    "Blob",
    "BlobPrefix",
    "BlobProperties",
    "Block",
    "BlockList",
    "BlockListType",
    "BlockState",
    "ByteRange",
    "Container",
    "ContainerProperties",
    "ContentSettings",
    "CopyResult",
    "CorsRule",
    "DeleteSnapshots",
    "Directory",
    "DirectoryProperties",
    "EnumerationResults",
    "File",
    "FileProperties",
    "GeoReplication",
    "LocationMode",
    "Logging",
    "Metrics",
    "PageRanges",
    "PublicAccess",
    "RetentionPolicy",
    "SequenceNumberAction",
    "SequenceNumberConditions",
    "Share",
    "ShareProperties",
    "SignedIdentifier",
    "SourceAccessConditions",
    "StorageServiceProperties",
    "StorageServiceStats",
    "StorageException",
    "InvalidOptionsError",
    "StorageEncodingError",
    "StorageParseError",
    "StorageServiceError",
    "AuthenticationException",
    "AccessDeniedException",
    "ResourceNotFoundException",
    "ResourceConflictException",
    "PreconditionFailedException",
]
