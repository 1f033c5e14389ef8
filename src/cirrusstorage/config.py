"""
Client configuration for Cirrus Storage SDK
"""

import os
import re
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional

from ._signer import AnonymousSigner, SasTokenSigner, SharedKeySigner
from .error import InvalidOptionsError


BLOB_SERVICE = "blob"
FILE_SERVICE = "file"

DEFAULT_PROTOCOL = "https"
DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"

DEVSTORE_STORAGE_ACCOUNT = "devstoreaccount1"
DEVSTORE_STORAGE_ACCESS_KEY = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=="
)
DEV_STORE_URI = "http://127.0.0.1"
DEVSTORE_PORTS = {BLOB_SERVICE: 10000, FILE_SERVICE: 10003}

CONNECTION_STRING_KEYS = {
    "UseDevelopmentStorage": "use_development_storage",
    "DevelopmentStorageProxyUri": "development_storage_proxy_uri",
    "DefaultEndpointsProtocol": "default_endpoints_protocol",
    "AccountName": "account_name",
    "AccountKey": "access_key",
    "BlobEndpoint": "blob_host",
    "FileEndpoint": "file_host",
    "SharedAccessSignature": "sas_token",
    "EndpointSuffix": "dns_suffix",
}

ENVIRONMENT_VARIABLES = {
    "EMULATED": "use_development_storage",
    "AZURE_STORAGE_ACCOUNT": "account_name",
    "AZURE_STORAGE_ACCESS_KEY": "access_key",
    "AZURE_STORAGE_BLOB_HOST": "blob_host",
    "AZURE_STORAGE_FILE_HOST": "file_host",
    "AZURE_STORAGE_SAS_TOKEN": "sas_token",
    "AZURE_STORAGE_DNS_SUFFIX": "dns_suffix",
}

_BASE64 = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=|[A-Za-z0-9+/]{4})$")


def _is_true(value) -> bool:
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


@dataclass(frozen=True)
class StorageConfig:
    """
    Immutable settings for one storage account.

    Example:
        config = StorageConfig(account_name="myaccount", access_key="<base64 key>")
        config = StorageConfig.from_connection_string(
            "DefaultEndpointsProtocol=https;AccountName=myaccount;AccountKey=..."
        )
        config = StorageConfig.development()
    """

    account_name: Optional[str] = None
    access_key: Optional[str] = None
    sas_token: Optional[str] = None
    blob_host: Optional[str] = None
    file_host: Optional[str] = None
    dns_suffix: str = DEFAULT_ENDPOINT_SUFFIX
    default_endpoints_protocol: str = DEFAULT_PROTOCOL
    use_path_style_uri: bool = False
    use_development_storage: bool = False
    development_storage_proxy_uri: Optional[str] = None
    user_agent_prefix: Optional[str] = None
    request_timeout: float = 30
    max_retries: int = 3
    anonymous: bool = False

    def __post_init__(self):
        if self.use_development_storage:
            proxy_uri = (self.development_storage_proxy_uri or DEV_STORE_URI).rstrip("/")
            if self.account_name is None:
                object.__setattr__(self, "account_name", DEVSTORE_STORAGE_ACCOUNT)
            if self.access_key is None and self.sas_token is None:
                object.__setattr__(self, "access_key", DEVSTORE_STORAGE_ACCESS_KEY)
            object.__setattr__(self, "blob_host", self.blob_host or f"{proxy_uri}:{DEVSTORE_PORTS[BLOB_SERVICE]}")
            object.__setattr__(self, "file_host", self.file_host or f"{proxy_uri}:{DEVSTORE_PORTS[FILE_SERVICE]}")
            object.__setattr__(self, "use_path_style_uri", True)

        for name in ("blob_host", "file_host"):
            value = getattr(self, name)
            if value:
                object.__setattr__(self, name, self._normalize_host(value))

        if self.sas_token:
            object.__setattr__(self, "sas_token", self.sas_token.lstrip("?"))

        self.validate()

    def _normalize_host(self, host: str) -> str:
        host = host.rstrip("/")
        if not re.match(r"^https?://", host):
            host = f"{self.default_endpoints_protocol}://{host}"
        return host

    def validate(self) -> None:
        """Raise InvalidOptionsError unless the settings form a usable combination."""
        if self.default_endpoints_protocol.lower() not in ("http", "https"):
            raise InvalidOptionsError(
                f"default_endpoints_protocol must be 'http' or 'https', got '{self.default_endpoints_protocol}'."
            )
        if self.access_key is not None and not _BASE64.match(self.access_key):
            raise InvalidOptionsError("access_key is not a valid base64 string.")
        if self.access_key and self.sas_token:
            raise InvalidOptionsError("Only one of access_key and sas_token can be provided.")

        has_host = bool(self.blob_host or self.file_host)
        has_credentials = bool(self.access_key or self.sas_token)
        if self.access_key and not self.account_name:
            raise InvalidOptionsError("account_name is required when access_key is provided.")
        if self.account_name and not (has_credentials or self.anonymous):
            raise InvalidOptionsError(
                "account_name requires access_key or sas_token; pass anonymous=True for public access."
            )
        if self.account_name or has_host:
            return
        raise InvalidOptionsError(
            "Options provided are not a valid set: provide account_name with access_key or sas_token, "
            "an explicit blob_host/file_host, or use_development_storage."
        )

    @classmethod
    def from_connection_string(cls, connection_string: str, **overrides) -> "StorageConfig":
        """Parse a ``Key=Value;Key=Value`` connection string."""
        options: Dict[str, object] = {}
        for part in connection_string.split(";"):
            part = part.strip()
            if not part:
                continue
            key, sep, value = part.partition("=")
            if not sep:
                raise InvalidOptionsError(f"Malformed connection string segment '{part}'.")
            field_name = CONNECTION_STRING_KEYS.get(key.strip())
            if field_name is None:
                raise InvalidOptionsError(f"'{key.strip()}' is not a recognized connection string key.")
            options[field_name] = value.strip()
        options.update(overrides)
        return cls._from_options(options)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "StorageConfig":
        """
        Build settings from ``AZURE_STORAGE_*`` environment variables.
        ``AZURE_STORAGE_CONNECTION_STRING`` takes precedence when present.
        """
        environ = os.environ if environ is None else environ
        connection_string = environ.get("AZURE_STORAGE_CONNECTION_STRING")
        if connection_string:
            return cls.from_connection_string(connection_string, **overrides)

        options: Dict[str, object] = {
            field_name: environ[variable]
            for variable, field_name in ENVIRONMENT_VARIABLES.items()
            if environ.get(variable)
        }
        options.update(overrides)
        return cls._from_options(options)

    @classmethod
    def development(cls, proxy_uri: Optional[str] = None, **overrides) -> "StorageConfig":
        """Settings for the local storage emulator."""
        return cls(use_development_storage=True, development_storage_proxy_uri=proxy_uri, **overrides)

    @classmethod
    def _from_options(cls, options: Dict[str, object]) -> "StorageConfig":
        if "use_development_storage" in options:
            if not _is_true(options.pop("use_development_storage")):
                raise InvalidOptionsError("use_development_storage must be 'true' when provided.")
            return cls.development(
                options.pop("development_storage_proxy_uri", None),
                **options,
            )
        if "dns_suffix" in options and not options["dns_suffix"]:
            options.pop("dns_suffix")
        return cls(**options)

    def with_options(self, **changes) -> "StorageConfig":
        return replace(self, **changes)

    def primary_host(self, service: str) -> str:
        """Endpoint of ``service`` (``"blob"`` or ``"file"``) in the primary region."""
        explicit = self.blob_host if service == BLOB_SERVICE else self.file_host
        if explicit:
            return explicit
        if not self.account_name:
            raise InvalidOptionsError(f"No {service} endpoint configured and no account_name to derive one from.")
        return f"{self.default_endpoints_protocol}://{self.account_name}.{service}.{self.dns_suffix}"

    def secondary_host(self, service: str) -> str:
        """Endpoint of ``service`` in the read-only secondary region."""
        host = self.primary_host(service)
        if self.use_path_style_uri:
            return host
        if not self.account_name or f"//{self.account_name}." not in host:
            raise InvalidOptionsError(f"Cannot derive a secondary {service} endpoint from '{host}'.")
        return host.replace(f"//{self.account_name}.", f"//{self.account_name}-secondary.", 1)

    def account_path(self, secondary: bool = False) -> Optional[str]:
        """Account name prefixed to request paths when path-style URIs are used."""
        if not self.use_path_style_uri:
            return None
        return f"{self.account_name}-secondary" if secondary else self.account_name

    def create_signer(self):
        """Signer matching the configured credentials."""
        if self.anonymous:
            return AnonymousSigner()
        if self.sas_token:
            return SasTokenSigner(self.sas_token)
        if self.access_key:
            return SharedKeySigner(self.account_name, self.access_key)
        return AnonymousSigner()
