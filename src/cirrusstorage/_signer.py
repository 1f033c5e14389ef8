"""
Shared Key and Shared Access Signature signers for Cirrus Storage SDK
"""

import base64
import binascii
import hashlib
import hmac
import logging
import re
from collections import defaultdict
from datetime import datetime, timedelta, UTC
from typing import Dict, Optional, Union
from urllib.parse import urlencode

import httpx

from .error import InvalidOptionsError


SAS_API_VERSION = "2018-11-09"

_WHITESPACE = re.compile(r"\s+")

logger = logging.getLogger(__name__)


def _decode_key(access_key: Optional[str]) -> bytes:
    if not access_key:
        raise InvalidOptionsError("Signing key must be provided.")
    try:
        return base64.b64decode(access_key, validate=True)
    except (binascii.Error, ValueError) as ex:
        raise InvalidOptionsError(f"Signing key is not valid base64: {ex}") from ex


def _hmac_sha256(key: bytes, string_to_sign: str) -> str:
    digest = hmac.new(key, string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class AnonymousSigner:
    """
    Leaves requests unsigned.
    Only publicly readable containers and blobs accept anonymous requests.
    """

    def sign_request(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> httpx.URL:
        return url


class SharedKeySigner:
    """
    Signs requests with the account key using the SharedKey scheme.
    """

    name = "SharedKey"

    def __init__(self, account_name: str, access_key: str):
        if not account_name:
            raise InvalidOptionsError("Account name must be provided for Shared Key signing.")
        self.account_name = account_name
        self._key = _decode_key(access_key)

    def sign(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> str:
        """Return ``"<account>:<signature>"`` for the request."""
        string_to_sign = self.string_to_sign(method, url, headers)
        return f"{self.account_name}:{_hmac_sha256(self._key, string_to_sign)}"

    def sign_request(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> httpx.URL:
        """Add the Authorization header in place and return the unchanged URL."""
        headers["Authorization"] = f"{self.name} {self.sign(method, url, headers)}"
        return url

    def string_to_sign(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> str:
        values = httpx.Headers(headers)
        return "\n".join([
            method.upper(),
            values.get("Content-Encoding", ""),
            values.get("Content-Language", ""),
            # A zero Content-Length is signed as empty
            values.get("Content-Length", "").lstrip("0"),
            values.get("Content-MD5", ""),
            values.get("Content-Type", ""),
            values.get("Date", ""),
            values.get("If-Modified-Since", ""),
            values.get("If-Match", ""),
            values.get("If-None-Match", ""),
            values.get("If-Unmodified-Since", ""),
            values.get("Range", ""),
            self.canonicalized_headers(headers),
            self.canonicalized_resource(url),
        ])

    def canonicalized_headers(self, headers: Dict[str, str]) -> str:
        """Render every ``x-ms-*`` header as sorted ``name:value`` lines."""
        canonical = sorted(
            (key.lower(), _WHITESPACE.sub(" ", str(value)))
            for key, value in headers.items()
            if key.lower().startswith("x-ms-")
        )
        return "\n".join(f"{k}:{v}" for k, v in canonical)

    def canonicalized_resource(self, url: httpx.URL) -> str:
        """
        Render ``/<account><path>`` followed by one ``name:v1,v2`` line per
        query parameter, names lower-cased and sorted.
        """
        path = url.raw_path.split(b"?", 1)[0].decode("ascii") or "/"
        lines = [f"/{self.account_name}{path}"]

        params = defaultdict(list)
        for key, value in url.params.multi_items():
            params[key.lower()].append(value.strip())
        for key in sorted(params):
            lines.append(f"{key}:{','.join(sorted(params[key]))}")
        return "\n".join(lines)


class SharedKeyLiteSigner(SharedKeySigner):
    """
    Signs requests using the SharedKeyLite scheme.
    The request must carry a Date header.
    """

    name = "SharedKeyLite"

    def string_to_sign(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> str:
        values = httpx.Headers(headers)
        if "Date" not in values:
            raise InvalidOptionsError("Headers must include Date for SharedKeyLite signing.")
        return "\n".join([
            method.upper(),
            values.get("Content-MD5", ""),
            values.get("Content-Type", ""),
            values["Date"],
            self.canonicalized_headers(headers),
            self.canonicalized_resource(url),
        ])


class SasTokenSigner:
    """
    Authorizes requests by appending a pre-generated SAS token to the query string.
    """

    def __init__(self, sas_token: str):
        if not sas_token:
            raise InvalidOptionsError("SAS token must be provided.")
        self.sas_token = sas_token.lstrip("?")

    def sign_request(self, method: str, url: httpx.URL, headers: Dict[str, str]) -> httpx.URL:
        return url.copy_merge_params(httpx.QueryParams(self.sas_token))


def _format_time(value: Union[datetime, str, None]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class SharedAccessSignature:
    """
    Generates service and account Shared Access Signature tokens.

    Example:
        sas = SharedAccessSignature("myaccount", access_key)
        token = sas.generate_service_sas_token(
            "photos/cat.jpg",
            service="b",
            resource="b",
            permissions="r",
            expiry=datetime.now(UTC) + timedelta(hours=1),
        )
        url = sas.signed_uri("https://myaccount.blob.core.windows.net/photos/cat.jpg", token)
    """

    _SERVICES = {"b": "blob", "f": "file"}
    _RESOURCES = {"b": ("b", "c"), "f": ("f", "s")}

    def __init__(self, account_name: str, access_key: str, api_version: str = SAS_API_VERSION):
        self.account_name = account_name
        self.api_version = api_version
        self._key = _decode_key(access_key)

    def generate_service_sas_token(
        self,
        path: str,
        service: str = "b",
        resource: str = "b",
        permissions: str = "r",
        start: Union[datetime, str, None] = None,
        expiry: Union[datetime, str, None] = None,
        identifier: Optional[str] = None,
        ip_range: Optional[str] = None,
        protocol: Optional[str] = None,
        snapshot: Optional[str] = None,
        cache_control: Optional[str] = None,
        content_disposition: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_language: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Generate a service SAS token for a blob, container, file or share.

        Args:
            path: Resource path below the account, e.g. ``"container/blob"``
            service: ``"b"`` for blob or ``"f"`` for file
            resource: ``"b"``/``"c"`` for blob service, ``"f"``/``"s"`` for file service
            permissions: Permission letters, e.g. ``"rw"``
            expiry: Defaults to 30 minutes from now
        """
        if service not in self._SERVICES:
            raise InvalidOptionsError(f"Unsupported service '{service}' for service SAS.")
        if resource not in self._RESOURCES[service]:
            raise InvalidOptionsError(f"Unsupported resource '{resource}' for service '{service}'.")

        if expiry is None and identifier is None:
            expiry = datetime.now(UTC) + timedelta(minutes=30)

        params = {
            "sv": self.api_version,
            "sr": resource,
            "sp": permissions,
            "st": _format_time(start),
            "se": _format_time(expiry),
            "si": identifier,
            "sip": ip_range,
            "spr": protocol,
            "snapshot": snapshot,
            "rscc": cache_control,
            "rscd": content_disposition,
            "rsce": content_encoding,
            "rscl": content_language,
            "rsct": content_type,
        }

        canonical_resource = f"/{self._SERVICES[service]}/{self.account_name}/{path.lstrip('/')}"
        parts = [
            params["sp"] or "",
            params["st"] or "",
            params["se"] or "",
            canonical_resource,
            params["si"] or "",
            params["sip"] or "",
            params["spr"] or "",
            params["sv"],
        ]
        if service == "b":
            parts.extend([resource, snapshot or ""])
        parts.extend([
            cache_control or "",
            content_disposition or "",
            content_encoding or "",
            content_language or "",
            content_type or "",
        ])

        params["sig"] = _hmac_sha256(self._key, "\n".join(parts))
        return urlencode({k: v for k, v in params.items() if v})

    def generate_account_sas_token(
        self,
        services: str = "b",
        resource_types: str = "sco",
        permissions: str = "r",
        start: Union[datetime, str, None] = None,
        expiry: Union[datetime, str, None] = None,
        ip_range: Optional[str] = None,
        protocol: Optional[str] = None,
    ) -> str:
        """Generate an account SAS token spanning one or more services."""
        if expiry is None:
            expiry = datetime.now(UTC) + timedelta(minutes=30)

        params = {
            "sv": self.api_version,
            "ss": services,
            "srt": resource_types,
            "sp": permissions,
            "st": _format_time(start),
            "se": _format_time(expiry),
            "sip": ip_range,
            "spr": protocol,
        }
        string_to_sign = "\n".join([
            self.account_name,
            permissions,
            services,
            resource_types,
            params["st"] or "",
            params["se"],
            ip_range or "",
            protocol or "",
            self.api_version,
            "",
        ])

        params["sig"] = _hmac_sha256(self._key, string_to_sign)
        return urlencode({k: v for k, v in params.items() if v})

    def signed_uri(self, uri: Union[str, httpx.URL], token: str) -> str:
        """Append ``token`` to ``uri``, keeping any existing query parameters."""
        url = httpx.URL(str(uri)).copy_merge_params(httpx.QueryParams(token))
        logger.info(
            "[CirrusStorage][SasUrl] host=%s path=%s",
            url.host,
            url.path,
        )
        return str(url)
