"""
HTTP client utilities for Cirrus Storage SDK
"""

import logging
import time
from typing import Optional, Dict, Any

import httpx

from .retry import ExponentialRetryPolicy, RetryPolicy


logger = logging.getLogger(__name__)


class HttpClient:
    """
    HTTP client wrapper with connection pooling and retry logic.
    """

    def __init__(
        self,
        timeout: float = 30,
        max_retries: int = 3,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self.retry_policy = retry_policy or ExponentialRetryPolicy(retry_count=max_retries)
        self._client = httpx.Client(
            timeout=timeout,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=100),
            transport=transport,
        )

    def get(
        self,
        url: httpx.URL,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Make a GET request with retry logic."""
        return self._request("GET", url, headers=headers, **kwargs)

    def put(
        self,
        url: httpx.URL,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Make a PUT request with retry logic."""
        return self._request("PUT", url, content=content, headers=headers, **kwargs)

    def delete(
        self,
        url: httpx.URL,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Make a DELETE request with retry logic."""
        return self._request("DELETE", url, headers=headers, **kwargs)

    def head(
        self,
        url: httpx.URL,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Make a HEAD request with retry logic."""
        return self._request("HEAD", url, headers=headers, **kwargs)

    def request(
        self,
        method: str,
        url: httpx.URL,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[Any] = None,
    ) -> httpx.Response:
        """Dispatch to the verb helper matching ``method``."""
        if method == "GET":
            return self.get(url, headers=headers)
        if method == "HEAD":
            return self.head(url, headers=headers)
        if method == "PUT":
            return self.put(url, content=content, headers=headers)
        if method == "DELETE":
            return self.delete(url, headers=headers)
        raise ValueError(f"Unsupported HTTP method: {method}")

    def _request(
        self,
        method: str,
        url: httpx.URL,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> httpx.Response:
        """Make HTTP request, retrying as the retry policy allows."""
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._client.request(method, url, headers=headers, **kwargs)
            except httpx.TransportError as ex:
                if not self.retry_policy.should_retry(attempt, error=ex):
                    raise
                reason = type(ex).__name__
            else:
                if not self.retry_policy.should_retry(attempt, response=response):
                    return response
                reason = response.status_code
                response.close()

            wait_time = self.retry_policy.interval(attempt)
            logger.warning(
                "[CirrusStorage][Retry] method=%s uri=%s attempt=%s reason=%s waitSeconds=%s",
                method,
                url.copy_with(query=None),
                attempt,
                reason,
                wait_time,
            )
            time.sleep(wait_time)

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
